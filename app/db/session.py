# /app/db/session.py
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import text
from fastapi import HTTPException, status
import asyncio
import logging

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)


def build_engine(config: Settings):
    url = config.SQLALCHEMY_DATABASE_URI
    connect_args = {}
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql+asyncpg://"):
        connect_args = {"server_settings": {"application_name": "laundry_service"}}

    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


engine = build_engine(settings)

AsyncSessionLocal = async_sessionmaker(
    engine, expire_on_commit=False, class_=AsyncSession
)


async def get_db():
    db = AsyncSessionLocal()
    try:
        retry_count = 3
        retry_delay = 1  # seconds

        for attempt in range(retry_count):
            try:
                await db.execute(text("SELECT 1"))
                break
            except Exception as e:
                logger.warning(f"Database connection attempt {attempt + 1}/{retry_count} failed: {str(e)}")
                if attempt == retry_count - 1:
                    logger.error(f"All {retry_count} connection attempts failed")
                    raise HTTPException(
                        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                        detail="Service temporarily unavailable",
                    )
                await asyncio.sleep(retry_delay)
                retry_delay *= 2

        yield db
    finally:
        await db.close()
