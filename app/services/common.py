from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.engine import Result
from sqlalchemy.sql import Executable
from loguru import logger

from app.core.exceptions import OperationFailed


async def execute_or_fail(db: AsyncSession, statement: Executable, detail: str) -> Result:
    """Runs a statement; store errors are rolled back, logged and reported as OperationFailed."""
    try:
        return await db.execute(statement)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(detail)
        raise OperationFailed(detail)


async def commit_or_fail(db: AsyncSession, detail: str) -> None:
    """Commits the session; store errors are rolled back, logged and reported as OperationFailed."""
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(detail)
        raise OperationFailed(detail)
