# app/models/base.py
from sqlalchemy import Column, String, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr
from datetime import datetime, timezone
import uuid
import nanoid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Some drivers hand back naive datetimes for timezone-aware columns; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Base(DeclarativeBase):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sid = Column(String(22), unique=True, nullable=False, index=True, default=lambda: Base.generate_sid())

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()

    @staticmethod
    def generate_sid():
        """Short ID exposed through the API"""
        return nanoid.generate(size=22)
