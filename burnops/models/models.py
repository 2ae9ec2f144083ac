import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    JSON,
    Text,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


def uuid_str() -> str:
    return str(uuid.uuid4())


class LocalBurn(Base):
    """Offline copy of an operation record.

    Column names follow the remote ``burns`` table so a row can be pushed
    as-is; ``synced`` only ever moves from False to True.
    """

    __tablename__ = "burns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location_name: Mapped[Optional[str]] = mapped_column(String(255))
    fuel_model: Mapped[Optional[str]] = mapped_column(String(64))
    weather_data: Mapped[Optional[dict]] = mapped_column(JSON)
    area_geojson: Mapped[Optional[dict]] = mapped_column(JSON)
    ai_report: Mapped[Optional[str]] = mapped_column(Text)
    personnel_hours: Mapped[Optional[dict]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="planning")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    synced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(64))

    __table_args__ = (
        Index("ix_burns_synced", "synced"),
        Index("ix_burns_created_at", "created_at"),
    )


class Person(Base):
    __tablename__ = "personnel"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(64), nullable=False)
