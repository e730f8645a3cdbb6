"""Frequency counter per (number, scope)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from lotogen.models.base import Base


class NumberStatistic(Base):
    """Scope is a game type, or ``<game>_mas`` for Más numbers."""

    __tablename__ = "number_statistics"

    number: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    scope: Mapped[str] = mapped_column(String(32), primary_key=True)
    frequency: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_appearance: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
