"""Generated combination owned by an account."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Index, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from lotogen.models.base import Base


class LotteryNumber(Base):
    """One saved draw. Soft deleted rows keep their data."""

    __tablename__ = "lottery_numbers"
    __table_args__ = (Index("ix_lottery_numbers_owner_generated", "owner_id", "generated_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    game_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    numbers: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    mas_number: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
