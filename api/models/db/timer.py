"""Persisted timer deadlines."""
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base


class TimerDeadline(Base):
    """Key/value row holding one session deadline (epoch milliseconds)."""

    __tablename__ = "timer_deadlines"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(String(32), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
