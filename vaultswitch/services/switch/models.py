"""Switch service database models.

This DB is the source of truth for switch state, the owner directory, and the
append-only notification and check-in audit trails.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from vaultswitch.common.db import Base


class Owner(Base):
    """Contact record for a monitored owner."""

    __tablename__ = "owners"

    owner_id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Switch(Base):
    """Current state of one owner's inactivity switch."""

    __tablename__ = "dead_mans_switches"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    owner_ref: Mapped[str] = mapped_column(String, unique=True, index=True)
    nominee_email: Mapped[str] = mapped_column(String)
    nominee_name: Mapped[str | None] = mapped_column(String, nullable=True)
    nominee_relation: Mapped[str | None] = mapped_column(String, nullable=True)
    personal_message: Mapped[str | None] = mapped_column(String, nullable=True)
    inactivity_period_days: Mapped[int] = mapped_column(Integer, default=180)
    last_check_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    is_triggered: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    access_token: Mapped[str | None] = mapped_column(String, nullable=True, unique=True, index=True)
    token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class NotificationRecord(Base):
    """Immutable record of one notification attempt."""

    __tablename__ = "notification_log"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    switch_id: Mapped[str] = mapped_column(ForeignKey("dead_mans_switches.id"), index=True)
    kind: Mapped[str] = mapped_column(String, index=True)
    recipient: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String)
    error: Mapped[str | None] = mapped_column(String, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class CheckInEvent(Base):
    """Immutable audit entry written on every owner check-in."""

    __tablename__ = "check_in_history"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    switch_id: Mapped[str] = mapped_column(ForeignKey("dead_mans_switches.id"), index=True)
    checked_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String, nullable=True)
    origin: Mapped[dict] = mapped_column(JSON, default=dict)
