# checkin/models/attendance_session.py
import uuid
from enum import Enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checkin.core.clock import as_utc
from checkin.db.base import Base

# valor único do guard: só uma linha pode tê-lo (UNIQUE aceita vários NULL)
ACTIVE_GUARD = 1


class SessionStatus(str, Enum):
    active = "active"
    paused = "paused"
    finished = "finished"


class EffectiveStatus(str, Enum):
    active = "active"
    paused = "paused"
    finished = "finished"
    expired = "expired"


def _new_id() -> str:
    return uuid.uuid4().hex


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    event_name: Mapped[str] = mapped_column(String(200))
    code: Mapped[str] = mapped_column(String(16), index=True)
    points: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default=SessionStatus.active.value)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    active_guard: Mapped[Optional[int]] = mapped_column(Integer, unique=True, nullable=True)
    created_by: Mapped[str] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    redemptions = relationship("Redemption", back_populates="session", cascade="all, delete-orphan", passive_deletes=True)

    def is_expired(self, now: datetime) -> bool:
        return now >= as_utc(self.expires_at)

    def is_effective_active(self, now: datetime) -> bool:
        return self.status == SessionStatus.active.value and not self.is_expired(now)

    def effective_status(self, now: datetime) -> EffectiveStatus:
        if self.status == SessionStatus.active.value and self.is_expired(now):
            return EffectiveStatus.expired
        return EffectiveStatus(self.status)
