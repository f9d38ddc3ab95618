# checkin/models/redemption.py
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checkin.db.base import Base


class Redemption(Base):
    __tablename__ = "attendance_redemptions"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(ForeignKey("attendance_sessions.id", ondelete="CASCADE"), index=True)
    attendee_id: Mapped[str] = mapped_column(String(120), index=True)
    points: Mapped[int] = mapped_column(Integer)
    redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    # crédito pendente enquanto credited_at for NULL
    credited_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    credit_attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_credit_error: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)

    session = relationship("AttendanceSession", back_populates="redemptions")

    __table_args__ = (UniqueConstraint("session_id", "attendee_id", name="uq_redemption_session_attendee"),)

    @property
    def idempotency_key(self) -> str:
        return f"attendance-redemption:{self.id}"
