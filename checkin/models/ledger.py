# checkin/models/ledger.py
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from checkin.db.base import Base


class PointLedgerEntry(Base):
    __tablename__ = "point_ledger_entries"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    attendee_id: Mapped[str] = mapped_column(String(120), index=True)
    amount: Mapped[int] = mapped_column(Integer)
    reason: Mapped[str] = mapped_column(String(255))
    idempotency_key: Mapped[str] = mapped_column(String(120), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
