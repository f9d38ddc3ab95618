# checkin/schemas/redemption.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RedeemIn(BaseModel):
    code: str
    session_id: str


class RedemptionResult(BaseModel):
    session_id: str
    attendee_id: str
    event_name: str
    points: int
    redeemed_at: datetime
    credited: bool
    pending_credit: bool
    message: str


class RedemptionOut(BaseModel):
    id: int
    session_id: str
    attendee_id: str
    points: int
    redeemed_at: datetime
    credited_at: Optional[datetime] = None
    credit_attempts: int
    last_credit_error: Optional[str] = None

    model_config = {"from_attributes": True}


class ReconcileOut(BaseModel):
    attempted: int
    credited: int
    failed: int
