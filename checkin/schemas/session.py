# checkin/schemas/session.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from checkin.core.clock import as_utc
from checkin.models.attendance_session import AttendanceSession


class SessionCreate(BaseModel):
    # validação de negócio fica no SessionLifecycleManager (InvalidInput)
    event_name: str
    points: int = 50
    valid_for_seconds: int = Field(default=2 * 60 * 60, description="Duração da sessão em segundos")


class SessionOut(BaseModel):
    id: str
    event_name: str
    code: str
    points: int
    status: str
    effective_status: str
    expires_at: datetime
    seconds_remaining: int
    created_at: Optional[datetime] = None
    created_by: str
    updated_at: Optional[datetime] = None

    @classmethod
    def build(cls, obj: AttendanceSession, now: datetime) -> "SessionOut":
        expires_at = as_utc(obj.expires_at)
        remaining = 0
        if obj.is_effective_active(now):
            remaining = max(0, int((expires_at - now).total_seconds()))
        return cls(
            id=obj.id,
            event_name=obj.event_name,
            code=obj.code,
            points=obj.points,
            status=obj.status,
            effective_status=obj.effective_status(now).value,
            expires_at=expires_at,
            seconds_remaining=remaining,
            created_at=as_utc(obj.created_at) if obj.created_at else None,
            created_by=obj.created_by,
            updated_at=as_utc(obj.updated_at) if obj.updated_at else None,
        )


class PublicSessionOut(BaseModel):
    """Visão do banner/scanner: sem o código."""
    id: str
    event_name: str
    points: int
    expires_at: datetime
    seconds_remaining: int


class ActiveSessionOut(BaseModel):
    session: Optional[PublicSessionOut] = None


class QRPayload(BaseModel):
    code: str
    session_id: str
    points: int


class SessionStats(BaseModel):
    session_id: str
    redemptions: int
    points_awarded: int
    pending_credits: int


class ClearHistoryOut(BaseModel):
    sessions_deleted: int
    redemptions_deleted: int
