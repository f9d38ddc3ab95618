# checkin/crud/attendance_session.py
from datetime import datetime
from typing import List, Set

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from checkin.crud.base import CRUDBase
from checkin.models.attendance_session import AttendanceSession, SessionStatus


class CRUDAttendanceSession(CRUDBase[AttendanceSession]):
    def list_history(self, db: Session, *, skip: int = 0, limit: int = 50) -> List[AttendanceSession]:
        return self.get_multi(
            db, skip=skip, limit=limit,
            order_by=(AttendanceSession.created_at.desc(), AttendanceSession.id),
        )

    def effective_active(self, db: Session, now: datetime) -> List[AttendanceSession]:
        """Sessões com status active e prazo no futuro, mais antiga primeiro."""
        stmt = (
            select(AttendanceSession)
            .where(
                AttendanceSession.status == SessionStatus.active.value,
                AttendanceSession.expires_at > now,
            )
            .order_by(AttendanceSession.created_at, AttendanceSession.id)
            .execution_options(populate_existing=True)
        )
        return list(db.scalars(stmt).all())

    def codes_in_use(self, db: Session, now: datetime) -> Set[str]:
        stmt = select(AttendanceSession.code).where(
            AttendanceSession.status == SessionStatus.active.value,
            AttendanceSession.expires_at > now,
        )
        return set(db.scalars(stmt).all())

    def release_stale_guards(self, db: Session, now: datetime) -> int:
        """Libera o guard de sessões que já não estão efetivamente ativas."""
        stmt = (
            update(AttendanceSession)
            .where(
                AttendanceSession.active_guard.is_not(None),
                or_(
                    AttendanceSession.status != SessionStatus.active.value,
                    AttendanceSession.expires_at <= now,
                ),
            )
            .values(active_guard=None)
            .execution_options(synchronize_session=False)
        )
        return db.execute(stmt).rowcount or 0


session_crud = CRUDAttendanceSession(AttendanceSession)
