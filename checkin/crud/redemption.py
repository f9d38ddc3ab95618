# checkin/crud/redemption.py
from typing import Dict, List

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, contains_eager

from checkin.crud.base import CRUDBase
from checkin.models.attendance_session import AttendanceSession
from checkin.models.redemption import Redemption


class CRUDRedemption(CRUDBase[Redemption]):
    def list_for_session(self, db: Session, session_id: str) -> List[Redemption]:
        stmt = (
            select(Redemption)
            .where(Redemption.session_id == session_id)
            .order_by(Redemption.redeemed_at, Redemption.id)
        )
        return list(db.scalars(stmt).all())

    def pending_credits(self, db: Session, *, limit: int = 100) -> List[Redemption]:
        # inner join: presença sem sessão não entra no lote
        stmt = (
            select(Redemption)
            .join(Redemption.session)
            .where(Redemption.credited_at.is_(None))
            .options(contains_eager(Redemption.session))
            .order_by(Redemption.redeemed_at, Redemption.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(db.scalars(stmt).unique().all())

    def orphaned_pending_ids(self, db: Session) -> List[int]:
        stmt = (
            select(Redemption.id)
            .outerjoin(AttendanceSession, AttendanceSession.id == Redemption.session_id)
            .where(Redemption.credited_at.is_(None), AttendanceSession.id.is_(None))
            .order_by(Redemption.id)
        )
        return list(db.scalars(stmt).all())

    def stats_for_session(self, db: Session, session_id: str) -> Dict[str, int]:
        row = db.execute(
            select(
                func.count(Redemption.id),
                func.coalesce(func.sum(Redemption.points), 0),
                func.coalesce(func.sum(case((Redemption.credited_at.is_(None), 1), else_=0)), 0),
            ).where(Redemption.session_id == session_id)
        ).one()
        return {"redemptions": int(row[0]), "points_awarded": int(row[1]), "pending_credits": int(row[2])}


redemption_crud = CRUDRedemption(Redemption)
