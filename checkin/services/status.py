# checkin/services/status.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from checkin.core.clock import Clock, utcnow
from checkin.core.metrics import ACTIVE_SESSION_ANOMALIES
from checkin.crud.attendance_session import session_crud
from checkin.models.attendance_session import AttendanceSession

logger = logging.getLogger(__name__)


class LiveStatusProjector:
    """Responde "há uma sessão ativa agora?" para o banner e o scanner."""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def get_effective_active_session(self) -> Optional[AttendanceSession]:
        now = self.clock()
        rows = session_crud.effective_active(self.db, now)
        if not rows:
            return None
        if len(rows) > 1:
            # invariante violada (bug ou edição manual): vence a mais antiga
            ACTIVE_SESSION_ANOMALIES.inc()
            logger.error(
                "invariant violated: %d effective-active sessions %s; using %s",
                len(rows), [r.id for r in rows], rows[0].id,
            )
        return rows[0]
