# checkin/services/lifecycle.py
"""Ciclo de vida das sessões de presença (ações do organizador).

Regra central: no máximo uma sessão efetivamente ativa. Quem garante isso é
a coluna ``active_guard`` (UNIQUE): criar ou retomar uma sessão exige gravar o
guard, e dois pedidos simultâneos não conseguem gravá-lo ao mesmo tempo.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkin.core.clock import Clock, as_utc, utcnow
from checkin.core.config import settings
from checkin.core.errors import ActiveSessionExists, InvalidInput, InvalidTransition, SessionNotFound
from checkin.crud import audit
from checkin.crud.attendance_session import session_crud
from checkin.crud.redemption import redemption_crud
from checkin.models.attendance_session import ACTIVE_GUARD, AttendanceSession, SessionStatus
from checkin.services.codes import generate_code

logger = logging.getLogger(__name__)

ENTITY = "attendance_session"


class SessionLifecycleManager:
    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    # ------------------------------------------------------------------
    # leitura
    # ------------------------------------------------------------------
    def get_session(self, session_id: str) -> AttendanceSession:
        obj = session_crud.get(self.db, session_id, fresh=True)
        if not obj:
            raise SessionNotFound(session_id=session_id)
        return obj

    def list_sessions(self, *, skip: int = 0, limit: int = 50) -> List[AttendanceSession]:
        return session_crud.list_history(self.db, skip=skip, limit=limit)

    def session_stats(self, session_id: str) -> Dict[str, int]:
        self.get_session(session_id)
        return redemption_crud.stats_for_session(self.db, session_id)

    # ------------------------------------------------------------------
    # criação
    # ------------------------------------------------------------------
    def create_session(
        self,
        *,
        event_name: str,
        points: int,
        valid_for: Union[timedelta, int, float],
        created_by: str,
    ) -> AttendanceSession:
        name = (event_name or "").strip()
        duration = valid_for if isinstance(valid_for, timedelta) else timedelta(seconds=valid_for)
        errors = {}
        if not name:
            errors["event_name"] = "required"
        elif len(name) > 200:
            errors["event_name"] = "too long"
        if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
            errors["points"] = "must be a positive integer"
        if duration <= timedelta(0):
            errors["valid_for"] = "must be positive"
        elif duration > timedelta(hours=settings.MAX_SESSION_HOURS):
            errors["valid_for"] = f"must be at most {settings.MAX_SESSION_HOURS}h"
        if not created_by:
            errors["created_by"] = "required"
        if errors:
            raise InvalidInput(**errors)

        now = self.clock()
        session_crud.release_stale_guards(self.db, now)
        blocking = session_crud.effective_active(self.db, now)
        if blocking:
            self.db.rollback()
            raise ActiveSessionExists(session_id=blocking[0].id)

        obj = AttendanceSession(
            event_name=name,
            code=self._new_code(now),
            points=points,
            status=SessionStatus.active.value,
            expires_at=now + duration,
            active_guard=ACTIVE_GUARD,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.db.add(obj)
        try:
            self.db.flush()
        except IntegrityError:
            # outro create/resume ficou com o guard
            self.db.rollback()
            raise ActiveSessionExists()
        audit.record(self.db, actor=created_by, entity=ENTITY, entity_id=obj.id, action="create",
                     diff={"event_name": name, "points": points, "expires_at": obj.expires_at.isoformat()})
        self._commit_guarded()
        self.db.refresh(obj)
        logger.info("attendance session %s created by %s (%s, %d pts, until %s)",
                    obj.id, created_by, name, points, as_utc(obj.expires_at).isoformat())
        return obj

    def _new_code(self, now: datetime) -> str:
        in_use = session_crud.codes_in_use(self.db, now)
        for _ in range(settings.CODE_GENERATION_ATTEMPTS):
            code = generate_code()
            if code not in in_use:
                return code
        raise RuntimeError("could not generate a unique session code")

    # ------------------------------------------------------------------
    # transições
    # ------------------------------------------------------------------
    def close_session(self, session_id: str, *, actor: Optional[str] = None) -> AttendanceSession:
        obj = self.get_session(session_id)
        if obj.status == SessionStatus.finished.value:
            return obj
        now = self.clock()
        previous = obj.status
        obj.status = SessionStatus.finished.value
        # sessão já vencida mantém o prazo original
        if as_utc(obj.expires_at) > now:
            obj.expires_at = now
        obj.active_guard = None
        obj.updated_at = now
        audit.record(self.db, actor=actor, entity=ENTITY, entity_id=obj.id, action="close",
                     diff={"status": [previous, obj.status]})
        self.db.commit()
        logger.info("attendance session %s closed by %s", obj.id, actor)
        return obj

    def pause_session(self, session_id: str, *, actor: Optional[str] = None) -> AttendanceSession:
        obj = self.get_session(session_id)
        now = self.clock()
        if not obj.is_effective_active(now):
            raise InvalidTransition(
                "Só é possível pausar uma sessão ativa.",
                session_id=obj.id, status=obj.effective_status(now).value,
            )
        obj.status = SessionStatus.paused.value
        obj.active_guard = None
        obj.updated_at = now
        audit.record(self.db, actor=actor, entity=ENTITY, entity_id=obj.id, action="pause",
                     diff={"status": ["active", "paused"]})
        self.db.commit()
        logger.info("attendance session %s paused by %s", obj.id, actor)
        return obj

    def resume_session(self, session_id: str, *, actor: Optional[str] = None) -> AttendanceSession:
        obj = self.get_session(session_id)
        now = self.clock()
        if obj.status != SessionStatus.paused.value:
            raise InvalidTransition(
                "Só é possível retomar uma sessão pausada.",
                session_id=obj.id, status=obj.effective_status(now).value,
            )
        if obj.is_expired(now):
            raise InvalidTransition(
                "O prazo da sessão já passou; crie uma nova sessão.",
                session_id=obj.id, status=obj.effective_status(now).value,
            )
        session_crud.release_stale_guards(self.db, now)
        blocking = [s for s in session_crud.effective_active(self.db, now) if s.id != obj.id]
        if blocking:
            self.db.rollback()
            raise ActiveSessionExists(session_id=blocking[0].id)
        # expires_at não muda: pausar não concede tempo extra
        obj.status = SessionStatus.active.value
        obj.active_guard = ACTIVE_GUARD
        obj.updated_at = now
        audit.record(self.db, actor=actor, entity=ENTITY, entity_id=obj.id, action="resume",
                     diff={"status": ["paused", "active"]})
        self._commit_guarded()
        logger.info("attendance session %s resumed by %s", obj.id, actor)
        return obj

    def clear_history(self, *, actor: Optional[str] = None) -> Dict[str, int]:
        """Apaga todas as sessões e presenças. Irreversível; quem chama confirma."""
        redemptions = redemption_crud.delete_all(self.db)
        sessions = session_crud.delete_all(self.db)
        audit.record(self.db, actor=actor, entity=ENTITY, entity_id=None, action="clear_history",
                     diff={"sessions": sessions, "redemptions": redemptions})
        self.db.commit()
        logger.warning("attendance history cleared by %s: %d sessions, %d redemptions",
                       actor, sessions, redemptions)
        return {"sessions_deleted": sessions, "redemptions_deleted": redemptions}

    def _commit_guarded(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ActiveSessionExists()
