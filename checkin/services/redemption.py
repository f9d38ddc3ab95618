# checkin/services/redemption.py
"""Resgate do código de presença pelo participante.

Ordem das verificações: sessão existe, código confere, status ativo, prazo
não vencido, e só então o INSERT da presença. A unicidade
(session_id, attendee_id) no banco decide quem ganha quando dois pedidos
iguais chegam juntos; não há leitura prévia de "já resgatou?".

O crédito de pontos vem depois do commit da presença. Se o ledger falhar, a
presença continua valendo e o crédito fica pendente para
:meth:`RedemptionEngine.apply_pending_credits`.
"""
from __future__ import annotations

import logging
from typing import Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkin.core.clock import Clock, as_utc, utcnow
from checkin.core.config import settings
from checkin.core.errors import (
    AlreadyRedeemed,
    CodeMismatch,
    InvalidInput,
    LedgerError,
    PartialFailure,
    SessionExpired,
    SessionNotActive,
    SessionNotFound,
)
from checkin.core.metrics import CREDIT_FAILURES, REDEMPTIONS
from checkin.crud.attendance_session import session_crud
from checkin.crud.redemption import redemption_crud
from checkin.models.attendance_session import SessionStatus
from checkin.models.redemption import Redemption
from checkin.schemas.redemption import RedemptionResult
from checkin.services.codes import codes_match
from checkin.services.ledger import PointLedger

logger = logging.getLogger(__name__)


def _credit_reason(event_name: str) -> str:
    return f"attendance:{event_name}"


class RedemptionEngine:
    def __init__(self, db: Session, ledger: PointLedger, clock: Clock = utcnow):
        self.db = db
        self.ledger = ledger
        self.clock = clock

    def redeem(self, code: str, session_id: str, attendee_id: str) -> RedemptionResult:
        try:
            result = self._redeem(code, session_id, attendee_id)
        except (SessionNotFound, CodeMismatch, SessionNotActive, SessionExpired, AlreadyRedeemed, InvalidInput) as exc:
            REDEMPTIONS.labels(outcome=exc.code.lower()).inc()
            logger.info("redeem rejected: session=%s attendee=%s reason=%s", session_id, attendee_id, exc.code)
            raise
        REDEMPTIONS.labels(outcome="accepted").inc()
        return result

    def _redeem(self, code: str, session_id: str, attendee_id: str) -> RedemptionResult:
        if not attendee_id:
            raise InvalidInput(attendee_id="required")
        if not session_id:
            raise SessionNotFound(session_id=session_id)

        # 1. sempre relê do banco; nada de cópia em cache
        session = session_crud.get(self.db, session_id, fresh=True)
        if session is None:
            raise SessionNotFound(session_id=session_id)

        # 2. QR antigo/forjado apontando para uma sessão válida
        if not codes_match(session.code, code):
            raise CodeMismatch(session_id=session_id)

        # 3. relógio do servidor, nunca do cliente
        now = self.clock()
        if session.status != SessionStatus.active.value:
            raise SessionNotActive(session_id=session_id, status=session.status)
        if now >= as_utc(session.expires_at):
            raise SessionExpired(session_id=session_id, expires_at=as_utc(session.expires_at).isoformat())

        # 4. a constraint única decide
        event_name = session.event_name
        points = session.points
        redemption = Redemption(
            session_id=session.id,
            attendee_id=attendee_id,
            points=points,
            redeemed_at=now,
            credit_attempts=0,
        )
        self.db.add(redemption)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # FK: a sessão foi apagada (clear history) depois da leitura
            if session_crud.get(self.db, session_id, fresh=True) is None:
                raise SessionNotFound(session_id=session_id)
            raise AlreadyRedeemed(session_id=session_id)

        logger.info("attendee %s checked into session %s (+%d pts)", attendee_id, session_id, points)

        # 5. crédito só depois da presença gravada
        credited = self._credit(redemption, event_name)
        if credited:
            message = f"+{points} pontos"
        else:
            message = f"Presença registrada. Seus {points} pontos serão creditados em breve."
        return RedemptionResult(
            session_id=session_id,
            attendee_id=attendee_id,
            event_name=event_name,
            points=points,
            redeemed_at=as_utc(now),
            credited=credited,
            pending_credit=not credited,
            message=message,
        )

    def _credit(self, redemption: Redemption, event_name: str) -> bool:
        key = redemption.idempotency_key
        try:
            self.ledger.credit_points(
                redemption.attendee_id, redemption.points, _credit_reason(event_name), idempotency_key=key,
            )
        except Exception as exc:
            # qualquer falha do ledger (timeout, conexão, ...) vira crédito pendente
            self.db.rollback()
            redemption.credit_attempts = (redemption.credit_attempts or 0) + 1
            redemption.last_credit_error = f"{type(exc).__name__}: {exc}"[:1000]
            self.db.commit()
            failure = PartialFailure(
                redemption_id=redemption.id,
                session_id=redemption.session_id,
                attendee_id=redemption.attendee_id,
                points=redemption.points,
                attempts=redemption.credit_attempts,
            )
            CREDIT_FAILURES.inc()
            if isinstance(exc, LedgerError):
                logger.warning("%s %s: %s", failure.code, failure.details, exc)
            else:
                logger.exception("%s %s: unexpected ledger error", failure.code, failure.details)
            return False

        redemption.credited_at = self.clock()
        redemption.credit_attempts = (redemption.credit_attempts or 0) + 1
        redemption.last_credit_error = None
        self.db.commit()
        return True

    def apply_pending_credits(self, limit: int | None = None) -> Dict[str, int]:
        """Reaplica créditos pendentes. Pode rodar várias vezes: o ledger é idempotente pela chave."""
        orphans = redemption_crud.orphaned_pending_ids(self.db)
        if orphans:
            # presença sem sessão não tem motivo de crédito; fica fora da varredura
            logger.error("pending credits without session, skipped: %s", orphans)
        rows = redemption_crud.pending_credits(self.db, limit=limit or settings.RECONCILE_BATCH_SIZE)
        # guarda ids e nomes antes dos commits expirarem os objetos
        work = [(r.id, r.session.event_name) for r in rows]
        credited = failed = 0
        for redemption_id, event_name in work:
            redemption = self.db.get(Redemption, redemption_id)
            if redemption is None or redemption.credited_at is not None:
                continue
            if self._credit(redemption, event_name):
                credited += 1
            else:
                failed += 1
        if work:
            logger.info("pending credits sweep: attempted=%d credited=%d failed=%d", len(work), credited, failed)
        return {"attempted": len(work), "credited": credited, "failed": failed}

    def list_redemptions(self, session_id: str) -> List[Redemption]:
        if session_crud.get(self.db, session_id) is None:
            raise SessionNotFound(session_id=session_id)
        return redemption_crud.list_for_session(self.db, session_id)
