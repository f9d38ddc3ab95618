# checkin/services/ledger.py
"""Point Ledger: serviço de registro dos pontos acumulados por participante.

O check-in só conhece o protocolo :class:`PointLedger`. A implementação padrão
grava em ``point_ledger_entries`` e é idempotente pela chave, então a varredura
de reconciliação pode repetir o crédito sem duplicar pontos.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from checkin.core.errors import LedgerError
from checkin.models.ledger import PointLedgerEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerReceipt:
    entry_id: int
    attendee_id: str
    amount: int
    duplicate: bool = False


class PointLedger(Protocol):
    def credit_points(self, attendee_id: str, amount: int, reason: str, *, idempotency_key: str) -> LedgerReceipt:
        ...


class DatabasePointLedger:
    def __init__(self, db: Session):
        self.db = db

    def _by_key(self, key: str) -> PointLedgerEntry | None:
        return self.db.execute(
            select(PointLedgerEntry).where(PointLedgerEntry.idempotency_key == key)
        ).scalar_one_or_none()

    def credit_points(self, attendee_id: str, amount: int, reason: str, *, idempotency_key: str) -> LedgerReceipt:
        try:
            existing = self._by_key(idempotency_key)
            if existing:
                return LedgerReceipt(existing.id, existing.attendee_id, existing.amount, duplicate=True)
            entry = PointLedgerEntry(attendee_id=attendee_id, amount=amount, reason=reason[:255], idempotency_key=idempotency_key)
            self.db.add(entry)
            self.db.commit()
            return LedgerReceipt(entry.id, attendee_id, amount)
        except IntegrityError:
            # outra varredura gravou a mesma chave entre o select e o insert
            self.db.rollback()
            existing = self._by_key(idempotency_key)
            if existing is None:
                raise LedgerError(f"ledger conflict without entry for {idempotency_key}")
            logger.info("ledger credit %s already applied concurrently", idempotency_key)
            return LedgerReceipt(existing.id, existing.attendee_id, existing.amount, duplicate=True)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise LedgerError(str(exc)) from exc

    def balance(self, attendee_id: str) -> int:
        total = self.db.scalar(
            select(func.coalesce(func.sum(PointLedgerEntry.amount), 0)).where(PointLedgerEntry.attendee_id == attendee_id)
        )
        return int(total or 0)
