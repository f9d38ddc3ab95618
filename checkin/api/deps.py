# checkin/api/deps.py
from dataclasses import dataclass, field
from typing import FrozenSet

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from checkin.core.clock import Clock, utcnow
from checkin.core.tokens import decode_access
from checkin.db.session import get_db
from checkin.services.ledger import DatabasePointLedger, PointLedger
from checkin.services.lifecycle import SessionLifecycleManager
from checkin.services.redemption import RedemptionEngine
from checkin.services.status import LiveStatusProjector


@dataclass(frozen=True)
class Principal:
    id: str
    roles: FrozenSet[str] = field(default_factory=frozenset)


# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]


# ----------------------------------------------------------------------
# Principal autenticado pelo provedor de identidade; aqui só confiamos
# ----------------------------------------------------------------------
def get_current_principal(token: str = Depends(get_bearer_token)) -> Principal:
    payload = decode_access(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = roles.split()
    return Principal(id=str(payload["sub"]), roles=frozenset(roles))


# relógio do servidor; os testes sobrescrevem via dependency_overrides
def get_clock() -> Clock:
    return utcnow


def get_ledger(db: Session = Depends(get_db)) -> PointLedger:
    return DatabasePointLedger(db)


def get_lifecycle(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> SessionLifecycleManager:
    return SessionLifecycleManager(db, clock=clock)


def get_redemption_engine(
    db: Session = Depends(get_db),
    ledger: PointLedger = Depends(get_ledger),
    clock: Clock = Depends(get_clock),
) -> RedemptionEngine:
    return RedemptionEngine(db, ledger, clock=clock)


def get_projector(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LiveStatusProjector:
    return LiveStatusProjector(db, clock=clock)
