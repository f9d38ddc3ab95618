# checkin/api/v1/scanner.py
# rotas do participante: banner "sessão ativa" e resgate do QR
from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from checkin.api.deps import Principal, get_clock, get_current_principal, get_projector, get_redemption_engine
from checkin.core.clock import Clock
from checkin.schemas.redemption import RedeemIn, RedemptionResult
from checkin.schemas.session import ActiveSessionOut, PublicSessionOut, SessionOut
from checkin.services.redemption import RedemptionEngine
from checkin.services.status import LiveStatusProjector

router = APIRouter()


@router.get("/active", response_model=ActiveSessionOut)
def active_session(
    projector: LiveStatusProjector = Depends(get_projector),
    clock: Clock = Depends(get_clock),
    _principal: Principal = Depends(get_current_principal),
):
    obj = projector.get_effective_active_session()
    if obj is None:
        return ActiveSessionOut(session=None)
    full = SessionOut.build(obj, clock())
    return ActiveSessionOut(session=PublicSessionOut(**full.model_dump(include={"id", "event_name", "points", "expires_at", "seconds_remaining"})))


@router.post("/redeem", response_model=RedemptionResult)
def redeem(
    body: RedeemIn = Body(...),
    engine: RedemptionEngine = Depends(get_redemption_engine),
    principal: Principal = Depends(get_current_principal),
):
    # o participante é sempre o principal autenticado, nunca o payload
    return engine.redeem(body.code, body.session_id, principal.id)
