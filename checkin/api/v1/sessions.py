# checkin/api/v1/sessions.py
# console do organizador
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import Response

from checkin.api.deps import Principal, get_clock, get_lifecycle, get_redemption_engine
from checkin.core.clock import Clock
from checkin.core.rbac import ROLE_ADMIN, ROLE_ORGANIZER, require_min_role
from checkin.schemas.redemption import ReconcileOut, RedemptionOut
from checkin.schemas.session import ClearHistoryOut, QRPayload, SessionCreate, SessionOut, SessionStats
from checkin.services.codes import build_qr_payload, render_qr_png
from checkin.services.lifecycle import SessionLifecycleManager
from checkin.services.redemption import RedemptionEngine

router = APIRouter()

organizer = require_min_role(ROLE_ORGANIZER)
admin = require_min_role(ROLE_ADMIN)


@router.get("/sessions", response_model=List[SessionOut])
def list_sessions(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    clock: Clock = Depends(get_clock),
    _user: Principal = Depends(organizer),
):
    now = clock()
    return [SessionOut.build(s, now) for s in lifecycle.list_sessions(skip=skip, limit=limit)]


@router.post("/sessions", response_model=SessionOut, status_code=201)
def create_session(
    body: SessionCreate = Body(...),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    clock: Clock = Depends(get_clock),
    user: Principal = Depends(organizer),
):
    obj = lifecycle.create_session(
        event_name=body.event_name,
        points=body.points,
        valid_for=body.valid_for_seconds,
        created_by=user.id,
    )
    return SessionOut.build(obj, clock())


# DELETE /attendance/sessions?confirm=true
@router.delete("/sessions", response_model=ClearHistoryOut)
def clear_history(
    confirm: bool = Query(False),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    user: Principal = Depends(admin),
):
    if not confirm:
        raise HTTPException(status_code=400, detail="CONFIRMATION_REQUIRED")
    return lifecycle.clear_history(actor=user.id)


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(
    session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    clock: Clock = Depends(get_clock),
    _user: Principal = Depends(organizer),
):
    return SessionOut.build(lifecycle.get_session(session_id), clock())


@router.get("/sessions/{session_id}/qr", response_model=QRPayload)
def session_qr(
    session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    _user: Principal = Depends(organizer),
):
    return build_qr_payload(lifecycle.get_session(session_id))


@router.get("/sessions/{session_id}/qr.png", response_class=Response)
def session_qr_png(
    session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    _user: Principal = Depends(organizer),
):
    png = render_qr_png(lifecycle.get_session(session_id))
    return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})


@router.get("/sessions/{session_id}/stats", response_model=SessionStats)
def session_stats(
    session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    _user: Principal = Depends(organizer),
):
    return SessionStats(session_id=session_id, **lifecycle.session_stats(session_id))


@router.get("/sessions/{session_id}/redemptions", response_model=List[RedemptionOut])
def session_redemptions(
    session_id: str,
    engine: RedemptionEngine = Depends(get_redemption_engine),
    _user: Principal = Depends(organizer),
):
    return [RedemptionOut.model_validate(r) for r in engine.list_redemptions(session_id)]


@router.post("/sessions/{session_id}/pause", response_model=SessionOut)
def pause_session(
    session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    clock: Clock = Depends(get_clock),
    user: Principal = Depends(organizer),
):
    return SessionOut.build(lifecycle.pause_session(session_id, actor=user.id), clock())


@router.post("/sessions/{session_id}/resume", response_model=SessionOut)
def resume_session(
    session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    clock: Clock = Depends(get_clock),
    user: Principal = Depends(organizer),
):
    return SessionOut.build(lifecycle.resume_session(session_id, actor=user.id), clock())


@router.post("/sessions/{session_id}/close", response_model=SessionOut)
def close_session(
    session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    clock: Clock = Depends(get_clock),
    user: Principal = Depends(organizer),
):
    return SessionOut.build(lifecycle.close_session(session_id, actor=user.id), clock())


@router.post("/credits/reconcile", response_model=ReconcileOut)
def reconcile_credits(
    limit: int = Query(100, ge=1, le=1000),
    engine: RedemptionEngine = Depends(get_redemption_engine),
    _user: Principal = Depends(admin),
):
    return engine.apply_pending_credits(limit=limit)
