"""
Tests for SessionLifecycleManager.

Tests:
- create validation and the single-active-session rule
- pause / resume / close transitions
- clear history and audit trail
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from checkin.core.errors import ActiveSessionExists, InvalidInput, InvalidTransition, SessionNotFound
from checkin.models import AuditLog, EffectiveStatus, Redemption, SessionStatus
from checkin.services.codes import CODE_ALPHABET


class TestCreateSession:
    def test_create_returns_active_session(self, lifecycle, clock):
        s = lifecycle.create_session(event_name="  Sunday Service ", points=50,
                                     valid_for=timedelta(hours=2), created_by="org")

        assert s.event_name == "Sunday Service"
        assert s.status == SessionStatus.active.value
        assert s.effective_status(clock()) == EffectiveStatus.active
        assert s.is_expired(clock() + timedelta(hours=2))
        assert not s.is_expired(clock() + timedelta(hours=1, minutes=59))
        assert len(s.code) == 6
        assert set(s.code) <= set(CODE_ALPHABET)
        assert s.created_by == "org"

    def test_valid_for_accepts_seconds(self, lifecycle, clock):
        s = lifecycle.create_session(event_name="Vigil", points=10, valid_for=90, created_by="org")
        assert s.is_effective_active(clock.advance(seconds=89))
        assert not s.is_effective_active(clock.advance(seconds=1))

    @pytest.mark.parametrize("kwargs, field", [
        ({"event_name": "   "}, "event_name"),
        ({"points": 0}, "points"),
        ({"points": -5}, "points"),
        ({"valid_for": timedelta(0)}, "valid_for"),
        ({"valid_for": -1}, "valid_for"),
        ({"valid_for": timedelta(hours=25)}, "valid_for"),
    ])
    def test_invalid_input(self, lifecycle, kwargs, field):
        params = {"event_name": "Service", "points": 50, "valid_for": 3600, "created_by": "org"}
        params.update(kwargs)

        with pytest.raises(InvalidInput) as exc:
            lifecycle.create_session(**params)

        assert field in exc.value.details

    def test_create_blocked_while_active(self, lifecycle, open_session):
        with pytest.raises(ActiveSessionExists) as exc:
            lifecycle.create_session(event_name="Other", points=10, valid_for=60, created_by="org")
        assert exc.value.details["session_id"] == open_session.id

    def test_create_after_explicit_close(self, lifecycle, open_session, clock):
        lifecycle.close_session(open_session.id)

        s = lifecycle.create_session(event_name="Other", points=10, valid_for=60, created_by="org")

        assert s.id != open_session.id
        assert s.is_effective_active(clock())

    def test_create_after_expiry_releases_guard(self, lifecycle, open_session, clock, db):
        clock.advance(hours=3)

        s = lifecycle.create_session(event_name="Evening", points=10, valid_for=60, created_by="org")

        db.refresh(open_session)
        assert open_session.active_guard is None
        assert s.active_guard == 1
        # o status gravado não muda: expirar é só leitura
        assert open_session.status == SessionStatus.active.value
        assert open_session.effective_status(clock()) == EffectiveStatus.expired

    def test_create_allowed_while_other_is_paused(self, lifecycle, open_session, clock):
        lifecycle.pause_session(open_session.id)

        s = lifecycle.create_session(event_name="Other", points=10, valid_for=60, created_by="org")

        assert s.is_effective_active(clock())


class TestTransitions:
    def test_pause_and_resume_keep_deadline(self, lifecycle, open_session, clock):
        deadline = open_session.expires_at

        lifecycle.pause_session(open_session.id)
        clock.advance(minutes=30)
        s = lifecycle.resume_session(open_session.id)

        assert s.status == SessionStatus.active.value
        assert s.expires_at == deadline

    def test_pause_requires_effective_active(self, lifecycle, open_session, clock):
        lifecycle.pause_session(open_session.id)
        with pytest.raises(InvalidTransition):
            lifecycle.pause_session(open_session.id)

    def test_pause_expired_session_fails(self, lifecycle, open_session, clock):
        clock.advance(hours=2)
        with pytest.raises(InvalidTransition) as exc:
            lifecycle.pause_session(open_session.id)
        assert exc.value.details["status"] == "expired"

    def test_resume_only_from_paused(self, lifecycle, open_session):
        with pytest.raises(InvalidTransition):
            lifecycle.resume_session(open_session.id)

    def test_resume_after_deadline_fails(self, lifecycle, open_session, clock):
        lifecycle.pause_session(open_session.id)
        clock.advance(hours=2, seconds=1)
        with pytest.raises(InvalidTransition):
            lifecycle.resume_session(open_session.id)

    def test_resume_blocked_by_newer_active_session(self, lifecycle, open_session):
        lifecycle.pause_session(open_session.id)
        other = lifecycle.create_session(event_name="Other", points=10, valid_for=600, created_by="org")

        with pytest.raises(ActiveSessionExists) as exc:
            lifecycle.resume_session(open_session.id)

        assert exc.value.details["session_id"] == other.id
        assert lifecycle.get_session(open_session.id).status == SessionStatus.paused.value

    def test_close_sets_deadline_to_now(self, lifecycle, open_session, clock):
        clock.advance(minutes=10)
        s = lifecycle.close_session(open_session.id)

        assert s.status == SessionStatus.finished.value
        assert s.is_expired(clock())
        assert s.active_guard is None

    def test_close_is_idempotent(self, lifecycle, open_session, clock):
        first = lifecycle.close_session(open_session.id)
        deadline = first.expires_at
        clock.advance(minutes=5)

        again = lifecycle.close_session(open_session.id)

        assert again.status == SessionStatus.finished.value
        assert again.expires_at == deadline

    def test_close_paused_session(self, lifecycle, open_session):
        lifecycle.pause_session(open_session.id)
        assert lifecycle.close_session(open_session.id).status == SessionStatus.finished.value

    def test_unknown_session(self, lifecycle):
        for op in (lifecycle.pause_session, lifecycle.resume_session, lifecycle.close_session):
            with pytest.raises(SessionNotFound):
                op("nope")


class TestHistory:
    def test_list_sessions_newest_first(self, lifecycle, clock):
        ids = []
        for name in ("First", "Second", "Third"):
            s = lifecycle.create_session(event_name=name, points=10, valid_for=60, created_by="org")
            ids.append(s.id)
            lifecycle.close_session(s.id)
            clock.advance(minutes=1)

        listed = [s.id for s in lifecycle.list_sessions()]

        assert listed == list(reversed(ids))

    def test_clear_history_removes_sessions_and_redemptions(self, lifecycle, redemption_engine, open_session, db):
        redemption_engine.redeem(open_session.code, open_session.id, "attendee-a")

        counts = lifecycle.clear_history(actor="admin")

        assert counts == {"sessions_deleted": 1, "redemptions_deleted": 1}
        assert lifecycle.list_sessions() == []
        assert db.scalars(select(Redemption)).all() == []

    def test_operations_are_audited(self, lifecycle, open_session, db):
        lifecycle.pause_session(open_session.id, actor="org")
        lifecycle.resume_session(open_session.id, actor="org")
        lifecycle.close_session(open_session.id, actor="org")

        actions = db.scalars(
            select(AuditLog.action).where(AuditLog.entity_id == open_session.id).order_by(AuditLog.id)
        ).all()
        assert actions == ["create", "pause", "resume", "close"]
