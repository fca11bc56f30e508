"""Unit tests for refresh-session bookkeeping and rotation with reuse detection."""

import time
from dataclasses import replace
from datetime import timedelta

import pytest

from app.db.database import transaction
from app.models.principal_models import PrincipalType
from app.models.refresh_session_models import RefreshSession
from app.services.session_service import RotationStatus, SessionManager
from app.services.token_service import TokenConfig, TokenKind, TokenService


@pytest.fixture
def teacher(make_principal):
    return make_principal(PrincipalType.teacher, email="t1@school.edu")


@pytest.fixture
def manager(db, tokens):
    return SessionManager(db, tokens)


def _login(manager, principal, device="unknown"):
    refresh = manager.tokens.issue_refresh_token(principal.email, principal.principal_type)
    with transaction(manager.db):
        manager.record_session(principal, refresh, device)
    return refresh


class TestRecordAndRevoke:
    def test_record_session_stores_token_expiry_and_device(self, db, manager, teacher):
        refresh = _login(manager, teacher, device="Samsung SM-G991B")

        row = db.query(RefreshSession).one()
        assert row.refresh_token == refresh.token
        assert row.expires_at == refresh.expires_at
        assert row.device_label == "Samsung SM-G991B"
        assert row.principal_type is PrincipalType.teacher

    def test_one_row_per_login(self, manager, teacher, count_sessions):
        for _ in range(3):
            _login(manager, teacher)

        assert count_sessions(teacher.id) == 3

    def test_revoke_one_only_touches_matching_token(self, manager, teacher, count_sessions):
        first = _login(manager, teacher)
        _login(manager, teacher)

        with transaction(manager.db):
            removed = manager.revoke_one(first.token)

        assert removed == 1
        assert count_sessions(teacher.id) == 1

    def test_revoke_all_is_scoped_to_principal(self, manager, teacher, make_principal, count_sessions):
        other = make_principal(PrincipalType.student, email="s1@school.edu")
        _login(manager, teacher)
        _login(manager, teacher)
        _login(manager, other)

        with transaction(manager.db):
            manager.revoke_all(teacher.id, PrincipalType.teacher)

        assert count_sessions(teacher.id) == 0
        assert count_sessions(other.id) == 1

    def test_purge_expired_and_listing_skip_dead_rows(self, db, manager, teacher):
        live = _login(manager, teacher)
        dead = _login(manager, teacher)
        db.query(RefreshSession).filter(RefreshSession.refresh_token == dead.token).update(
            {RefreshSession.expires_at: int(time.time()) - 10}
        )
        db.commit()

        assert [s.refresh_token for s in manager.list_sessions(teacher)] == [live.token]

        with transaction(db):
            assert manager.purge_expired(teacher) == 1
        assert db.query(RefreshSession).count() == 1


class TestRotate:
    def test_rotation_updates_the_row_in_place(self, db, manager, teacher):
        refresh = _login(manager, teacher)
        row_id = db.query(RefreshSession).one().id

        with transaction(db):
            result = manager.rotate(refresh.token)

        assert result.status is RotationStatus.rotated
        assert result.refresh.token != refresh.token
        db.expire_all()
        row = db.query(RefreshSession).one()
        assert row.id == row_id
        assert row.refresh_token == result.refresh.token
        assert row.expires_at == result.refresh.expires_at

    def test_rotated_access_token_is_short_lived(self, manager, teacher, tokens):
        refresh = _login(manager, teacher)

        with transaction(manager.db):
            result = manager.rotate(refresh.token)

        payload = tokens.verify(result.access_token, TokenKind.access)
        assert payload["exp"] - payload["iat"] == 120

    def test_replaying_rotated_token_revokes_everything(self, db, manager, teacher, count_sessions):
        refresh = _login(manager, teacher)
        _login(manager, teacher, device="second device")

        with transaction(db):
            assert manager.rotate(refresh.token).ok

        with transaction(db):
            replay = manager.rotate(refresh.token)

        assert replay.status is RotationStatus.reused
        assert count_sessions(teacher.id) == 0

    def test_concurrent_rotation_with_same_token_only_succeeds_once(
        self, session_factory, tokens, teacher, count_sessions
    ):
        first_db, second_db = session_factory(), session_factory()
        try:
            first = SessionManager(first_db, tokens)
            second = SessionManager(second_db, tokens)
            refresh = _login(first, teacher)

            # the second request looked the row up before the first one rotated it
            assert second_db.query(RefreshSession).filter(
                RefreshSession.refresh_token == refresh.token
            ).count() == 1

            with transaction(first_db):
                winner = first.rotate(refresh.token)
            with transaction(second_db):
                loser = second.rotate(refresh.token)
        finally:
            first_db.close()
            second_db.close()

        assert winner.ok
        assert loser.status is RotationStatus.reused
        assert count_sessions(teacher.id) == 0

    def test_losing_the_compare_and_swap_counts_as_reuse(
        self, session_factory, tokens, teacher, count_sessions, monkeypatch
    ):
        main_db = session_factory()
        try:
            manager = SessionManager(main_db, tokens)
            refresh = _login(manager, teacher)
            issue = tokens.issue_refresh_token

            # another request rotates the row between our lookup and our update
            def racing_issue(email, role):
                with session_factory() as other:
                    other.query(RefreshSession).filter(
                        RefreshSession.refresh_token == refresh.token
                    ).update({RefreshSession.refresh_token: "rotated-elsewhere"})
                    other.commit()
                return issue(email, role)

            monkeypatch.setattr(tokens, "issue_refresh_token", racing_issue)

            with transaction(main_db):
                result = manager.rotate(refresh.token)
        finally:
            main_db.close()

        assert result.status is RotationStatus.reused
        assert count_sessions(teacher.id) == 0

    def test_unverifiable_token_without_row_mutates_nothing(self, manager, teacher, count_sessions):
        _login(manager, teacher)

        with transaction(manager.db):
            result = manager.rotate("definitely.not.valid")

        assert result.status is RotationStatus.invalid
        assert count_sessions(teacher.id) == 1

    def test_stored_but_forged_token_is_rejected_without_mutation(self, db, manager, teacher):
        db.add(
            RefreshSession(
                principal_id=teacher.id,
                principal_type=PrincipalType.teacher,
                refresh_token="forged-token",
                expires_at=int(time.time()) + 3600,
                device_label="unknown",
            )
        )
        db.commit()

        with transaction(db):
            result = manager.rotate("forged-token")

        assert result.status is RotationStatus.invalid
        assert db.query(RefreshSession).one().refresh_token == "forged-token"

    def test_expired_session_row_is_rejected_without_mutation(self, db, manager, teacher):
        refresh = _login(manager, teacher)
        past = int(time.time()) - 10
        db.query(RefreshSession).update({RefreshSession.expires_at: past})
        db.commit()

        with transaction(db):
            result = manager.rotate(refresh.token)

        assert result.status is RotationStatus.invalid
        db.expire_all()
        row = db.query(RefreshSession).one()
        assert row.refresh_token == refresh.token
        assert row.expires_at == past

    def test_expired_refresh_token_is_rejected_without_mutation(self, db, settings, teacher):
        expired_tokens = TokenService(
            replace(TokenConfig.from_settings(settings), refresh_ttl=timedelta(seconds=-5))
        )
        manager = SessionManager(db, expired_tokens)
        refresh = _login(manager, teacher)

        with transaction(db):
            result = manager.rotate(refresh.token)

        assert result.status is RotationStatus.invalid
        assert db.query(RefreshSession).one().refresh_token == refresh.token

    def test_suspended_principal_cannot_rotate(self, db, manager, teacher):
        refresh = _login(manager, teacher)
        teacher.is_suspended = True
        db.commit()

        with transaction(db):
            result = manager.rotate(refresh.token)

        assert result.status is RotationStatus.invalid

    def test_deleted_principal_is_unknown(self, db, manager, teacher):
        refresh = _login(manager, teacher)
        db.delete(teacher)
        db.commit()

        with transaction(db):
            result = manager.rotate(refresh.token)

        assert result.status is RotationStatus.unknown_principal
