from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from skintrack.core.tokens import hash_jti
from skintrack.models.refresh_token import RefreshToken
from skintrack.services.refresh_tokens import (
    DuplicateRefreshTokenError,
    cleanup_user_refresh_tokens,
    find_valid_refresh_token,
    revoke_all_user_refresh_tokens,
    revoke_refresh_token,
    store_refresh_token,
)


def _future(days: int = 7) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def _past(seconds: int = 60) -> datetime:
    return datetime.now(timezone.utc) - timedelta(seconds=seconds)


def _store(db, user_id: str, *, jti: str | None = None, expires_at: datetime | None = None) -> str:
    jti = jti or str(uuid.uuid4())
    store_refresh_token(db, user_id=user_id, jti=jti, expires_at=expires_at or _future())
    return jti


def test_store_keeps_only_the_hash_and_client_metadata(db_session, user):
    jti = str(uuid.uuid4())
    store_refresh_token(
        db_session,
        user_id=user.id,
        jti=jti,
        expires_at=_future(),
        ip="10.0.0.1",
        user_agent="Mozilla/5.0",
    )

    row = db_session.query(RefreshToken).one()
    assert row.jti_hash == hash_jti(jti)
    assert row.jti_hash != jti
    assert row.revoked_at is None
    assert row.ip == "10.0.0.1"
    assert row.user_agent == "Mozilla/5.0"


def test_store_rejects_duplicate_jti(db_session, user):
    jti = _store(db_session, user.id)

    with pytest.raises(DuplicateRefreshTokenError):
        _store(db_session, user.id, jti=jti)

    # The first row is untouched and the session is usable again.
    assert db_session.query(RefreshToken).count() == 1
    assert find_valid_refresh_token(db_session, jti) is not None


def test_find_valid_returns_live_row(db_session, user):
    jti = _store(db_session, user.id)

    row = find_valid_refresh_token(db_session, jti)
    assert row is not None
    assert row.user_id == user.id


def test_find_valid_ignores_unknown_revoked_and_expired(db_session, user):
    revoked = _store(db_session, user.id)
    revoke_refresh_token(db_session, revoked)
    expired = _store(db_session, user.id, expires_at=_past())

    assert find_valid_refresh_token(db_session, str(uuid.uuid4())) is None
    assert find_valid_refresh_token(db_session, revoked) is None
    assert find_valid_refresh_token(db_session, expired) is None


def test_revoke_is_idempotent_and_keeps_first_timestamp(db_session, user):
    jti = _store(db_session, user.id)

    revoke_refresh_token(db_session, jti)
    first = db_session.query(RefreshToken).one().revoked_at
    assert first is not None

    revoke_refresh_token(db_session, jti)
    db_session.expire_all()
    assert db_session.query(RefreshToken).one().revoked_at == first


def test_revoke_unknown_jti_is_a_noop(db_session, user):
    jti = _store(db_session, user.id)

    revoke_refresh_token(db_session, str(uuid.uuid4()))

    assert find_valid_refresh_token(db_session, jti) is not None


def test_revoke_all_only_touches_that_user(db_session, make_user):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    alice_jtis = [_store(db_session, alice.id) for _ in range(3)]
    bob_jti = _store(db_session, bob.id)

    assert revoke_all_user_refresh_tokens(db_session, alice.id) == 3
    assert all(find_valid_refresh_token(db_session, j) is None for j in alice_jtis)
    assert find_valid_refresh_token(db_session, bob_jti) is not None

    # Already revoked rows are not counted again.
    assert revoke_all_user_refresh_tokens(db_session, alice.id) == 0


def test_cleanup_deletes_revoked_and_expired_rows_only(db_session, make_user):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")

    live = _store(db_session, alice.id)
    revoked = _store(db_session, alice.id)
    revoke_refresh_token(db_session, revoked)
    _store(db_session, alice.id, expires_at=_past())
    bob_revoked = _store(db_session, bob.id)
    revoke_refresh_token(db_session, bob_revoked)

    assert cleanup_user_refresh_tokens(db_session, alice.id) == 2

    remaining = {r.jti_hash for r in db_session.query(RefreshToken).all()}
    assert remaining == {hash_jti(live), hash_jti(bob_revoked)}


def test_cleanup_with_nothing_to_delete_returns_zero(db_session, user):
    _store(db_session, user.id)
    assert cleanup_user_refresh_tokens(db_session, user.id) == 0


def test_refresh_token_table_columns():
    assert set(RefreshToken.__table__.columns.keys()) == {
        "id",
        "user_id",
        "jti_hash",
        "expires_at",
        "revoked_at",
        "ip",
        "user_agent",
        "created_at",
    }
