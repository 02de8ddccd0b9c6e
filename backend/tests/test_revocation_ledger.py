from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import Base
from app.core.exceptions import (
    AuthErrorKind,
    InvalidTokenError,
    ResourceNotFoundError,
    ServiceUnavailableError,
)
from app.core.tokens import TokenKind
from app.models.security import RefreshToken
from app.models.user import User


def _expiry(clock, seconds=3600):
    return datetime.fromtimestamp(clock.now + seconds, tz=timezone.utc)


def test_recorded_token_is_live_only_for_its_subject(db, ledger, clock, make_user):
    user = make_user()
    other = make_user(email="other@example.com")

    record = ledger.record(db, "tok-1", user.id, _expiry(clock))

    assert record.id is not None
    assert record.revoked is False
    assert ledger.is_live(db, "tok-1", user.id)
    assert not ledger.is_live(db, "tok-1", other.id)
    assert not ledger.is_live(db, "unknown", user.id)


def test_record_stops_being_live_at_expiry(db, ledger, clock, make_user):
    user = make_user()
    ledger.record(db, "tok-1", user.id, _expiry(clock, 10))

    clock.advance(9)
    assert ledger.is_live(db, "tok-1", user.id)

    clock.advance(1)
    assert not ledger.is_live(db, "tok-1", user.id)


def test_revoke_is_once_only(db, ledger, clock, make_user):
    user = make_user()
    ledger.record(db, "tok-1", user.id, _expiry(clock))

    ledger.revoke(db, "tok-1", user.id)

    assert not ledger.is_live(db, "tok-1", user.id)
    record = db.query(RefreshToken).filter(RefreshToken.token == "tok-1").one()
    assert record.revoked is True
    assert record.revoked_at is not None

    with pytest.raises(ResourceNotFoundError):
        ledger.revoke(db, "tok-1", user.id)


def test_revoke_unknown_token_is_not_found(db, ledger, make_user):
    user = make_user()

    with pytest.raises(ResourceNotFoundError):
        ledger.revoke(db, "never-issued", user.id)


def test_revoke_all_only_touches_one_subject(db, ledger, clock, make_user):
    user = make_user()
    other = make_user(email="other@example.com")
    for token in ("a", "b", "c"):
        ledger.record(db, token, user.id, _expiry(clock))
    ledger.record(db, "d", other.id, _expiry(clock))
    ledger.revoke(db, "c", user.id)

    assert ledger.revoke_all(db, user.id) == 2
    assert not any(ledger.is_live(db, token, user.id) for token in ("a", "b", "c"))
    assert ledger.is_live(db, "d", other.id)
    assert ledger.revoke_all(db, user.id) == 0


def test_rotate_swaps_records_atomically(db, ledger, clock, make_user):
    user = make_user()
    ledger.record(db, "old", user.id, _expiry(clock))

    new_record = ledger.rotate(db, "old", user.id, "new", _expiry(clock))

    assert new_record.token == "new"
    assert not ledger.is_live(db, "old", user.id)
    assert ledger.is_live(db, "new", user.id)


def test_rotate_of_revoked_token_fails_without_inserting(db, ledger, clock, make_user):
    user = make_user()
    ledger.record(db, "old", user.id, _expiry(clock))
    ledger.revoke(db, "old", user.id)

    with pytest.raises(InvalidTokenError) as exc_info:
        ledger.rotate(db, "old", user.id, "new", _expiry(clock))

    assert exc_info.value.kind is AuthErrorKind.REVOKED
    assert db.query(RefreshToken).filter(RefreshToken.token == "new").count() == 0


def test_second_session_loses_rotation_race(tmp_path, ledger, codec, clock):
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = SessionLocal()
    user = User(email="race@example.com", password_hash="hash", role="resident")
    setup.add(user)
    setup.commit()
    user_id = user.id
    old = codec.mint(user_id, TokenKind.REFRESH)
    ledger.record(setup, old.token, user_id, old.expires_at)
    setup.close()

    first, second = SessionLocal(), SessionLocal()
    try:
        # Both requests observe the token as live before either writes.
        assert ledger.is_live(first, old.token, user_id)
        assert ledger.is_live(second, old.token, user_id)

        winner = codec.mint(user_id, TokenKind.REFRESH)
        ledger.rotate(first, old.token, user_id, winner.token, winner.expires_at)

        loser = codec.mint(user_id, TokenKind.REFRESH)
        with pytest.raises(InvalidTokenError):
            ledger.rotate(second, old.token, user_id, loser.token, loser.expires_at)

        live = second.query(RefreshToken).filter(RefreshToken.revoked == False).all()  # noqa: E712
        assert [record.token for record in live] == [winner.token]
    finally:
        first.close()
        second.close()
        engine.dispose()


def test_store_failure_surfaces_as_unavailable(broken_db, ledger, clock):
    with pytest.raises(ServiceUnavailableError):
        ledger.is_live(broken_db, "tok", 1)

    with pytest.raises(ServiceUnavailableError):
        ledger.record(broken_db, "tok", 1, _expiry(clock))

    with pytest.raises(ServiceUnavailableError):
        ledger.revoke_all(broken_db, 1)


def test_expiry_comparison_handles_naive_values(db, ledger, clock, make_user):
    user = make_user()
    naive = datetime.fromtimestamp(clock.now + 5, tz=timezone.utc).replace(tzinfo=None)
    ledger.record(db, "tok", user.id, naive)

    assert ledger.is_live(db, "tok", user.id)
    clock.advance(5)
    assert not ledger.is_live(db, "tok", user.id)
