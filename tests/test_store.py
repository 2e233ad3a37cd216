"""Unit tests for auth/store.py -- 2FA record persistence and lifecycle transitions."""

import pytest

from auth.models import TwoFactorState
from auth.store import TwoFactorStore


@pytest.fixture
def store():
    s = TwoFactorStore("sqlite:///:memory:")
    yield s
    s.close()


def test_missing_user_returns_none(store: TwoFactorStore) -> None:
    assert store.get("nobody") is None


def test_save_generated_creates_record(store: TwoFactorStore) -> None:
    store.save_generated("u1", "SECRETA")
    record = store.get("u1")
    assert record.secret == "SECRETA"
    assert record.state == TwoFactorState.generated
    assert record.updated_at


def test_full_lifecycle(store: TwoFactorStore) -> None:
    store.save_generated("u1", "SECRETA")
    for state in (TwoFactorState.pending_enrollment, TwoFactorState.confirmed, TwoFactorState.active):
        assert store.advance("u1", state).state == state
        assert store.get("u1").state == state
    assert store.get("u1").state.enabled


@pytest.mark.parametrize(
    "path",
    [
        [TwoFactorState.confirmed],
        [TwoFactorState.active],
        [TwoFactorState.pending_enrollment, TwoFactorState.active],
        [TwoFactorState.pending_enrollment, TwoFactorState.pending_enrollment],
    ],
)
def test_illegal_transitions_rejected(store: TwoFactorStore, path) -> None:
    store.save_generated("u1", "SECRETA")
    *ok, bad = path
    for state in ok:
        store.advance("u1", state)
    with pytest.raises(ValueError, match="Illegal 2FA transition"):
        store.advance("u1", bad)


def test_advance_without_record_rejected(store: TwoFactorStore) -> None:
    with pytest.raises(ValueError, match="No 2FA secret"):
        store.advance("ghost", TwoFactorState.pending_enrollment)


def test_re_enrollment_replaces_unconfirmed_secret(store: TwoFactorStore) -> None:
    store.save_generated("u1", "FIRST")
    store.advance("u1", TwoFactorState.pending_enrollment)
    store.save_generated("u1", "SECOND")
    record = store.get("u1")
    assert record.secret == "SECOND"
    assert record.state == TwoFactorState.generated


def test_re_enrollment_refused_once_enabled(store: TwoFactorStore) -> None:
    store.save_generated("u1", "FIRST")
    store.advance("u1", TwoFactorState.pending_enrollment)
    store.advance("u1", TwoFactorState.confirmed)
    with pytest.raises(ValueError, match="already enabled"):
        store.save_generated("u1", "SECOND")
    assert store.get("u1").secret == "FIRST"


def test_delete(store: TwoFactorStore) -> None:
    store.save_generated("u1", "SECRETA")
    assert store.delete("u1") is True
    assert store.get("u1") is None
    assert store.delete("u1") is False


def test_records_are_per_user(store: TwoFactorStore) -> None:
    store.save_generated("u1", "ONE")
    store.save_generated("u2", "TWO")
    store.advance("u1", TwoFactorState.pending_enrollment)
    assert store.get("u1").state == TwoFactorState.pending_enrollment
    assert store.get("u2").state == TwoFactorState.generated
