"""
auth/store.py -- SQLAlchemy Core persistence for 2FA secrets and their lifecycle.

Pattern: Repository + Data Mapper. TwoFactorStore is the repository;
_row_to_record is the mapper. Route code never touches SQL directly.

Lifecycle (one row per user):
  generated -> pending_enrollment -> confirmed -> active
  save_generated() (re)starts a row at "generated"; advance() refuses any
  other jump. Disabling 2FA deletes the row.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import TwoFactorRecord, TwoFactorState

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_two_factor = Table(
    "two_factor_secrets",
    _metadata,
    Column("user_id", String(64), primary_key=True),
    Column("secret", Text, nullable=False),
    Column("state", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_TRANSITIONS: dict[TwoFactorState, set[TwoFactorState]] = {
    TwoFactorState.generated: {TwoFactorState.pending_enrollment},
    TwoFactorState.pending_enrollment: {TwoFactorState.confirmed},
    TwoFactorState.confirmed: {TwoFactorState.active},
    TwoFactorState.active: set(),
}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block on writers."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_record(row) -> TwoFactorRecord:
    return TwoFactorRecord(
        user_id=row.user_id,
        secret=row.secret,
        state=TwoFactorState(row.state),
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TwoFactorStore:
    """Repository for TwoFactorRecord entities.

    Usage:
        store = TwoFactorStore("sqlite:///:memory:")
        store.save_generated("42", secret)
        store.advance("42", TwoFactorState.pending_enrollment)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def get(self, user_id: str) -> TwoFactorRecord | None:
        with self.engine.connect() as conn:
            row = conn.execute(_two_factor.select().where(_two_factor.c.user_id == user_id)).fetchone()
        return _row_to_record(row) if row else None

    def save_generated(self, user_id: str, secret: str) -> None:
        """Store a new secret for user_id in state "generated", replacing any unconfirmed one.

        Raises ValueError if the user already has 2FA enabled.
        """
        existing = self.get(user_id)
        if existing is not None and existing.state.enabled:
            raise ValueError(f"2FA already enabled for user {user_id}")
        values = {"secret": secret, "state": TwoFactorState.generated.value, "updated_at": _now_iso()}
        with self.engine.connect() as conn:
            if existing is None:
                conn.execute(_two_factor.insert().values(user_id=user_id, **values))
            else:
                conn.execute(_two_factor.update().where(_two_factor.c.user_id == user_id).values(**values))
            conn.commit()

    def advance(self, user_id: str, state: TwoFactorState) -> TwoFactorRecord:
        """Move user_id's record to state. Raises ValueError for missing rows or illegal transitions."""
        record = self.get(user_id)
        if record is None:
            raise ValueError(f"No 2FA secret stored for user {user_id}")
        if state not in _TRANSITIONS[record.state]:
            raise ValueError(f"Illegal 2FA transition {record.state.value} -> {state.value}")
        updated_at = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _two_factor.update()
                .where(_two_factor.c.user_id == user_id)
                .values(state=state.value, updated_at=updated_at)
            )
            conn.commit()
        record.state = state
        record.updated_at = updated_at
        return record

    def delete(self, user_id: str) -> bool:
        """Remove user_id's record. Returns True if a row was deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(_two_factor.delete().where(_two_factor.c.user_id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()
