"""
auth/store.py -- SQLAlchemy Core persistence layer for identities.

Pattern: Repository + Data Mapper. IdentityStore is the repository;
_row_to_identity is the mapper. Route and service code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE index on the lowercased column. Identity
  normalizes email on construction, so case variants collide in the index
  and the insert fails -- it never overwrites.

Invariants checked before any write:
  A Junior must reference a manager that exists in this store. The dataclass
  already rejects a Junior with no manager_id at all.

Concurrency:
  Every method opens its own connection from the engine pool. Writes touch a
  single row. SQLite engines run in WAL mode so readers do not block on a
  writer.

DB path: auth/staffdesk_auth.db unless a database URL is supplied.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.exceptions import DuplicateEmailError, IdentityValidationError
from auth.models import Identity, Role

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'staffdesk_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_identities = Table(
    "identities",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),  # stored lowercased
    Column("password_hash", Text, nullable=False),
    Column("role", String(16), nullable=False, index=True),
    Column("manager_id", String(32), index=True),  # required for Junior, enforced in code
    Column("name", String(100), nullable=False, server_default=""),
    Column("department", String(100)),
    Column("position", String(100)),
    Column("phone", String(32)),
    Column("address", String(255)),
    Column("date_of_birth", String(32)),
    Column("hire_date", String(32)),
    Column("avatar", String(500)),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("last_login", String(32)),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers proceed while a write is in flight.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class IdentityStore:
    """Repository for Identity records.

    Usage:
        store = IdentityStore("sqlite:///:memory:")
        store.save(Identity(email="a@corp.io", role=Role.HR, password_hash=digest))
        identity = store.find_by_email("A@corp.io")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        db_url = db_url or _DEFAULT_DB_URL
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_id(self, identity_id: str) -> Identity | None:
        """Look up an identity by id. Returns None if not found."""
        if not identity_id:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_identities.select().where(_identities.c.id == identity_id)).fetchone()
        return _row_to_identity(row) if row is not None else None

    def find_by_email(self, email: str) -> Identity | None:
        """Look up an identity by email, case-insensitively. Returns None if not found."""
        normalized = (email or "").strip().lower()
        if not normalized:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_identities.select().where(_identities.c.email == normalized)).fetchone()
        return _row_to_identity(row) if row is not None else None

    def has_identities(self) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_identities.c.id).limit(1)).fetchone()
        return row is not None

    def list_identities(self) -> list[Identity]:
        """Return all identities ordered by email."""
        with self.engine.connect() as conn:
            rows = conn.execute(_identities.select().order_by(_identities.c.email)).fetchall()
        return [_row_to_identity(r) for r in rows]

    def list_reports(self, manager_id: str) -> list[Identity]:
        """Return the identities whose manager_id points at manager_id."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _identities.select().where(_identities.c.manager_id == manager_id).order_by(_identities.c.email)
            ).fetchall()
        return [_row_to_identity(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, identity: Identity) -> Identity:
        """Insert a new identity, or update the existing row with the same id.

        Raises:
            IdentityValidationError: a Junior's manager does not resolve, or a
                new identity carries no password hash.
            DuplicateEmailError: another identity already uses this email.

        Returns the stored record as read back from the database.
        """
        if identity.role is Role.JUNIOR and self.find_by_id(identity.manager_id) is None:
            raise IdentityValidationError("Manager not found for Junior identity.")

        values = {
            "email": identity.email,
            "role": identity.role.value,
            "manager_id": identity.manager_id,
            "name": identity.name,
            "department": identity.department,
            "position": identity.position,
            "phone": identity.phone,
            "address": identity.address,
            "date_of_birth": identity.date_of_birth,
            "hire_date": identity.hire_date,
            "avatar": identity.avatar,
            "is_active": 1 if identity.is_active else 0,
            "last_login": identity.last_login,
        }
        # A sanitized copy (password_hash=None) must never wipe the stored hash.
        if identity.password_hash:
            values["password_hash"] = identity.password_hash

        try:
            with self.engine.connect() as conn:
                exists = conn.execute(
                    select(_identities.c.id).where(_identities.c.id == identity.id)
                ).fetchone()
                if exists is not None:
                    conn.execute(_identities.update().where(_identities.c.id == identity.id).values(**values))
                else:
                    if "password_hash" not in values:
                        raise IdentityValidationError("A new identity requires a password hash.")
                    conn.execute(
                        _identities.insert().values(
                            id=identity.id,
                            created_at=identity.created_at or _now_iso(),
                            **values,
                        )
                    )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(f"An identity with email {identity.email!r} already exists.") from exc

        stored = self.find_by_id(identity.id)
        if stored is None:
            # Should never happen; the row was just written.
            raise RuntimeError(f"Identity {identity.id} missing after write")
        return stored

    def set_password_hash(self, identity_id: str, password_hash: str) -> bool:
        """Replace the stored digest. Returns False if identity_id was not found."""
        return self._update(identity_id, password_hash=password_hash)

    def set_active(self, identity_id: str, active: bool) -> bool:
        """Flip is_active. Returns False if identity_id was not found."""
        return self._update(identity_id, is_active=1 if active else 0)

    def update_last_login(self, identity_id: str) -> None:
        """Stamp the current UTC time as last_login."""
        self._update(identity_id, last_login=_now_iso())

    def _update(self, identity_id: str, **fields) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_identities.update().where(_identities.c.id == identity_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_identity(row) -> Identity:
    # Role(...) raises on an unknown stored role -- a corrupt row must not
    # turn into an identity with an unchecked role.
    return Identity(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        manager_id=row.manager_id,
        name=row.name or "",
        department=row.department,
        position=row.position,
        phone=row.phone,
        address=row.address,
        date_of_birth=row.date_of_birth,
        hire_date=row.hire_date,
        avatar=row.avatar,
        is_active=bool(row.is_active),
        last_login=row.last_login,
        created_at=row.created_at,
    )
