import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ...domain.errors import DuplicateEmail, StoreUnavailable, UserNotFound
from ...domain.models import MfaDisabled, MfaEnabled, MfaPending, MfaState, User, normalize_email
from ...domain.ports.persistence import CredentialStore
from .memory import UserLocks

logger = logging.getLogger(__name__)

_MEMORY = ":memory:"


class SQLiteCredentialStore(CredentialStore):
    """SQLite-backed implementation of the credential store."""

    def __init__(self, path: Union[str, Path]) -> None:
        if str(path) != _MEMORY:
            path = Path(path)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.error("Cannot create database directory %s: %s", path.parent, exc)
                raise StoreUnavailable() from exc
        try:
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
        except sqlite3.Error as exc:
            logger.error("Cannot open database %s: %s", path, exc)
            raise StoreUnavailable() from exc
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._user_locks = UserLocks()
        try:
            self._initialize()
        except sqlite3.Error as exc:
            logger.error("Cannot initialise database %s: %s", path, exc)
            self._conn.close()
            raise StoreUnavailable() from exc

    def _initialize(self) -> None:
        with self._lock, self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL,
                    email_normalized TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    mfa_state TEXT NOT NULL DEFAULT 'disabled',
                    mfa_secret TEXT,
                    mfa_last_step INTEGER,
                    reset_token_hash TEXT,
                    reset_expires_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_reset_token_hash
                    ON users(reset_token_hash);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # CredentialStore API ----------------------------------------------------
    def find_by_email(self, email: str) -> Optional[User]:
        return self._fetch_one(
            "SELECT * FROM users WHERE email_normalized = ?", (normalize_email(email),)
        )

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def find_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE reset_token_hash = ?", (token_hash,))

    def insert(self, user: User) -> User:
        mfa_state, mfa_secret, mfa_last_step = _dump_mfa(user.mfa)
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO users (
                        id, name, email, email_normalized, password_hash, mfa_state,
                        mfa_secret, mfa_last_step, reset_token_hash, reset_expires_at,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.id,
                        user.name,
                        user.email,
                        user.normalized_email,
                        user.password_hash,
                        mfa_state,
                        mfa_secret,
                        mfa_last_step,
                        user.reset_token_hash,
                        _dump_dt(user.reset_expires_at),
                        user.created_at.isoformat(),
                        user.updated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmail() from exc
        except sqlite3.Error as exc:
            logger.error("Insert failed for user %s: %s", user.id, exc)
            raise StoreUnavailable() from exc
        return user

    def update(self, user: User) -> User:
        mfa_state, mfa_secret, mfa_last_step = _dump_mfa(user.mfa)
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    UPDATE users
                    SET name = ?, email = ?, email_normalized = ?, password_hash = ?,
                        mfa_state = ?, mfa_secret = ?, mfa_last_step = ?,
                        reset_token_hash = ?, reset_expires_at = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        user.name,
                        user.email,
                        user.normalized_email,
                        user.password_hash,
                        mfa_state,
                        mfa_secret,
                        mfa_last_step,
                        user.reset_token_hash,
                        _dump_dt(user.reset_expires_at),
                        user.updated_at.isoformat(),
                        user.id,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmail() from exc
        except sqlite3.Error as exc:
            logger.error("Update failed for user %s: %s", user.id, exc)
            raise StoreUnavailable() from exc
        if cur.rowcount == 0:
            raise UserNotFound()
        return user

    def lock(self, user_id: str):
        return self._user_locks.hold(user_id)

    # ------------------------------------------------------------------
    def _fetch_one(self, query: str, params: tuple) -> Optional[User]:
        try:
            with self._lock:
                row = self._conn.execute(query, params).fetchone()
        except sqlite3.Error as exc:
            logger.error("Lookup failed: %s", exc)
            raise StoreUnavailable() from exc
        return self._row_to_user(row) if row else None

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            mfa=_load_mfa(row["mfa_state"], row["mfa_secret"], row["mfa_last_step"]),
            reset_token_hash=row["reset_token_hash"],
            reset_expires_at=_load_dt(row["reset_expires_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


def _dump_mfa(state: MfaState):
    if isinstance(state, MfaEnabled):
        return "enabled", state.secret, state.last_used_step
    if isinstance(state, MfaPending):
        return "pending", state.secret, None
    return "disabled", None, None


def _load_mfa(state: str, secret: Optional[str], last_step: Optional[int]) -> MfaState:
    if state == "enabled" and secret:
        return MfaEnabled(secret=secret, last_used_step=last_step)
    if state == "pending" and secret:
        return MfaPending(secret=secret)
    return MfaDisabled()


def _dump_dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _load_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
