import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterator, Optional

from ...domain.errors import DuplicateEmail, UserNotFound
from ...domain.models import User, normalize_email
from ...domain.ports.persistence import CredentialStore


class UserLocks:
    """Hands out one re-entrant lock per user id.

    Locks are kept for the lifetime of the process, one per id that has ever
    been locked. Accounts are never deleted, so this grows with the user count.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(user_id, threading.RLock())
        with lock:
            yield


class InMemoryCredentialStore(CredentialStore):
    """Process-local credential store backed by dictionaries."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: Dict[str, User] = {}
        self._ids_by_email: Dict[str, str] = {}
        self._ids_by_reset_hash: Dict[str, str] = {}
        self._user_locks = UserLocks()

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._ids_by_email.get(normalize_email(email))
            user = self._users.get(user_id) if user_id else None
        return replace(user) if user else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
        return replace(user) if user else None

    def find_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        if not token_hash:
            return None
        with self._lock:
            user_id = self._ids_by_reset_hash.get(token_hash)
            user = self._users.get(user_id) if user_id else None
        return replace(user) if user else None

    def insert(self, user: User) -> User:
        key = user.normalized_email
        with self._lock:
            if key in self._ids_by_email:
                raise DuplicateEmail()
            self._users[user.id] = replace(user)
            self._ids_by_email[key] = user.id
            if user.reset_token_hash:
                self._ids_by_reset_hash[user.reset_token_hash] = user.id
        return replace(user)

    def update(self, user: User) -> User:
        with self._lock:
            current = self._users.get(user.id)
            if current is None:
                raise UserNotFound()
            if current.normalized_email != user.normalized_email:
                if user.normalized_email in self._ids_by_email:
                    raise DuplicateEmail()
                del self._ids_by_email[current.normalized_email]
                self._ids_by_email[user.normalized_email] = user.id
            if current.reset_token_hash != user.reset_token_hash:
                if current.reset_token_hash:
                    self._ids_by_reset_hash.pop(current.reset_token_hash, None)
                if user.reset_token_hash:
                    self._ids_by_reset_hash[user.reset_token_hash] = user.id
            self._users[user.id] = replace(user)
        return replace(user)

    def lock(self, user_id: str):
        return self._user_locks.hold(user_id)
