from __future__ import annotations

from typing import ContextManager, Optional, Protocol

from ..models import User


class CredentialStore(Protocol):
    """Abstract storage for user records.

    Email lookups are case-insensitive. ``insert`` raises ``DuplicateEmail``
    when the normalized email is taken; backend failures raise
    ``StoreUnavailable``. Returned users are copies: callers mutate them and
    hand them back through ``update``.
    """

    def find_by_email(self, email: str) -> Optional[User]:
        ...

    def find_by_id(self, user_id: str) -> Optional[User]:
        ...

    def find_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        ...

    def insert(self, user: User) -> User:
        ...

    def update(self, user: User) -> User:
        ...

    def lock(self, user_id: str) -> ContextManager[None]:
        """Serialize read-modify-write cycles on one user record."""
        ...
