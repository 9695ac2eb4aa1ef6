"""Identity provider that resolves callers to a user id, name and role."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import hmac
from threading import Lock


class Role(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"


@dataclass(slots=True, frozen=True)
class UserIdentity:
    """The caller as seen by the rest of the application."""

    id: str
    name: str
    email: str
    role: Role


@dataclass(slots=True, frozen=True)
class _Account:
    identity: UserIdentity
    password: str


DEMO_TEACHER_ID = "1"

# Demo accounts so a fresh install can be used straight away.
DEMO_ACCOUNTS: tuple[tuple[str, str, str, str, Role], ...] = (
    (DEMO_TEACHER_ID, "Teacher Demo", "teacher@example.com", "password123", Role.TEACHER),
    ("2", "Student Demo", "student@example.com", "password123", Role.STUDENT),
)


class IdentityProvider:
    """In-memory directory of accounts; callers are trusted once resolved."""

    def __init__(self) -> None:
        self._accounts: dict[str, _Account] = {}
        self._lock = Lock()

    @classmethod
    def with_demo_accounts(cls) -> "IdentityProvider":
        provider = cls()
        for user_id, name, email, password, role in DEMO_ACCOUNTS:
            provider.register(UserIdentity(id=user_id, name=name, email=email, role=role), password)
        return provider

    def register(self, identity: UserIdentity, password: str) -> UserIdentity:
        if not password:
            raise ValueError("Password cannot be empty.")
        with self._lock:
            if identity.id in self._accounts:
                raise ValueError(f"User id '{identity.id}' is already registered.")
            self._accounts[identity.id] = _Account(identity=identity, password=password)
        return identity

    def authenticate(self, email: str, password: str, role: Role) -> UserIdentity | None:
        """Return the matching identity, or None when the credentials do not match."""
        normalized = email.strip().lower()
        with self._lock:
            accounts = list(self._accounts.values())
        for account in accounts:
            identity = account.identity
            if identity.email.lower() != normalized or identity.role is not role:
                continue
            if hmac.compare_digest(account.password.encode(), password.encode()):
                return identity
        return None

    def get(self, user_id: str) -> UserIdentity | None:
        with self._lock:
            account = self._accounts.get(user_id)
        return account.identity if account is not None else None
