"""
core/credentials.py

The credential ring: an ordered, cyclic pool of identities.

The cursor always points at the next credential to activate.
Rotation is pure; nothing here touches the network.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from .errors import ConfigError

AUTH_MODES = ("offline", "microsoft", "mojang")


@dataclass(frozen=True)
class Credential:
    """One identity. Immutable once loaded."""
    username: str
    password: str = field(default="", repr=False)
    auth: str = "offline"

    def validate(self) -> None:
        if not isinstance(self.username, str) or not self.username.strip():
            raise ConfigError("Credential is missing a username")
        if self.auth not in AUTH_MODES:
            raise ConfigError(
                f"Credential {self.username!r} has unknown auth mode {self.auth!r} "
                f"(expected one of {', '.join(AUTH_MODES)})"
            )


class CredentialRing:
    """
    Ordered credentials plus a cursor.

    advance() is cursor = (cursor + 1) mod len. A ring of one
    always reconnects with the same identity.
    """

    def __init__(self, credentials: Sequence[Credential], start: int = 0):
        if not credentials:
            raise ConfigError("Credential ring is empty")
        for credential in credentials:
            credential.validate()
        self._credentials: list[Credential] = list(credentials)
        self._cursor = start % len(self._credentials)

    @classmethod
    def from_pool(
        cls,
        prefix: str,
        size: int,
        password: str = "",
        auth: str = "offline",
    ) -> "CredentialRing":
        """Build <prefix>1 .. <prefix>N sharing one password and auth mode."""
        if size < 1:
            raise ConfigError(f"Credential pool size must be at least 1, got {size}")
        credentials = [
            Credential(username=f"{prefix}{i}", password=password, auth=auth)
            for i in range(1, size + 1)
        ]
        return cls(credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    def current(self) -> Credential:
        return self._credentials[self._cursor]

    def advance(self) -> None:
        self._cursor = (self._cursor + 1) % len(self._credentials)

    def __len__(self) -> int:
        return len(self._credentials)

    def __iter__(self) -> Iterator[Credential]:
        return iter(self._credentials)

    def __repr__(self) -> str:
        names = ", ".join(c.username for c in self._credentials)
        return f"CredentialRing([{names}], cursor={self._cursor})"
