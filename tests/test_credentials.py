"""
Tests for core/credentials.py

The ring is a cursor over a fixed list. Rotation must always wrap.
"""

import pytest

from afk_rotator.core.credentials import Credential, CredentialRing
from afk_rotator.core.errors import ConfigError


def make_ring(n: int) -> CredentialRing:
    return CredentialRing([Credential(f"user{i}") for i in range(n)])


class TestCredential:
    """Tests for Credential."""

    def test_defaults(self):
        credential = Credential("Alice")
        assert credential.password == ""
        assert credential.auth == "offline"

    def test_password_not_in_repr(self):
        """Secrets never end up in log lines."""
        credential = Credential("Alice", password="hunter2")
        assert "hunter2" not in repr(credential)

    def test_missing_username_rejected(self):
        with pytest.raises(ConfigError):
            Credential("").validate()

    def test_unknown_auth_rejected(self):
        with pytest.raises(ConfigError):
            Credential("Alice", auth="carrier-pigeon").validate()

    def test_immutable(self):
        credential = Credential("Alice")
        with pytest.raises(AttributeError):
            credential.username = "Bob"


class TestCredentialRing:
    """Tests for CredentialRing."""

    @pytest.mark.parametrize("n", [1, 2, 3, 4, 7])
    def test_full_cycle_returns_to_start(self, n):
        """N advances bring the cursor back where it started."""
        ring = make_ring(n)
        start = ring.cursor
        for _ in range(n):
            ring.advance()
        assert ring.cursor == start

    def test_advance_visits_in_order(self):
        ring = make_ring(3)
        seen = []
        for _ in range(5):
            seen.append(ring.current().username)
            ring.advance()
        assert seen == ["user0", "user1", "user2", "user0", "user1"]

    def test_single_credential_always_current(self):
        ring = make_ring(1)
        ring.advance()
        ring.advance()
        assert ring.current().username == "user0"
        assert ring.cursor == 0

    def test_empty_ring_rejected(self):
        with pytest.raises(ConfigError):
            CredentialRing([])

    def test_invalid_member_rejected(self):
        with pytest.raises(ConfigError):
            CredentialRing([Credential("ok"), Credential("  ")])

    def test_start_wraps(self):
        ring = CredentialRing([Credential("a"), Credential("b")], start=3)
        assert ring.current().username == "b"

    def test_from_pool(self):
        """Pool rings are named <prefix>1..<prefix>N and share a password."""
        ring = CredentialRing.from_pool("WatchDog", 4, password="pw", auth="offline")
        names = [c.username for c in ring]
        assert names == ["WatchDog1", "WatchDog2", "WatchDog3", "WatchDog4"]
        assert all(c.password == "pw" for c in ring)
        assert len(ring) == 4

    def test_from_pool_rejects_zero(self):
        with pytest.raises(ConfigError):
            CredentialRing.from_pool("WatchDog", 0)
