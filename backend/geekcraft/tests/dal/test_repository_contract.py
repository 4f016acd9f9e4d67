"""Behavior every AuthRepository must share, run against all four backends."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import pytest

from geekcraft.dal.exceptions import ConflictError, NotFoundError

if TYPE_CHECKING:
    from geekcraft.dal.repository import AuthRepository

FAKE_BCRYPT_HASH = "$2b$12$fakehash"


class TestCreateUser:
    async def test_assigns_sequential_ids_from_one(self, repository: AuthRepository) -> None:
        alice = await repository.create_user("alice", FAKE_BCRYPT_HASH)
        bob = await repository.create_user("bob", FAKE_BCRYPT_HASH)

        assert alice.id == 1
        assert bob.id == 2
        assert alice.username == "alice"
        assert alice.password_hash == FAKE_BCRYPT_HASH
        assert alice.created_at <= time.time()

    async def test_duplicate_username_raises_conflict(self, repository: AuthRepository) -> None:
        await repository.create_user("bob", "hash-1")

        with pytest.raises(ConflictError, match="already exists"):
            await repository.create_user("bob", "hash-2")

    async def test_duplicate_keeps_original_record(self, repository: AuthRepository) -> None:
        original = await repository.create_user("bob", "hash-1")
        with pytest.raises(ConflictError):
            await repository.create_user("bob", "hash-2")

        stored = await repository.get_user_by_username("bob")
        assert stored is not None
        assert stored.id == original.id
        assert stored.password_hash == "hash-1"

    async def test_usernames_are_case_sensitive(self, repository: AuthRepository) -> None:
        await repository.create_user("alice", FAKE_BCRYPT_HASH)
        other = await repository.create_user("Alice", FAKE_BCRYPT_HASH)

        assert other.id == 2


class TestGetUserByUsername:
    async def test_returns_stored_user(self, repository: AuthRepository) -> None:
        created = await repository.create_user("alice", FAKE_BCRYPT_HASH)

        result = await repository.get_user_by_username("alice")
        assert result is not None
        assert result.id == created.id
        assert result.password_hash == FAKE_BCRYPT_HASH

    async def test_returns_none_for_unknown(self, repository: AuthRepository) -> None:
        assert await repository.get_user_by_username("nobody") is None


class TestCreateSession:
    async def test_session_copies_username(self, repository: AuthRepository) -> None:
        user = await repository.create_user("alice", FAKE_BCRYPT_HASH)
        expires_at = time.time() + 3600

        await repository.create_session("tok-1", user.id, expires_at)

        session = await repository.get_session("tok-1")
        assert session is not None
        assert session.token == "tok-1"
        assert session.user_id == user.id
        assert session.username == "alice"
        assert session.expires_at == pytest.approx(expires_at, abs=1e-2)
        assert session.created_at < session.expires_at

    async def test_unknown_user_raises_not_found(self, repository: AuthRepository) -> None:
        with pytest.raises(NotFoundError):
            await repository.create_session("tok-1", 999, time.time() + 3600)


class TestGetSession:
    async def test_returns_none_for_unknown_token(self, repository: AuthRepository) -> None:
        assert await repository.get_session("missing") is None

    async def test_past_expiry_is_never_returned(self, repository: AuthRepository) -> None:
        user = await repository.create_user("alice", FAKE_BCRYPT_HASH)
        await repository.create_session("tok-old", user.id, time.time() - 10)

        assert await repository.get_session("tok-old") is None
        # Still gone on a second read
        assert await repository.get_session("tok-old") is None


class TestDeleteSession:
    async def test_removes_session(self, repository: AuthRepository) -> None:
        user = await repository.create_user("alice", FAKE_BCRYPT_HASH)
        await repository.create_session("tok-1", user.id, time.time() + 3600)

        await repository.delete_session("tok-1")

        assert await repository.get_session("tok-1") is None

    async def test_is_idempotent(self, repository: AuthRepository) -> None:
        user = await repository.create_user("alice", FAKE_BCRYPT_HASH)
        await repository.create_session("tok-1", user.id, time.time() + 3600)

        await repository.delete_session("tok-1")
        await repository.delete_session("tok-1")
        await repository.delete_session("never-issued")


class TestDeleteExpiredSessions:
    async def test_keeps_live_sessions(self, repository: AuthRepository, backend: str) -> None:
        user = await repository.create_user("alice", FAKE_BCRYPT_HASH)
        await repository.create_session("tok-live", user.id, time.time() + 3600)
        await repository.create_session("tok-old", user.id, time.time() - 10)

        removed = await repository.delete_expired_sessions()

        # Redis expires keys natively; its sweep is a no-op.
        assert removed == (0 if backend == "redis" else 1)
        assert await repository.get_session("tok-live") is not None
        assert await repository.get_session("tok-old") is None

    async def test_empty_store(self, repository: AuthRepository) -> None:
        assert await repository.delete_expired_sessions() == 0
