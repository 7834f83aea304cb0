"""
Tests for the signed-in session and the favorites store.
"""

import asyncio
import pytest

from listing_api.client.session import AuthSession, SessionStore
from listing_api.gateway import MemoryGateway
from listing_api.services.identity import IdentityProvider
from listing_api.utils.exceptions import FavoritesConflictError, GatewayError, InvalidCredentialsError
from tests.conftest import TEST_PASSWORD, PropertyFactory, UserFactory


class BlockingGateway(MemoryGateway):
    """Memory gateway whose favorites writes wait for ``release``."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()
        self.writes = 0

    async def update_favorites(self, user_id, favorites, expected_version):
        self.writes += 1
        await self.release.wait()
        return await super().update_favorites(user_id, favorites, expected_version)


class BrokenWritesGateway(MemoryGateway):
    async def update_favorites(self, user_id, favorites, expected_version):
        raise GatewayError("update favorites", "timeout")


class SlowUserLoadGateway(MemoryGateway):
    """Memory gateway whose user lookups wait for ``release``."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()
        self.lookups = 0

    async def get_user(self, user_id):
        self.lookups += 1
        await self.release.wait()
        return await super().get_user(user_id)


async def signed_in_store(identity_provider: IdentityProvider, gateway: MemoryGateway):
    """Store attached to a session signed in as a fresh account."""
    identity = await identity_provider.create_account(UserFactory.unique_email(), TEST_PASSWORD)
    session = AuthSession(identity_provider)
    store = SessionStore(gateway)
    store.attach(session)
    await session.sign_in(identity.email, TEST_PASSWORD)
    return session, store


class TestAuthSession:
    """Test sign-in, restore and sign-out."""

    @pytest.mark.asyncio
    async def test_sign_in_publishes_identity(self, identity_provider: IdentityProvider):
        identity = await identity_provider.create_account("buyer@example.com", TEST_PASSWORD)
        session = AuthSession(identity_provider)
        published = []

        async def listener(current):
            published.append(current)

        session.subscribe(listener)
        await session.sign_in("buyer@example.com", TEST_PASSWORD)

        assert session.is_signed_in
        assert session.access_token
        assert published == [identity]

    @pytest.mark.asyncio
    async def test_sign_in_with_wrong_password(self, identity_provider: IdentityProvider):
        await identity_provider.create_account("buyer@example.com", TEST_PASSWORD)
        session = AuthSession(identity_provider)

        with pytest.raises(InvalidCredentialsError):
            await session.sign_in("buyer@example.com", "wrongpassword")

        assert not session.is_signed_in

    @pytest.mark.asyncio
    async def test_restore_from_token(self, identity_provider: IdentityProvider):
        identity = await identity_provider.create_account("buyer@example.com", TEST_PASSWORD)
        token, _ = identity_provider.issue_token(identity)
        session = AuthSession(identity_provider)

        restored = await session.restore(token)

        assert restored.uid == identity.uid
        assert session.access_token == token


class TestSessionStore:
    """Test user record loading and favorites toggling."""

    @pytest.mark.asyncio
    async def test_attach_twice_fails(self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway):
        store = SessionStore(memory_gateway)
        store.attach(AuthSession(identity_provider))

        with pytest.raises(RuntimeError):
            store.attach(AuthSession(identity_provider))

    @pytest.mark.asyncio
    async def test_detached_store_stops_following_session(
        self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway
    ):
        session, store = await signed_in_store(identity_provider, memory_gateway)
        store.detach()

        await session.sign_out()

        assert store.user is not None
        store.attach(session)

    @pytest.mark.asyncio
    async def test_sign_in_creates_user_record(self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway):
        session, store = await signed_in_store(identity_provider, memory_gateway)

        assert store.user is not None
        assert store.user.id == session.identity.uid
        assert store.user.favorites == []
        assert store.user.favorites_version == 0
        assert store.user.display_name == session.identity.email.split("@")[0]
        assert await memory_gateway.get_user(session.identity.uid) == store.user

    @pytest.mark.asyncio
    async def test_sign_out_during_user_load_wins(self, identity_provider: IdentityProvider):
        gateway = SlowUserLoadGateway()
        identity = await identity_provider.create_account(UserFactory.unique_email(), TEST_PASSWORD)
        session = AuthSession(identity_provider)
        store = SessionStore(gateway)
        store.attach(session)

        signing_in = asyncio.create_task(session.sign_in(identity.email, TEST_PASSWORD))
        while gateway.lookups == 0:
            await asyncio.sleep(0)
        await session.sign_out()

        gateway.release.set()
        await signing_in

        assert session.identity is None
        assert store.identity is None
        assert store.user is None
        assert await store.add_to_favorites("prop-1") is False
        assert await gateway.get_user(identity.uid) is not None

    @pytest.mark.asyncio
    async def test_sign_out_clears_user(self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway):
        session, store = await signed_in_store(identity_provider, memory_gateway)

        await session.sign_out()

        assert store.user is None
        assert store.favorites == []

    @pytest.mark.asyncio
    async def test_add_then_remove_restores_favorites(
        self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway
    ):
        _, store = await signed_in_store(identity_provider, memory_gateway)
        record = await PropertyFactory.create_property(memory_gateway)
        before = store.favorites

        assert await store.add_to_favorites(record.id) is True
        assert store.is_favorite(record.id)

        assert await store.remove_from_favorites(record.id) is True
        assert store.favorites == before
        assert store.user.favorites_version == 2

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway):
        _, store = await signed_in_store(identity_provider, memory_gateway)

        await store.add_to_favorites("prop-1")
        await store.add_to_favorites("prop-1")

        assert store.favorites == ["prop-1"]

    @pytest.mark.asyncio
    async def test_toggle_favorite(self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway):
        _, store = await signed_in_store(identity_provider, memory_gateway)

        await store.toggle_favorite("prop-1")
        assert store.is_favorite("prop-1")

        await store.toggle_favorite("prop-1")
        assert not store.is_favorite("prop-1")

    @pytest.mark.asyncio
    async def test_conflict_adopts_remote_record(
        self, identity_provider: IdentityProvider, memory_gateway: MemoryGateway
    ):
        """A write from another device wins; the store reloads and reports it."""
        session, store = await signed_in_store(identity_provider, memory_gateway)
        await memory_gateway.update_favorites(session.identity.uid, ["prop-remote"], 0)

        with pytest.raises(FavoritesConflictError) as exc_info:
            await store.add_to_favorites("prop-local")

        assert exc_info.value.current.favorites == ["prop-remote"]
        assert store.favorites == ["prop-remote"]
        assert store.user.favorites_version == 1
        assert not store.is_pending("prop-local")

        assert await store.add_to_favorites("prop-local") is True
        assert store.favorites == ["prop-remote", "prop-local"]

    @pytest.mark.asyncio
    async def test_repeated_toggle_while_in_flight_is_ignored(self, identity_provider: IdentityProvider):
        gateway = BlockingGateway()
        _, store = await signed_in_store(identity_provider, gateway)

        first = asyncio.create_task(store.add_to_favorites("prop-1"))
        await asyncio.sleep(0)
        assert store.is_pending("prop-1")

        assert await store.add_to_favorites("prop-1") is False

        gateway.release.set()
        assert await first is True
        assert gateway.writes == 1
        assert store.favorites == ["prop-1"]
        assert not store.is_pending("prop-1")

    @pytest.mark.asyncio
    async def test_gateway_failure_keeps_local_state(self, identity_provider: IdentityProvider):
        gateway = BrokenWritesGateway()
        _, store = await signed_in_store(identity_provider, gateway)

        assert await store.add_to_favorites("prop-1") is False

        assert store.favorites == []
        assert store.error is not None

    @pytest.mark.asyncio
    async def test_signed_out_toggle_is_a_no_op(self, memory_gateway: MemoryGateway):
        store = SessionStore(memory_gateway)

        assert await store.add_to_favorites("prop-1") is False
        assert not store.is_favorite("prop-1")
