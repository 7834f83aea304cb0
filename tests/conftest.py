"""
Test configuration and fixtures for the property catalog.
Provides database and gateway fixtures, test data factories, and common test utilities.
"""

import pytest
import uuid
from datetime import date, timedelta
from typing import AsyncGenerator, Dict, Optional, Tuple
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from listing_api.main import app
from listing_api.database import create_engine_for_url, create_session_factory, create_tables
from listing_api.gateway import ListingGateway, MemoryGateway, SqlGateway
from listing_api.models.property import MarketingType, PropertyType
from listing_api.models.user import UserRole
from listing_api.schemas.property import PropertyCreate
from listing_api.schemas.records import Identity, PropertyRecord, UserRecord
from listing_api.services.favorites import new_user_record
from listing_api.services.identity import IdentityProvider, PasswordResetNotifier
from listing_api.services.media import MediaService
from listing_api.utils.dependencies import get_gateway, get_identity_provider, get_media_service


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpassword123"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with every table created."""
    test_engine = create_engine_for_url(TEST_DATABASE_URL)
    await create_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return create_session_factory(engine)


# Gateway and service fixtures
@pytest.fixture
def sql_gateway(session_factory: async_sessionmaker) -> SqlGateway:
    return SqlGateway(session_factory)


@pytest.fixture
def memory_gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture(params=["sql", "memory"])
def gateway(request, sql_gateway: SqlGateway, memory_gateway: MemoryGateway) -> ListingGateway:
    """Each gateway backend in turn."""
    return sql_gateway if request.param == "sql" else memory_gateway


class RecordingResetNotifier(PasswordResetNotifier):
    """Keeps sent reset tokens in memory instead of delivering them."""

    def __init__(self):
        super().__init__("http://test/reset-password")
        self.sent = []

    async def send(self, identity: Identity, token: str) -> None:
        self.sent.append((identity.email, token))


@pytest.fixture
def reset_notifier() -> RecordingResetNotifier:
    return RecordingResetNotifier()


@pytest.fixture
def identity_provider(session_factory: async_sessionmaker, reset_notifier: RecordingResetNotifier) -> IdentityProvider:
    return IdentityProvider(session_factory, notifier=reset_notifier)


@pytest.fixture
def media_service(tmp_path) -> MediaService:
    return MediaService(media_dir=str(tmp_path / "media"), base_url="http://test/media-files")


@pytest.fixture
async def async_client(
    sql_gateway: SqlGateway,
    identity_provider: IdentityProvider,
    media_service: MediaService
) -> AsyncGenerator[AsyncClient, None]:
    """Async API client wired to the test database and media directory."""
    async def override_gateway():
        return sql_gateway

    async def override_identity_provider():
        return identity_provider

    async def override_media_service():
        return media_service

    app.dependency_overrides[get_gateway] = override_gateway
    app.dependency_overrides[get_identity_provider] = override_identity_provider
    app.dependency_overrides[get_media_service] = override_media_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Test data factories
class PropertyFactory:
    """Factory for creating test properties."""

    BASE_DATE = date(2024, 1, 1)

    @staticmethod
    def create_property_data(
        region: str = "BSD",
        property_type: PropertyType = PropertyType.HOUSE,
        marketing_type: MarketingType = MarketingType.FOR_SALE,
        price: int = 1_500_000_000,
        bedrooms: int = 3,
        bathrooms: int = 2,
        listed_on: Optional[date] = None,
        **extra
    ) -> dict:
        """Create validated property data ready for a gateway."""
        return PropertyCreate(
            region=region,
            property_type=property_type,
            marketing_type=marketing_type,
            price=price,
            bedrooms=bedrooms,
            bathrooms=bathrooms,
            listed_on=listed_on or PropertyFactory.BASE_DATE,
            **extra
        ).to_store_data()

    @staticmethod
    async def create_property(gateway: ListingGateway, **fields) -> PropertyRecord:
        """Create a test property through the gateway."""
        return await gateway.create_property(PropertyFactory.create_property_data(**fields))

    @staticmethod
    async def create_many(gateway: ListingGateway, count: int, **fields) -> list:
        """Create ``count`` properties listed on consecutive days, oldest first."""
        records = []
        for i in range(count):
            listed_on = PropertyFactory.BASE_DATE + timedelta(days=i)
            records.append(await PropertyFactory.create_property(
                gateway, code=i + 1, listed_on=listed_on, **fields
            ))
        return records

    @staticmethod
    def create_record(index: int = 0, region: str = "BSD", **fields) -> PropertyRecord:
        """In-memory record that never touches a gateway."""
        return PropertyRecord(
            id=f"prop-{index}",
            code=index,
            region=region,
            property_type=fields.pop("property_type", PropertyType.HOUSE),
            marketing_type=fields.pop("marketing_type", MarketingType.FOR_SALE),
            listed_on=PropertyFactory.BASE_DATE + timedelta(days=index),
            **fields
        )


class UserFactory:
    """Factory for creating identity accounts with their user records."""

    @staticmethod
    def unique_email() -> str:
        return f"test{uuid.uuid4().hex[:8]}@example.com"

    @staticmethod
    async def create_account(
        identity_provider: IdentityProvider,
        gateway: ListingGateway,
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        role: UserRole = UserRole.USER
    ) -> Tuple[Identity, UserRecord]:
        """Create an identity and its stored user record."""
        identity = await identity_provider.create_account(email or UserFactory.unique_email(), password)
        record = await gateway.create_user(new_user_record(identity, role=role))
        return identity, record

    @staticmethod
    def auth_headers(identity_provider: IdentityProvider, identity: Identity) -> Dict[str, str]:
        token, _ = identity_provider.issue_token(identity)
        return {"Authorization": f"Bearer {token}"}


# Common test fixtures
@pytest.fixture
async def test_admin(identity_provider: IdentityProvider, sql_gateway: SqlGateway) -> Tuple[Identity, UserRecord]:
    """Admin account stored in the SQL gateway."""
    return await UserFactory.create_account(
        identity_provider, sql_gateway, email="admin@example.com", role=UserRole.ADMIN
    )


@pytest.fixture
async def test_user(identity_provider: IdentityProvider, sql_gateway: SqlGateway) -> Tuple[Identity, UserRecord]:
    """Regular account stored in the SQL gateway."""
    return await UserFactory.create_account(
        identity_provider, sql_gateway, email="user@example.com", role=UserRole.USER
    )


@pytest.fixture
def admin_headers(identity_provider: IdentityProvider, test_admin) -> Dict[str, str]:
    return UserFactory.auth_headers(identity_provider, test_admin[0])


@pytest.fixture
def user_headers(identity_provider: IdentityProvider, test_user) -> Dict[str, str]:
    return UserFactory.auth_headers(identity_provider, test_user[0])
