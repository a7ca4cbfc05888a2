import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import jwt
import pytest
import pytest_asyncio
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.application.container import ApplicationContainer
from storefront.core.models import Item, Order, OrderStatusEnum
from storefront.infrastructure.clock import Clock
from storefront.infrastructure.db_schema import metadata
from storefront.infrastructure.repositories import OrderRepository, OutboxRepository
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.presentation.app import build_api

CONFIG_PATH = Path(__file__).parent / "storefront" / "config.yaml"
API_KEY = "test-integration-key"
JWT_SECRET = "test-jwt-secret"
BUYER_EMAIL = "buyer@example.com"


class FakeClock(Clock):
    def __init__(self, now: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self._now = now
        self._monotonic = 1000.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        self._monotonic += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
async def container(tmp_path: Path, clock: FakeClock) -> ApplicationContainer:
    container = ApplicationContainer()
    container.config.from_yaml(CONFIG_PATH, required=True)
    container.config.infrastructure.db.dsn.from_value(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}"
    )
    container.config.integration.api_key.from_value(API_KEY)
    container.config.integration.jwt_secret.from_value(JWT_SECRET)
    container.infrastructure_container.clock.override(providers.Object(clock))
    return container


@pytest.fixture()
async def session_factory(
    container: ApplicationContainer,
) -> async_sessionmaker[AsyncSession]:
    return container.infrastructure_container.session_factory()


@pytest_asyncio.fixture()
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def unit_of_work(container: ApplicationContainer) -> UnitOfWork:
    return container.infrastructure_container.unit_of_work()


@pytest.fixture()
def fast_api_app(container: ApplicationContainer):
    app = build_api(container)
    yield app
    container.unwire()


@pytest_asyncio.fixture(autouse=True)
async def setup_database(container: ApplicationContainer):
    engine = container.infrastructure_container.async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture()
async def test_async_client(fast_api_app) -> AsyncClient:
    async with AsyncClient(
        transport=ASGITransport(app=fast_api_app),
        base_url="http://test.com",
    ) as client:
        client.app = fast_api_app
        yield client


@pytest.fixture
def item_factory():
    def _create_item(**kwargs):
        defaults = {
            "product_id": str(uuid.uuid4()),
            "name": "Test item",
            "price": Decimal("10.50"),
            "quantity": 1,
        }
        defaults.update(kwargs)
        return Item(**defaults)

    return _create_item


@pytest.fixture
def order_factory(unit_of_work: UnitOfWork, clock: FakeClock, item_factory):
    async def _create_order(
        status: OrderStatusEnum = OrderStatusEnum.PENDING,
        items: list[Item] | None = None,
        created_at: datetime | None = None,
    ) -> Order:
        if items is None:
            items = [item_factory(), item_factory()]
        async with unit_of_work() as uow:
            order = await uow.orders.create(
                OrderRepository.CreateDTO(
                    user_id=str(uuid.uuid4()),
                    email=BUYER_EMAIL,
                    items=items,
                    total_price=sum(
                        (item.price * item.quantity for item in items),
                        start=Decimal("0"),
                    ),
                    status=status,
                    created_at=created_at or clock.now(),
                )
            )
            await uow.commit()
            return order

    return _create_order


@pytest.fixture
def auth_token():
    def _token(user_id: str = "user-1", email: str = BUYER_EMAIL, secret=JWT_SECRET):
        return jwt.encode({"id": user_id, "email": email}, secret, algorithm="HS256")

    return _token


@pytest.fixture
def integration_headers(auth_token) -> dict[str, str]:
    return {"x-api-key": API_KEY, "Authorization": f"Bearer {auth_token()}"}


@pytest.fixture
async def outbox_repo(session: AsyncSession) -> OutboxRepository:
    return OutboxRepository(session)
