from contextlib import asynccontextmanager
from functools import cached_property
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.infrastructure.repositories import (
    OrderItemRepository,
    OrderRepository,
    OutboxRepository,
    PaymentRepository,
    ShippingInfoRepository,
)


class Transaction:
    """Repositories bound to one session. Nothing is persisted until `commit`."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @cached_property
    def orders(self) -> OrderRepository:
        return OrderRepository(self._session)

    @cached_property
    def order_items(self) -> OrderItemRepository:
        return OrderItemRepository(self._session)

    @cached_property
    def payments(self) -> PaymentRepository:
        return PaymentRepository(self._session)

    @cached_property
    def shipping(self) -> ShippingInfoRepository:
        return ShippingInfoRepository(self._session)

    @cached_property
    def outbox(self) -> OutboxRepository:
        return OutboxRepository(self._session)

    async def commit(self) -> None:
        await self._session.commit()


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self) -> AsyncIterator[Transaction]:
        async with self._session_factory() as session:
            try:
                yield Transaction(session)
            finally:
                # Discard anything not committed
                await session.rollback()
