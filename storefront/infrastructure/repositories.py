import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Row, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.models import (
    EventTypeEnum,
    Item,
    Order,
    OrderItem,
    OrderItemStatusEnum,
    OrderStatusEnum,
    OrderStatusHistory,
    OutboxEvent,
    OutboxEventStatus,
    Payment,
    PaymentMethodEnum,
    PaymentStatusEnum,
    ShippingInfo,
    ShippingStatusEnum,
)
from storefront.infrastructure.db_schema import (
    order_items_tbl,
    order_statuses_tbl,
    orders_tbl,
    outbox_tbl,
    payments_tbl,
    shipping_infos_tbl,
)


class DoesNotExist(Exception):
    pass


def _as_uuid(value: str | uuid.UUID) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise DoesNotExist(f"Malformed id {value!r}") from None


class OrderItemRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None) -> OrderItem:
        if row is None:
            raise DoesNotExist

        return OrderItem(
            id=str(row._mapping["id"]),
            order_id=str(row._mapping["order_id"]),
            product_id=row._mapping["product_id"],
            name=row._mapping["name"],
            price=row._mapping["price"],
            quantity=row._mapping["quantity"],
            status=row._mapping["status"],
        )

    async def list_by_order(self, order_id: str) -> list[OrderItem]:
        stmt = (
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id == _as_uuid(order_id))
            .order_by(order_items_tbl.c.position)
        )
        result = await self._session.execute(stmt)
        return [self._construct(row) for row in result.fetchall()]

    async def get_by_id(self, item_id: str) -> OrderItem:
        stmt = select(order_items_tbl).where(order_items_tbl.c.id == _as_uuid(item_id))
        result = await self._session.execute(stmt)
        return self._construct(result.fetchone())

    async def set_status(
        self, item_ids: list[str], status: OrderItemStatusEnum
    ) -> None:
        if not item_ids:
            return

        stmt = (
            update(order_items_tbl)
            .where(order_items_tbl.c.id.in_([_as_uuid(i) for i in item_ids]))
            .values(status=status)
        )
        await self._session.execute(stmt)


class OrderRepository:
    class CreateDTO(BaseModel):
        user_id: str
        email: str
        items: list[Item]
        total_price: Decimal
        status: OrderStatusEnum
        created_at: datetime

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(
        row: Row | None, items: list[OrderItem], history: list[Row]
    ) -> Order:
        if row is None:
            raise DoesNotExist

        return Order(
            id=str(row._mapping["id"]),
            user_id=row._mapping["user_id"],
            email=row._mapping["email"],
            total_price=row._mapping["total_price"],
            status=row._mapping["status"],
            items=items,
            status_history=[
                OrderStatusHistory(
                    status=entry._mapping["status"],
                    created_at=entry._mapping["created_at"],
                )
                for entry in history
            ],
            created_at=row._mapping["created_at"],
            updated_at=row._mapping["updated_at"],
        )

    async def _append_history(
        self, order_id: uuid.UUID, status: OrderStatusEnum, at: datetime
    ) -> None:
        stmt = insert(order_statuses_tbl).values(
            {"order_id": order_id, "status": status, "created_at": at}
        )
        await self._session.execute(stmt)

    async def create(self, order: CreateDTO) -> Order:
        stmt_order = (
            insert(orders_tbl)
            .values(
                {
                    "user_id": order.user_id,
                    "email": order.email,
                    "total_price": order.total_price,
                    "status": order.status,
                    "created_at": order.created_at,
                    "updated_at": order.created_at,
                }
            )
            .returning(orders_tbl)
        )
        result_order = await self._session.execute(stmt_order)
        order_row = result_order.fetchone()

        if order.items:
            await self._session.execute(
                insert(order_items_tbl),
                [
                    {
                        "id": uuid.uuid4(),
                        "order_id": order_row.id,
                        "position": position,
                        "product_id": item.product_id,
                        "name": item.name,
                        "price": item.price,
                        "quantity": item.quantity,
                        "status": OrderItemStatusEnum.PENDING,
                    }
                    for position, item in enumerate(order.items)
                ],
            )

        await self._append_history(order_row.id, order.status, order.created_at)

        return await self.get_by_id(order_row.id)

    async def get_by_id(self, order_id: str | uuid.UUID) -> Order:
        key = _as_uuid(order_id)
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == key)
        )
        row = result.fetchone()

        if row is None:
            raise DoesNotExist(f"Order with id {order_id} not found")

        items = await OrderItemRepository(self._session).list_by_order(key)
        history = await self._session.execute(
            select(order_statuses_tbl)
            .where(order_statuses_tbl.c.order_id == key)
            .order_by(order_statuses_tbl.c.created_at, order_statuses_tbl.c.id)
        )

        return self._construct(row, items, history.fetchall())

    async def transition(
        self,
        order_id: str,
        expected: OrderStatusEnum,
        status: OrderStatusEnum,
        at: datetime,
    ) -> bool:
        """Compare-and-set the order status. Returns False if it was not `expected`."""
        key = _as_uuid(order_id)
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == key, orders_tbl.c.status == expected)
            .values(status=status, updated_at=at)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return False

        await self._append_history(key, status, at)
        return True

    async def list_ids_created_before(
        self, status: OrderStatusEnum, cutoff: datetime, limit: int = 500
    ) -> list[str]:
        stmt = (
            select(orders_tbl.c.id)
            .where(orders_tbl.c.status == status, orders_tbl.c.created_at <= cutoff)
            .order_by(orders_tbl.c.created_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [str(row.id) for row in result.fetchall()]


class PaymentRepository:
    class CreateDTO(BaseModel):
        order_id: str
        user_id: str
        amount: Decimal
        method: PaymentMethodEnum
        status: PaymentStatusEnum
        created_at: datetime

    class SettleDTO(BaseModel):
        status: PaymentStatusEnum
        transaction_id: str | None = None
        paid_at: datetime | None = None
        reason: str | None = None

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None) -> Payment:
        if row is None:
            raise DoesNotExist

        return Payment(
            id=str(row._mapping["id"]),
            order_id=str(row._mapping["order_id"]),
            user_id=row._mapping["user_id"],
            amount=row._mapping["amount"],
            method=row._mapping["method"],
            status=row._mapping["status"],
            transaction_id=row._mapping["transaction_id"],
            paid_at=row._mapping["paid_at"],
            reason=row._mapping["reason"],
            created_at=row._mapping["created_at"],
        )

    async def create(self, payment: CreateDTO) -> Payment:
        stmt = (
            insert(payments_tbl)
            .values(
                {
                    "order_id": _as_uuid(payment.order_id),
                    "user_id": payment.user_id,
                    "amount": payment.amount,
                    "method": payment.method,
                    "status": payment.status,
                    "created_at": payment.created_at,
                }
            )
            .returning(payments_tbl)
        )
        result = await self._session.execute(stmt)
        return self._construct(result.fetchone())

    async def get_by_id(self, payment_id: str) -> Payment:
        stmt = select(payments_tbl).where(payments_tbl.c.id == _as_uuid(payment_id))
        result = await self._session.execute(stmt)
        return self._construct(result.fetchone())

    async def settle(
        self, payment_id: str, expected: PaymentStatusEnum, settlement: SettleDTO
    ) -> Payment | None:
        """Apply `settlement` only if the payment is still `expected`."""
        stmt = (
            update(payments_tbl)
            .where(
                payments_tbl.c.id == _as_uuid(payment_id),
                payments_tbl.c.status == expected,
            )
            .values(settlement.model_dump(exclude_none=True))
            .returning(payments_tbl)
        )
        result = await self._session.execute(stmt)
        row = result.fetchone()

        if row is None:
            return None

        return self._construct(row)

    async def get_latest_for_order(self, order_id: str) -> Payment | None:
        stmt = (
            select(payments_tbl)
            .where(payments_tbl.c.order_id == _as_uuid(order_id))
            .order_by(payments_tbl.c.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        row = result.fetchone()

        if row is None:
            return None

        return self._construct(row)

    async def list_pending_created_before(
        self,
        cutoff: datetime,
        exclude_method: PaymentMethodEnum = PaymentMethodEnum.COD,
        limit: int = 500,
    ) -> list[Payment]:
        stmt = (
            select(payments_tbl)
            .where(
                payments_tbl.c.status == PaymentStatusEnum.PENDING,
                payments_tbl.c.method != exclude_method,
                payments_tbl.c.created_at <= cutoff,
            )
            .order_by(payments_tbl.c.created_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._construct(row) for row in result.fetchall()]


class ShippingInfoRepository:
    class CreateDTO(BaseModel):
        order_item_id: str
        carrier: str
        tracking_number: str
        area: str | None = None
        status: ShippingStatusEnum
        created_at: datetime

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None) -> ShippingInfo:
        if row is None:
            raise DoesNotExist

        return ShippingInfo(
            id=str(row._mapping["id"]),
            order_item_id=str(row._mapping["order_item_id"]),
            carrier=row._mapping["carrier"],
            tracking_number=row._mapping["tracking_number"],
            area=row._mapping["area"],
            status=row._mapping["status"],
            created_at=row._mapping["created_at"],
            updated_at=row._mapping["updated_at"],
        )

    async def create(self, shipping: CreateDTO) -> ShippingInfo:
        stmt = (
            insert(shipping_infos_tbl)
            .values(
                {
                    "order_item_id": _as_uuid(shipping.order_item_id),
                    "carrier": shipping.carrier,
                    "tracking_number": shipping.tracking_number,
                    "area": shipping.area,
                    "status": shipping.status,
                    "created_at": shipping.created_at,
                    "updated_at": shipping.created_at,
                }
            )
            .returning(shipping_infos_tbl)
        )
        result = await self._session.execute(stmt)
        return self._construct(result.fetchone())

    async def list_by_tracking_number(self, tracking_number: str) -> list[ShippingInfo]:
        stmt = (
            select(shipping_infos_tbl)
            .where(shipping_infos_tbl.c.tracking_number == tracking_number)
            .order_by(shipping_infos_tbl.c.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._construct(row) for row in result.fetchall()]

    async def set_status(
        self, shipping_ids: list[str], status: ShippingStatusEnum, at: datetime
    ) -> None:
        if not shipping_ids:
            return

        stmt = (
            update(shipping_infos_tbl)
            .where(shipping_infos_tbl.c.id.in_([_as_uuid(i) for i in shipping_ids]))
            .values(status=status, updated_at=at)
        )
        await self._session.execute(stmt)


class OutboxRepository:
    class CreateDTO(BaseModel):
        event_type: EventTypeEnum
        payload: dict

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None) -> OutboxEvent:
        if row is None:
            raise DoesNotExist

        return OutboxEvent(
            id=str(row._mapping["id"]),
            event_type=row._mapping["event_type"],
            payload=row._mapping["payload"],
            status=row._mapping["status"],
            error=row._mapping["error"],
            created_at=row._mapping["created_at"],
        )

    async def create(self, event: CreateDTO) -> OutboxEvent:
        stmt = (
            insert(outbox_tbl)
            .values(
                {
                    "event_type": event.event_type,
                    "payload": event.payload,
                    "status": OutboxEventStatus.PENDING,
                }
            )
            .returning(outbox_tbl)
        )
        result = await self._session.execute(stmt)
        return self._construct(result.fetchone())

    async def get_pending_events(self, limit: int = 100) -> list[OutboxEvent]:
        stmt = (
            select(outbox_tbl)
            .where(outbox_tbl.c.status == OutboxEventStatus.PENDING)
            .order_by(outbox_tbl.c.created_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._construct(row) for row in result.fetchall()]

    async def get_by_id(self, event_id: str) -> OutboxEvent:
        stmt = select(outbox_tbl).where(outbox_tbl.c.id == _as_uuid(event_id))
        result = await self._session.execute(stmt)
        return self._construct(result.fetchone())

    async def claim(self, event_id: str) -> bool:
        """Mark a pending event as sent. False if another worker got it first."""
        stmt = (
            update(outbox_tbl)
            .where(
                outbox_tbl.c.id == _as_uuid(event_id),
                outbox_tbl.c.status == OutboxEventStatus.PENDING,
            )
            .values(status=OutboxEventStatus.SENT)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def mark_as_failed(self, event_id: str, error: str) -> None:
        stmt = (
            update(outbox_tbl)
            .where(outbox_tbl.c.id == _as_uuid(event_id))
            .values(status=OutboxEventStatus.FAILED, error=error)
        )
        await self._session.execute(stmt)
