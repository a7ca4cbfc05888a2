import asyncio
import logging
import random
from datetime import datetime
from typing import Awaitable, Callable

from pydantic import BaseModel

from storefront.application.notifications import email_event
from storefront.application.order_status import sync_order_status
from storefront.application.retry import retry
from storefront.core.errors import InvalidState, NotFound
from storefront.core.models import (
    OrderItemStatusEnum,
    OrderStatusEnum,
    PaymentMethodEnum,
    PaymentStatusEnum,
    ShippingInfo,
    ShippingStatusEnum,
)
from storefront.core.status import item_status_for_shipment
from storefront.infrastructure.clock import Clock, epoch_ms
from storefront.infrastructure.repositories import (
    DoesNotExist,
    PaymentRepository,
    ShippingInfoRepository,
)
from storefront.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

CARRIER = "SIMCARRIER"


class ShipmentResult(BaseModel):
    tracking_number: str
    created: list[ShippingInfo]


class CreateShipmentUseCase:
    def __init__(
        self,
        unit_of_work: UnitOfWork,
        clock: Clock,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()

    def tracking_number(self, now: datetime) -> str:
        return f"SIMSHIP-{epoch_ms(now)}-{self._rng.randint(1000, 9999)}"

    async def __call__(self, order_id: str, area: str | None = None) -> ShipmentResult:
        result = await retry(lambda: self._create(order_id, area), sleep=self._sleep)
        logger.info(
            f"Shipment created: order={order_id} tracking={result.tracking_number}"
        )
        return result

    async def _create(self, order_id: str, area: str | None) -> ShipmentResult:
        async with self._unit_of_work() as uow:
            try:
                items = await uow.order_items.list_by_order(order_id)
            except DoesNotExist:
                items = []
            if not items:
                raise NotFound("Order items not found")

            order = await uow.orders.get_by_id(order_id)
            if order.status == OrderStatusEnum.REJECTED:
                raise InvalidState("Order not shippable")

            now = self._clock.now()
            tracking_number = self.tracking_number(now)

            created = []
            for item in items:
                created.append(
                    await uow.shipping.create(
                        ShippingInfoRepository.CreateDTO(
                            order_item_id=item.id,
                            carrier=CARRIER,
                            tracking_number=tracking_number,
                            area=area,
                            status=ShippingStatusEnum.SHIPPING,
                            created_at=now,
                        )
                    )
                )
            await uow.order_items.set_status(
                [item.id for item in items], OrderItemStatusEnum.SHIPPING
            )

            await sync_order_status(uow, order.id, at=now)
            await uow.commit()

        return ShipmentResult(tracking_number=tracking_number, created=created)


class UpdateShipmentStatusUseCase:
    def __init__(
        self,
        unit_of_work: UnitOfWork,
        clock: Clock,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._sleep = sleep

    async def __call__(
        self, tracking_number: str, status: ShippingStatusEnum
    ) -> list[ShippingInfo]:
        updated = await retry(
            lambda: self._update(tracking_number, status), sleep=self._sleep
        )
        logger.info(f"Shipment status updated: tracking={tracking_number} status={status}")
        return updated

    async def _update(
        self, tracking_number: str, status: ShippingStatusEnum
    ) -> list[ShippingInfo]:
        async with self._unit_of_work() as uow:
            shippings = await uow.shipping.list_by_tracking_number(tracking_number)
            if not shippings:
                raise NotFound("Tracking not found")

            now = self._clock.now()
            await uow.shipping.set_status([s.id for s in shippings], status, at=now)

            order_ids: list[str] = []
            for shipping in shippings:
                item = await uow.order_items.get_by_id(shipping.order_item_id)
                item_status = item_status_for_shipment(status, item.status)
                if item_status != item.status:
                    await uow.order_items.set_status([item.id], item_status)

                if status == ShippingStatusEnum.DELIVERED:
                    order = await uow.orders.get_by_id(item.order_id)
                    await uow.outbox.create(
                        email_event(
                            to=order.email,
                            subject="Order Delivered",
                            body=(
                                f"Your order {order.id} item {item.id} has been "
                                f"delivered. Tracking: {tracking_number}"
                            ),
                        )
                    )

                if item.order_id not in order_ids:
                    order_ids.append(item.order_id)

            for order_id in order_ids:
                order_status = await sync_order_status(uow, order_id, at=now)
                if order_status == OrderStatusEnum.SHIPPED:
                    await self._collect_cash_on_delivery(uow, order_id, now)

            await uow.commit()

        return [
            shipping.model_copy(update={"status": status, "updated_at": now})
            for shipping in shippings
        ]

    async def _collect_cash_on_delivery(self, uow, order_id: str, now: datetime):
        payment = await uow.payments.get_latest_for_order(order_id)
        if payment is None or payment.method != PaymentMethodEnum.COD:
            return

        settled = await uow.payments.settle(
            payment.id,
            expected=PaymentStatusEnum.PENDING,
            settlement=PaymentRepository.SettleDTO(
                status=PaymentStatusEnum.PAID, paid_at=now
            ),
        )
        if settled is not None:
            logger.info(f"COD payment {payment.id} collected for order {order_id}")
