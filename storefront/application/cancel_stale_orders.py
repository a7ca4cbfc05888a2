import logging
from datetime import timedelta

from storefront.application.notifications import email_event
from storefront.core.models import OrderStatusEnum
from storefront.infrastructure.clock import Clock
from storefront.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class CancelStaleOrdersUseCase:
    """Reject orders that stayed pending longer than the payment timeout."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        clock: Clock,
        timeout_minutes: int = 30,
    ):
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._timeout = timedelta(minutes=timeout_minutes)

    async def __call__(self) -> list[str]:
        cutoff = self._clock.now() - self._timeout
        async with self._unit_of_work() as uow:
            order_ids = await uow.orders.list_ids_created_before(
                OrderStatusEnum.PENDING, cutoff
            )

        cancelled = []
        for order_id in order_ids:
            try:
                if await self._cancel(order_id):
                    cancelled.append(order_id)
            except Exception as e:
                logger.error(f"Failed to auto-cancel order {order_id}: {e}", exc_info=True)
                continue

        return cancelled

    async def _cancel(self, order_id: str) -> bool:
        async with self._unit_of_work() as uow:
            moved = await uow.orders.transition(
                order_id,
                expected=OrderStatusEnum.PENDING,
                status=OrderStatusEnum.REJECTED,
                at=self._clock.now(),
            )
            if not moved:
                return False

            order = await uow.orders.get_by_id(order_id)
            await uow.outbox.create(
                email_event(
                    to=order.email,
                    subject="Order cancelled due to payment timeout",
                    body=(
                        f"Your order {order.id} was cancelled because payment was "
                        "not completed within the expected time."
                    ),
                )
            )
            await uow.commit()

        logger.info(f"Auto-cancelled order {order_id} due to payment timeout")
        return True
