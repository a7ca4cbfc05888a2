import logging
from datetime import timedelta

from storefront.application.notifications import email_event
from storefront.application.simulate_payment import (
    ORDER_NOT_PAYABLE,
    simulated_transaction_id,
)
from storefront.core.models import OrderStatusEnum, Payment, PaymentStatusEnum
from storefront.infrastructure.clock import Clock
from storefront.infrastructure.repositories import PaymentRepository
from storefront.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class VerifyPendingPaymentsUseCase:
    """
    Settle gateway payments left pending by an interrupted request.

    Only non-COD payments older than `grace_seconds` are picked up, so a
    payment still waiting on its simulated round trip is left alone.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        clock: Clock,
        grace_seconds: int = 60,
    ):
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._grace = timedelta(seconds=grace_seconds)

    async def __call__(self) -> list[Payment]:
        cutoff = self._clock.now() - self._grace
        async with self._unit_of_work() as uow:
            payments = await uow.payments.list_pending_created_before(cutoff)

        settled = []
        for payment in payments:
            try:
                result = await self._settle(payment)
            except Exception as e:
                logger.error(f"Failed to verify payment {payment.id}: {e}", exc_info=True)
                continue
            if result is not None:
                settled.append(result)

        return settled

    async def _settle(self, payment: Payment) -> Payment | None:
        async with self._unit_of_work() as uow:
            now = self._clock.now()
            moved = await uow.orders.transition(
                payment.order_id,
                expected=OrderStatusEnum.PENDING,
                status=OrderStatusEnum.PROCESSING,
                at=now,
            )
            if moved:
                settlement = PaymentRepository.SettleDTO(
                    status=PaymentStatusEnum.PAID,
                    transaction_id=simulated_transaction_id(),
                    paid_at=now,
                )
            else:
                settlement = PaymentRepository.SettleDTO(
                    status=PaymentStatusEnum.FAILED, reason=ORDER_NOT_PAYABLE
                )

            result = await uow.payments.settle(
                payment.id, expected=PaymentStatusEnum.PENDING, settlement=settlement
            )
            if result is None:
                # Settled elsewhere in the meantime
                return None

            if result.status == PaymentStatusEnum.PAID:
                order = await uow.orders.get_by_id(payment.order_id)
                await uow.outbox.create(
                    email_event(
                        to=order.email,
                        subject="Payment received",
                        body=(
                            f"Payment for order {order.id} was successful. "
                            f"Transaction: {result.transaction_id}"
                        ),
                    )
                )

            await uow.commit()

        logger.info(f"Verified pending payment {payment.id}: {result.status}")
        return result
