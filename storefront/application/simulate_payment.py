import asyncio
import logging
import random
import secrets
from typing import Awaitable, Callable

from pydantic import BaseModel

from storefront.application.notifications import email_event
from storefront.core.errors import InvalidState, NotFound
from storefront.core.models import (
    Caller,
    OrderStatusEnum,
    Payment,
    PaymentMethodEnum,
    PaymentStatusEnum,
)
from storefront.infrastructure.clock import Clock, epoch_ms
from storefront.infrastructure.repositories import DoesNotExist, PaymentRepository
from storefront.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

ORDER_NOT_PAYABLE = "ORDER_NOT_PAYABLE"


class PaymentResult(BaseModel):
    payment: Payment
    took_ms: int


def simulated_transaction_id() -> str:
    return f"SIMPAY-{secrets.token_hex(6)}"


class SimulatePaymentUseCase:
    """
    Stand-in for a payment gateway round trip.

    COD payments stay pending until the goods are delivered. Every other
    method is settled immediately and moves the order to processing.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        clock: Clock,
        min_latency_ms: int = 200,
        max_latency_ms: int = 1200,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self._unit_of_work = unit_of_work
        self._clock = clock
        self._min_latency_ms = min_latency_ms
        self._max_latency_ms = max_latency_ms
        self._sleep = sleep
        self._rng = rng or random.Random()

    def latency(self) -> float:
        """Seconds to wait, drawn uniformly from the configured range."""
        return self._rng.randint(self._min_latency_ms, self._max_latency_ms) / 1000

    async def __call__(
        self, order_id: str, method: PaymentMethodEnum, caller: Caller
    ) -> PaymentResult:
        started = self._clock.monotonic()

        async with self._unit_of_work() as uow:
            try:
                order = await uow.orders.get_by_id(order_id)
            except DoesNotExist:
                raise NotFound("Order not found")

            if order.status != OrderStatusEnum.PENDING:
                raise InvalidState("Order not payable")

            payment = await uow.payments.create(
                PaymentRepository.CreateDTO(
                    order_id=order.id,
                    user_id=caller.id,
                    amount=order.total_price,
                    method=method,
                    status=PaymentStatusEnum.PENDING,
                    created_at=self._clock.now(),
                )
            )
            await uow.commit()

        await self._sleep(self.latency())

        async with self._unit_of_work() as uow:
            now = self._clock.now()
            if method == PaymentMethodEnum.COD:
                payment = await uow.payments.settle(
                    payment.id,
                    expected=PaymentStatusEnum.PENDING,
                    settlement=PaymentRepository.SettleDTO(
                        status=PaymentStatusEnum.PENDING,
                        transaction_id=f"COD-{epoch_ms(now)}",
                    ),
                )
            else:
                moved = await uow.orders.transition(
                    order.id,
                    expected=OrderStatusEnum.PENDING,
                    status=OrderStatusEnum.PROCESSING,
                    at=now,
                )
                if not moved:
                    await uow.payments.settle(
                        payment.id,
                        expected=PaymentStatusEnum.PENDING,
                        settlement=PaymentRepository.SettleDTO(
                            status=PaymentStatusEnum.FAILED,
                            reason=ORDER_NOT_PAYABLE,
                        ),
                    )
                    await uow.commit()
                    logger.warning(
                        f"Order {order.id} left pending while payment {payment.id} "
                        "was in flight"
                    )
                    raise InvalidState("Order not payable")

                payment = await uow.payments.settle(
                    payment.id,
                    expected=PaymentStatusEnum.PENDING,
                    settlement=PaymentRepository.SettleDTO(
                        status=PaymentStatusEnum.PAID,
                        transaction_id=simulated_transaction_id(),
                        paid_at=now,
                    ),
                )
                await uow.outbox.create(
                    email_event(
                        to=caller.email or order.email,
                        subject="Payment received",
                        body=(
                            f"Payment for order {order.id} was successful. "
                            f"Transaction: {payment.transaction_id}"
                        ),
                    )
                )

            await uow.commit()

        took_ms = round((self._clock.monotonic() - started) * 1000)
        logger.info(
            f"Simulated payment processed: order={order.id} method={method} "
            f"transaction={payment.transaction_id} took={took_ms}ms"
        )
        return PaymentResult(payment=payment, took_ms=took_ms)
