from decimal import Decimal

from pydantic import BaseModel, Field

from storefront.core.models import Item, Order, OrderStatusEnum
from storefront.infrastructure.clock import Clock
from storefront.infrastructure.repositories import OrderRepository
from storefront.infrastructure.unit_of_work import UnitOfWork


class OrderItemDTO(Item):
    price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)


class OrderDTO(BaseModel):
    user_id: str
    email: str
    items: list[OrderItemDTO]


class CreateOrderUseCase:
    def __init__(
        self,
        unit_of_work: UnitOfWork,
        clock: Clock,
    ):
        self._unit_of_work = unit_of_work
        self._clock = clock

    async def __call__(self, order: OrderDTO) -> Order:
        async with self._unit_of_work() as uow:
            total_price = sum(
                (item.price * item.quantity for item in order.items),
                start=Decimal("0"),
            )
            order = await uow.orders.create(
                order=OrderRepository.CreateDTO(
                    user_id=order.user_id,
                    email=order.email,
                    items=order.items,
                    total_price=total_price,
                    status=OrderStatusEnum.PENDING,
                    created_at=self._clock.now(),
                )
            )
            await uow.commit()
            return order
