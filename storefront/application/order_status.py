from datetime import datetime

from storefront.core.models import OrderStatusEnum
from storefront.core.status import derive_order_status


async def sync_order_status(uow, order_id: str, at: datetime) -> OrderStatusEnum:
    """Recompute the order status from its items and persist it if it moved."""
    order = await uow.orders.get_by_id(order_id)
    target = derive_order_status(order.status, [item.status for item in order.items])
    if target == order.status:
        return target

    moved = await uow.orders.transition(
        order.id, expected=order.status, status=target, at=at
    )
    if not moved:
        # Someone else changed the order since it was read
        reloaded = await uow.orders.get_by_id(order_id)
        return reloaded.status

    return target
