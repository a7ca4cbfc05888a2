from typing import Iterable

from storefront.core.models import (
    OrderItemStatusEnum,
    OrderStatusEnum,
    ShippingStatusEnum,
)

FINAL_ORDER_STATUSES = frozenset({OrderStatusEnum.SHIPPED, OrderStatusEnum.REJECTED})

TERMINAL_ITEM_STATUSES = frozenset(
    {OrderItemStatusEnum.SHIPPED, OrderItemStatusEnum.FAILED_TO_SHIP}
)


def item_status_for_shipment(
    shipping_status: ShippingStatusEnum, current: OrderItemStatusEnum
) -> OrderItemStatusEnum:
    if shipping_status == ShippingStatusEnum.DELIVERED:
        return OrderItemStatusEnum.SHIPPED
    if shipping_status == ShippingStatusEnum.FAILED:
        return OrderItemStatusEnum.FAILED_TO_SHIP
    return current


def derive_order_status(
    current: OrderStatusEnum, item_statuses: Iterable[OrderItemStatusEnum]
) -> OrderStatusEnum:
    """
    Aggregate order status from the statuses of all of its items.

    The order follows the least advanced item: it is shipped only once every
    item reached a terminal state, and it is shipping while any item is still
    on its way. Payment-governed states (pending, processing) are kept until
    an item actually moves.
    """
    if current in FINAL_ORDER_STATUSES:
        return current

    statuses = list(item_statuses)
    if not statuses:
        return current

    if all(status in TERMINAL_ITEM_STATUSES for status in statuses):
        return OrderStatusEnum.SHIPPED

    if all(status == OrderItemStatusEnum.PENDING for status in statuses):
        return current

    if current in (OrderStatusEnum.PROCESSING, OrderStatusEnum.SHIPPING):
        return OrderStatusEnum.SHIPPING

    return current
