import logging
from http import HTTPStatus

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.application.container import ApplicationContainer
from storefront.application.create_order import CreateOrderUseCase, OrderDTO
from storefront.core.errors import NotFound
from storefront.core.models import Order
from storefront.infrastructure.repositories import DoesNotExist
from storefront.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


class OrderCreateRequest(OrderDTO):
    pass


class OrderResponseModel(Order):
    pass


@router.post(
    "/orders",
    status_code=HTTPStatus.CREATED,
    response_model=OrderResponseModel,
)
@inject
async def create_order(
    order: OrderCreateRequest,
    create_order_use_case: CreateOrderUseCase = Depends(
        Provide[ApplicationContainer.create_order_use_case]
    ),
):
    try:
        return await create_order_use_case(order=order)
    except Exception:
        logger.error("Failed to create order", exc_info=True)
        return JSONResponse(
            content={
                "success": False,
                "message": "Internal server error while creating order",
            },
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        )


@router.get(
    "/orders/{order_id}",
    status_code=HTTPStatus.OK,
    response_model=OrderResponseModel,
)
@inject
async def get_order(
    order_id: str,
    unit_of_work: UnitOfWork = Depends(
        Provide[ApplicationContainer.infrastructure_container.unit_of_work]
    ),
):
    try:
        async with unit_of_work() as uow:
            return await uow.orders.get_by_id(order_id)
    except DoesNotExist:
        raise NotFound(f"Order {order_id} not found")
    except Exception:
        logger.error(f"Failed to load order {order_id}", exc_info=True)
        return JSONResponse(
            content={"success": False, "message": "Internal server error"},
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        )
