import logging
from datetime import datetime
from http import HTTPStatus

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from storefront.application.container import ApplicationContainer
from storefront.application.simulate_payment import SimulatePaymentUseCase
from storefront.application.simulate_shipping import (
    CreateShipmentUseCase,
    UpdateShipmentStatusUseCase,
)
from storefront.core.errors import StorefrontError
from storefront.core.models import (
    Caller,
    PaymentMethodEnum,
    PaymentStatusEnum,
    ShippingStatusEnum,
)
from storefront.presentation.auth import require_api_key, require_caller

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/integrations",
    tags=["integrations"],
    dependencies=[Depends(require_api_key)],
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentSimulateRequest(CamelModel):
    order_id: str
    method: PaymentMethodEnum


class PaymentSummary(CamelModel):
    id: str
    transaction_id: str | None
    status: PaymentStatusEnum


class PaymentSimulateResponse(CamelModel):
    success: bool = True
    payment: PaymentSummary
    took_ms: int


class ShippingCreateRequest(CamelModel):
    order_id: str
    area: str | None = None


class ShippingInfoResponse(CamelModel):
    id: str
    order_item_id: str
    carrier: str
    tracking_number: str
    area: str | None
    status: ShippingStatusEnum
    created_at: datetime
    updated_at: datetime


class ShippingCreateResponse(CamelModel):
    success: bool = True
    tracking_number: str
    created: list[ShippingInfoResponse]


class ShippingUpdateRequest(CamelModel):
    tracking_number: str
    status: ShippingStatusEnum


class ShippingUpdateResponse(CamelModel):
    success: bool = True


def _internal_error(message: str) -> JSONResponse:
    return JSONResponse(
        content={"success": False, "message": message},
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
    )


@router.post(
    "/payments/simulate",
    status_code=HTTPStatus.CREATED,
    response_model=PaymentSimulateResponse,
)
@inject
async def simulate_payment(
    body: PaymentSimulateRequest,
    caller: Caller = Depends(require_caller),
    simulate_payment_use_case: SimulatePaymentUseCase = Depends(
        Provide[ApplicationContainer.simulate_payment_use_case]
    ),
):
    try:
        result = await simulate_payment_use_case(
            order_id=body.order_id, method=body.method, caller=caller
        )
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Simulated payment error: {e}", exc_info=True)
        return _internal_error("Internal server error while processing payment")

    return PaymentSimulateResponse(
        payment=PaymentSummary(
            id=result.payment.id,
            transaction_id=result.payment.transaction_id,
            status=result.payment.status,
        ),
        took_ms=result.took_ms,
    )


@router.post(
    "/shipping/create",
    status_code=HTTPStatus.CREATED,
    response_model=ShippingCreateResponse,
)
@inject
async def create_shipment(
    body: ShippingCreateRequest,
    create_shipment_use_case: CreateShipmentUseCase = Depends(
        Provide[ApplicationContainer.create_shipment_use_case]
    ),
):
    try:
        result = await create_shipment_use_case(order_id=body.order_id, area=body.area)
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"createShipment error: {e}", exc_info=True)
        return _internal_error("Internal server error while creating shipment")

    return ShippingCreateResponse(
        tracking_number=result.tracking_number,
        created=[
            ShippingInfoResponse.model_validate(shipping.model_dump())
            for shipping in result.created
        ],
    )


@router.post(
    "/shipping/update",
    status_code=HTTPStatus.OK,
    response_model=ShippingUpdateResponse,
)
@inject
async def update_shipment_status(
    body: ShippingUpdateRequest,
    update_shipment_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    try:
        await update_shipment_status_use_case(
            tracking_number=body.tracking_number, status=body.status
        )
    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"updateShipmentStatus error: {e}", exc_info=True)
        return _internal_error("Internal server error while updating shipment")

    return ShippingUpdateResponse()
