import logging
from http import HTTPStatus
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import AsyncClient

from storefront.core.models import (
    OrderItemStatusEnum,
    OrderStatusEnum,
    PaymentMethodEnum,
    PaymentStatusEnum,
    ShippingStatusEnum,
)
from storefront.infrastructure.unit_of_work import UnitOfWork
from conftest import API_KEY

PAY_URL = "/integrations/payments/simulate"
SHIP_CREATE_URL = "/integrations/shipping/create"
SHIP_UPDATE_URL = "/integrations/shipping/update"


@pytest.fixture(autouse=True)
def no_latency(container):
    """Payment and shipment use cases without the simulated network delay."""
    sleep = AsyncMock()
    container.simulate_payment_use_case()._sleep = sleep
    container.create_shipment_use_case()._sleep = sleep
    container.update_shipment_status_use_case()._sleep = sleep
    return sleep


class TestIntegrationAuth:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url", [PAY_URL, SHIP_CREATE_URL, SHIP_UPDATE_URL]
    )
    @pytest.mark.parametrize(
        "headers", [{}, {"x-api-key": "wrong-key"}], ids=["missing", "wrong"]
    )
    async def test_rejects_bad_api_key(
        self, test_async_client: AsyncClient, url: str, headers: dict
    ):
        # An invalid payload still gets 401 first
        response = await test_async_client.post(url, json={}, headers=headers)

        assert response.status_code == HTTPStatus.UNAUTHORIZED
        assert response.json() == {
            "success": False,
            "message": "Invalid or missing integration API key",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url", [PAY_URL, SHIP_CREATE_URL, SHIP_UPDATE_URL]
    )
    @pytest.mark.parametrize(
        "headers", [{}, {"x-api-key": "wrong-key"}], ids=["missing", "wrong"]
    )
    async def test_rejects_bad_api_key_with_malformed_json(
        self, test_async_client: AsyncClient, url: str, headers: dict
    ):
        response = await test_async_client.post(
            url,
            content=b'{"orderId": ',
            headers={**headers, "content-type": "application/json"},
        )

        assert response.status_code == HTTPStatus.UNAUTHORIZED
        assert response.json() == {
            "success": False,
            "message": "Invalid or missing integration API key",
        }

    @pytest.mark.asyncio
    async def test_malformed_json_with_valid_api_key(
        self, test_async_client: AsyncClient
    ):
        response = await test_async_client.post(
            SHIP_CREATE_URL,
            content=b'{"orderId": ',
            headers={"x-api-key": API_KEY, "content-type": "application/json"},
        )

        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.json() == {"success": False, "message": "Invalid JSON body"}

    @pytest.mark.asyncio
    async def test_payment_requires_bearer_token(
        self, test_async_client: AsyncClient, order_factory
    ):
        order = await order_factory()

        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": order.id, "method": "PayOS"},
            headers={"x-api-key": API_KEY},
        )

        assert response.status_code == HTTPStatus.UNAUTHORIZED
        assert response.json()["message"] == "Missing Authorization header"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "token", ["not-a-jwt", None], ids=["garbage", "wrong-secret"]
    )
    async def test_payment_rejects_invalid_token(
        self, test_async_client: AsyncClient, order_factory, auth_token, token
    ):
        order = await order_factory()
        token = token or auth_token(secret="some-other-secret")

        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": order.id, "method": "PayOS"},
            headers={"x-api-key": API_KEY, "Authorization": f"Bearer {token}"},
        )

        assert response.status_code == HTTPStatus.UNAUTHORIZED
        assert response.json()["message"] == "Invalid or expired token"


class TestSimulatePayment:
    @pytest.mark.asyncio
    async def test_gateway_payment(
        self,
        test_async_client: AsyncClient,
        integration_headers: dict,
        unit_of_work: UnitOfWork,
        order_factory,
    ):
        # Given
        order = await order_factory()

        # When
        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": order.id, "method": "PayOS"},
            headers=integration_headers,
        )

        # Then
        assert response.status_code == HTTPStatus.CREATED
        data = response.json()
        assert data["success"] is True
        assert data["payment"]["status"] == PaymentStatusEnum.PAID
        assert data["payment"]["transactionId"].startswith("SIMPAY-")
        assert isinstance(data["tookMs"], int)

        async with unit_of_work() as uow:
            order = await uow.orders.get_by_id(order.id)
            payment = await uow.payments.get_by_id(data["payment"]["id"])
        assert order.status == OrderStatusEnum.PROCESSING
        assert payment.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_cod_payment(
        self, test_async_client: AsyncClient, integration_headers: dict, order_factory
    ):
        order = await order_factory()

        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": order.id, "method": PaymentMethodEnum.COD},
            headers=integration_headers,
        )

        assert response.status_code == HTTPStatus.CREATED
        payment = response.json()["payment"]
        assert payment["status"] == PaymentStatusEnum.PENDING
        assert payment["transactionId"].startswith("COD-")

    @pytest.mark.asyncio
    async def test_unknown_order(
        self, test_async_client: AsyncClient, integration_headers: dict
    ):
        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": "missing", "method": "VietQR"},
            headers=integration_headers,
        )

        assert response.status_code == HTTPStatus.NOT_FOUND
        assert response.json() == {"success": False, "message": "Order not found"}

    @pytest.mark.asyncio
    async def test_order_not_payable(
        self, test_async_client: AsyncClient, integration_headers: dict, order_factory
    ):
        order = await order_factory(status=OrderStatusEnum.SHIPPED)

        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": order.id, "method": "VietQR"},
            headers=integration_headers,
        )

        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.json() == {"success": False, "message": "Order not payable"}

    @pytest.mark.asyncio
    async def test_unsupported_method(
        self, test_async_client: AsyncClient, integration_headers: dict, order_factory
    ):
        order = await order_factory()

        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": order.id, "method": "Bitcoin"},
            headers=integration_headers,
        )

        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.json()["message"].startswith("Invalid method")

    @pytest.mark.asyncio
    async def test_unexpected_error(
        self,
        test_async_client: AsyncClient,
        integration_headers: dict,
        container,
        order_factory,
        caplog,
    ):
        # Given
        order = await order_factory()
        use_case = container.simulate_payment_use_case()
        use_case._unit_of_work = Mock(
            side_effect=ConnectionError("database unavailable")
        )
        caplog.set_level(logging.ERROR)

        # When
        response = await test_async_client.post(
            PAY_URL,
            json={"orderId": order.id, "method": "PayOS"},
            headers=integration_headers,
        )

        # Then
        assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.json()["success"] is False
        assert "database unavailable" in caplog.text


class TestShipping:
    @pytest.mark.asyncio
    async def test_create_and_deliver(
        self,
        test_async_client: AsyncClient,
        integration_headers: dict,
        unit_of_work: UnitOfWork,
        order_factory,
    ):
        # Given
        order = await order_factory(status=OrderStatusEnum.PROCESSING)

        # When
        created = await test_async_client.post(
            SHIP_CREATE_URL,
            json={"orderId": order.id, "area": "south"},
            headers={"x-api-key": API_KEY},
        )

        # Then
        assert created.status_code == HTTPStatus.CREATED
        data = created.json()
        tracking_number = data["trackingNumber"]
        assert tracking_number.startswith("SIMSHIP-")
        assert len(data["created"]) == len(order.items)
        assert {s["orderItemId"] for s in data["created"]} == {
            i.id for i in order.items
        }
        assert all(s["status"] == ShippingStatusEnum.SHIPPING for s in data["created"])
        assert all(s["area"] == "south" for s in data["created"])

        # When
        updated = await test_async_client.post(
            SHIP_UPDATE_URL,
            json={"trackingNumber": tracking_number, "status": "delivered"},
            headers={"x-api-key": API_KEY},
        )

        # Then
        assert updated.status_code == HTTPStatus.OK
        assert updated.json() == {"success": True}
        async with unit_of_work() as uow:
            order = await uow.orders.get_by_id(order.id)
        assert order.status == OrderStatusEnum.SHIPPED
        assert all(i.status == OrderItemStatusEnum.SHIPPED for i in order.items)

    @pytest.mark.asyncio
    async def test_create_for_order_without_items(
        self, test_async_client: AsyncClient, order_factory
    ):
        order = await order_factory(items=[])

        response = await test_async_client.post(
            SHIP_CREATE_URL,
            json={"orderId": order.id},
            headers={"x-api-key": API_KEY},
        )

        assert response.status_code == HTTPStatus.NOT_FOUND
        assert response.json()["message"] == "Order items not found"

    @pytest.mark.asyncio
    async def test_update_unknown_tracking(self, test_async_client: AsyncClient):
        response = await test_async_client.post(
            SHIP_UPDATE_URL,
            json={"trackingNumber": "SIMSHIP-1-1000", "status": "failed"},
            headers={"x-api-key": API_KEY},
        )

        assert response.status_code == HTTPStatus.NOT_FOUND
        assert response.json()["message"] == "Tracking not found"

    @pytest.mark.asyncio
    async def test_update_with_unknown_status(self, test_async_client: AsyncClient):
        response = await test_async_client.post(
            SHIP_UPDATE_URL,
            json={"trackingNumber": "SIMSHIP-1-1000", "status": "lost"},
            headers={"x-api-key": API_KEY},
        )

        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.json()["message"].startswith("Invalid status")
