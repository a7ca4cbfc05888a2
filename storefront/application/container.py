from dependency_injector import containers, providers

from storefront.application.cancel_stale_orders import CancelStaleOrdersUseCase
from storefront.application.create_order import CreateOrderUseCase
from storefront.application.process_outbox_events import ProcessOutboxEventsUseCase
from storefront.application.simulate_payment import SimulatePaymentUseCase
from storefront.application.simulate_shipping import (
    CreateShipmentUseCase,
    UpdateShipmentStatusUseCase,
)
from storefront.application.verify_pending_payments import (
    VerifyPendingPaymentsUseCase,
)
from storefront.infrastructure.container import InfrastructureContainer


class ApplicationContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    infrastructure_container = providers.Container[InfrastructureContainer](
        InfrastructureContainer,
        config=config.infrastructure,
    )

    create_order_use_case = providers.Singleton[CreateOrderUseCase](
        CreateOrderUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        clock=infrastructure_container.clock,
    )
    simulate_payment_use_case = providers.Singleton[SimulatePaymentUseCase](
        SimulatePaymentUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        clock=infrastructure_container.clock,
        min_latency_ms=config.payments.min_latency_ms,
        max_latency_ms=config.payments.max_latency_ms,
    )
    create_shipment_use_case = providers.Singleton[CreateShipmentUseCase](
        CreateShipmentUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        clock=infrastructure_container.clock,
    )
    update_shipment_status_use_case = providers.Singleton[UpdateShipmentStatusUseCase](
        UpdateShipmentStatusUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        clock=infrastructure_container.clock,
    )
    verify_pending_payments_use_case = providers.Singleton[
        VerifyPendingPaymentsUseCase
    ](
        VerifyPendingPaymentsUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        clock=infrastructure_container.clock,
        grace_seconds=config.payments.verification_grace_seconds,
    )
    cancel_stale_orders_use_case = providers.Singleton[CancelStaleOrdersUseCase](
        CancelStaleOrdersUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        clock=infrastructure_container.clock,
        timeout_minutes=config.scheduler.order_timeout_minutes,
    )
    process_outbox_events_use_case = providers.Singleton[ProcessOutboxEventsUseCase](
        ProcessOutboxEventsUseCase,
        unit_of_work=infrastructure_container.unit_of_work,
        mailer=infrastructure_container.mailer,
        batch_size=config.outbox.batch_size,
    )
