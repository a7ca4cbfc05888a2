from dependency_injector import containers, providers

from storefront.application.container import ApplicationContainer
from storefront.presentation.outbox_worker import OutboxWorker
from storefront.presentation.scheduler import Job, Scheduler


class PresentationContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    application = providers.Container[ApplicationContainer](
        ApplicationContainer, config=config
    )

    outbox_worker = providers.Singleton[OutboxWorker](
        OutboxWorker,
        use_case=application.process_outbox_events_use_case,
        poll_interval=config.outbox.poll_interval,
    )

    scheduler = providers.Singleton[Scheduler](
        Scheduler,
        clock=application.infrastructure_container.clock,
        jobs=providers.List(
            providers.Factory(
                Job,
                name="verify-pending-payments",
                interval=config.scheduler.payment_verification_interval,
                func=application.verify_pending_payments_use_case,
            ),
            providers.Factory(
                Job,
                name="cancel-stale-orders",
                interval=config.scheduler.order_timeout_interval,
                func=application.cancel_stale_orders_use_case,
            ),
        ),
    )
