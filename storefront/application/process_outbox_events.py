import logging

from storefront.core.models import EmailMessage, EventTypeEnum
from storefront.infrastructure.mailer import Mailer
from storefront.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class ProcessOutboxEventsUseCase:
    def __init__(
        self,
        unit_of_work: UnitOfWork,
        mailer: Mailer,
        batch_size: int = 100,
    ):
        self._unit_of_work = unit_of_work
        self._mailer = mailer
        self._batch_size = batch_size

    async def __call__(self) -> int:
        """
        Deliver queued notifications at most once.

        Events are claimed (marked as sent) and committed before delivery, so a
        crash mid-batch never sends the same e-mail twice. A delivery error is
        recorded on its own event and does not stop the rest of the batch.
        Returns the number of events delivered.
        """
        async with self._unit_of_work() as uow:
            events = await uow.outbox.get_pending_events(limit=self._batch_size)
            if not events:
                return 0

            claimed = [event for event in events if await uow.outbox.claim(event.id)]
            await uow.commit()

        if not claimed:
            return 0

        delivered = 0
        async with self._mailer as mailer:
            for event in claimed:
                try:
                    if event.event_type != EventTypeEnum.NOTIFICATION_EMAIL:
                        raise ValueError(f"Unsupported event type {event.event_type}")
                    await mailer.send(EmailMessage(**event.payload), key=event.id)
                except Exception as e:
                    logger.error(f"Failed to deliver event {event.id}: {e}")
                    async with self._unit_of_work() as uow:
                        await uow.outbox.mark_as_failed(event.id, str(e))
                        await uow.commit()
                    continue

                delivered += 1

        return delivered
