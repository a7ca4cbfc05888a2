import asyncio
import logging

from storefront.application.process_outbox_events import ProcessOutboxEventsUseCase

logger = logging.getLogger(__name__)


class OutboxWorker:
    def __init__(self, use_case: ProcessOutboxEventsUseCase, poll_interval: float = 1.0):
        self._use_case = use_case
        self._poll_interval = poll_interval

    async def run(self):
        while True:
            try:
                await self._use_case()
            except Exception as e:
                logger.error(f"Outbox processing failed: {e}", exc_info=True)
            await asyncio.sleep(self._poll_interval)
