import asyncio
import logging

import uvicorn

from storefront.presentation.app import build_api
from storefront.presentation.container import PresentationContainer
from storefront.presentation.outbox_worker import OutboxWorker
from storefront.presentation.scheduler import Scheduler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    presentation_container = PresentationContainer()
    presentation_container.config.from_yaml("storefront/config.yaml", required=True)

    app = build_api(presentation_container.application)

    outbox_worker: OutboxWorker = presentation_container.outbox_worker()
    scheduler: Scheduler = presentation_container.scheduler()

    logger.info("Starting Storefront service...")
    api_task = asyncio.create_task(
        uvicorn.Server(
            uvicorn.Config(
                app,
                host=presentation_container.config.api.host(),
                port=presentation_container.config.api.port(),
                log_level="info",
            )
        ).serve()
    )
    outbox_task = asyncio.create_task(outbox_worker.run())
    scheduler_task = asyncio.create_task(scheduler.run())

    await asyncio.gather(api_task, outbox_task, scheduler_task)


if __name__ == "__main__":
    asyncio.run(main())
