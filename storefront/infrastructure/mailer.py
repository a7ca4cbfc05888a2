import json
import logging

from aiokafka import AIOKafkaProducer

from storefront.core.models import EmailMessage

logger = logging.getLogger(__name__)


class Mailer:
    """Delivers e-mail notifications. Used as an async context manager per batch."""

    async def send(self, message: EmailMessage, key: str | None = None) -> None:
        raise NotImplementedError

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


class LoggingMailer(Mailer):
    async def send(self, message: EmailMessage, key: str | None = None) -> None:
        logger.info(f"E-mail to {message.to}: {message.subject}")


class KafkaMailer(Mailer):
    """Hands e-mails to the mail service through the notifications topic."""

    def __init__(self, bootstrap_servers: str, topic: str):
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._producer: AIOKafkaProducer | None = None

    async def start(self):
        self._producer = AIOKafkaProducer(
            bootstrap_servers=self._bootstrap_servers,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda k: k.encode("utf-8") if k else None,
        )
        await self._producer.start()

    async def stop(self):
        if self._producer:
            await self._producer.stop()
            self._producer = None

    async def send(self, message: EmailMessage, key: str | None = None) -> None:
        if not self._producer:
            raise RuntimeError("Producer is not started. Call start() first.")

        await self._producer.send_and_wait(
            topic=self._topic,
            value=message.model_dump(mode="json"),
            key=key,
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
