from storefront.core.models import EmailMessage, EventTypeEnum
from storefront.infrastructure.repositories import OutboxRepository


def email_event(to: str, subject: str, body: str) -> OutboxRepository.CreateDTO:
    message = EmailMessage(to=to, subject=subject, body=body)
    return OutboxRepository.CreateDTO(
        event_type=EventTypeEnum.NOTIFICATION_EMAIL,
        payload=message.model_dump(mode="json"),
    )
