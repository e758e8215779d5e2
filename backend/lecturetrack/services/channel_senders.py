"""
Expéditeurs par canal : email, SMS, in-app.

Chaque expéditeur reçoit un contenu déjà rendu et retourne un DeliveryResult ;
aucune exception ne sort d'un send() : un échec de fournisseur devient un
résultat en échec (DeliveryFailure), jamais une erreur fatale pour le routage.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from lecturetrack.database import SessionLocal, utcnow
from lecturetrack.enums import Channel, NotificationStatus
from lecturetrack.models.notification import Notification
from lecturetrack.schemas.notification import DeliveryResult, NotificationEvent
from lecturetrack.services import email_service, sms_service
from lecturetrack.services.notification_templates import (
    EmailContent,
    InAppContent,
    Recipient,
    SmsContent,
)

logger = logging.getLogger(__name__)


class EmailSender:
    channel = Channel.EMAIL

    def send(self, recipient: Recipient, content: EmailContent, event: NotificationEvent) -> DeliveryResult:
        if not recipient.email:
            return DeliveryResult(success=False, error="Adresse email du destinataire introuvable.")
        try:
            message_id = email_service.send_email(
                to_email=recipient.email,
                subject=content.subject,
                html_content=content.html,
                text_content=content.text,
            )
        except Exception as exc:
            logger.error("Échec envoi email à %s : %s", recipient.email, exc)
            return DeliveryResult(success=False, error=f"Erreur envoi email : {exc}")
        return DeliveryResult(success=True, message_id=message_id)


class SmsSender:
    channel = Channel.SMS

    def send(self, recipient: Recipient, content: SmsContent, event: NotificationEvent) -> DeliveryResult:
        if not recipient.phone:
            return DeliveryResult(success=False, error="Numéro de téléphone du destinataire introuvable.")
        try:
            message_id = sms_service.send_sms(recipient.phone, content.body, event.priority.value)
        except Exception as exc:
            logger.error("Échec envoi SMS à %s : %s", recipient.phone, exc)
            return DeliveryResult(success=False, error=f"Erreur envoi SMS : {exc}")
        return DeliveryResult(success=True, message_id=message_id)


class InAppSender:
    """
    Crée la notification in-app dans sa propre session : l'expéditeur tourne dans
    un thread du routeur et ne partage pas la session de la requête.
    """
    channel = Channel.IN_APP

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self.session_factory = session_factory or SessionLocal

    def send(self, recipient: Recipient, content: InAppContent, event: NotificationEvent) -> DeliveryResult:
        session = self.session_factory()
        try:
            notification = Notification(
                recipient_id=recipient.id,
                category=event.category.value,
                priority=event.priority.value,
                title=content.title,
                message=content.message,
                action_url=content.action_url,
                data=event.metadata or None,
                status=NotificationStatus.SENT.value,
                sent_at=utcnow(),
            )
            session.add(notification)
            session.commit()
            return DeliveryResult(success=True, message_id=str(notification.id))
        except Exception as exc:
            session.rollback()
            logger.error("Échec création notification in-app pour %s : %s", recipient.id, exc)
            return DeliveryResult(success=False, error=f"Erreur notification in-app : {exc}")
        finally:
            session.close()


def default_senders(session_factory: Optional[Callable[[], Session]] = None) -> dict:
    """Expéditeurs par défaut, indexés par canal. Le canal push n'a pas d'expéditeur."""
    return {
        Channel.IN_APP: InAppSender(session_factory),
        Channel.EMAIL: EmailSender(),
        Channel.SMS: SmsSender(),
    }
