"""
Service d'envoi d'emails SMTP.
Utilisé par le canal email du routeur de notifications.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional

from lecturetrack.config import settings

logger = logging.getLogger(__name__)


def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    text_content: Optional[str] = None,
) -> str:
    """
    Envoie un email HTML (avec alternative texte si fournie) et retourne son Message-ID.
    Lève une exception en cas d'échec SMTP ou de dépassement du délai réseau.
    """
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    message_id = make_msgid(domain=settings.SMTP_FROM.split("@")[-1])
    msg["Message-ID"] = message_id

    # Le client mail affiche la dernière partie supportée : texte d'abord, HTML ensuite
    if text_content:
        msg.attach(MIMEText(text_content, "plain", "utf-8"))
    msg.attach(MIMEText(html_content, "html", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Email envoyé à %s : %s", to_email, subject)
    return message_id
