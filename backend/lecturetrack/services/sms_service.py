"""
Service d'envoi de SMS.

Fournisseurs :
- mock   : journalise le message (développement, tests)
- twilio : API REST Twilio (Messages.json)
"""

import logging
import re
import secrets
import time
from typing import Optional

import requests

from lecturetrack.config import settings

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
SMS_MAX_LENGTH = 160


def format_phone_number(phone_number: str, country_code: Optional[str] = None) -> Optional[str]:
    """
    Normalise un numéro au format international (+XXXXXXXXXXX).

    - 0XXXXXXXXX (10 chiffres, format local) → +<indicatif>XXXXXXXXX
    - <indicatif>XXXXXXXXX                     → +<indicatif>XXXXXXXXX
    - au moins 10 chiffres                     → considéré déjà international
    Retourne None si le numéro est inutilisable.
    """
    code = country_code or settings.SMS_COUNTRY_CODE
    digits = re.sub(r"\D", "", phone_number or "")

    if len(digits) == 10 and digits.startswith("0"):
        return f"+{code}{digits[1:]}"
    if len(digits) >= 10:
        return f"+{digits}"
    return None


def truncate_sms(message: str) -> str:
    if len(message) <= SMS_MAX_LENGTH:
        return message
    return message[:SMS_MAX_LENGTH - 3] + "..."


def send_sms(to: str, message: str, priority: str = "normal") -> str:
    """
    Envoie un SMS via le fournisseur configuré et retourne l'identifiant du message.
    Lève ValueError si le numéro est invalide ou le fournisseur inconnu,
    requests.RequestException en cas d'échec réseau.
    """
    phone = format_phone_number(to)
    if phone is None:
        raise ValueError(f"Numéro de téléphone invalide : {to!r}.")

    provider = settings.SMS_PROVIDER
    if provider == "mock":
        return _send_with_mock(phone, message, priority)
    if provider == "twilio":
        return _send_with_twilio(phone, message)
    raise ValueError(f"Fournisseur SMS non supporté : {provider}.")


def _send_with_mock(phone: str, message: str, priority: str) -> str:
    logger.info("SMS (mock) à %s [%s] : %s", phone, priority, message)
    return f"mock_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def _send_with_twilio(phone: str, message: str) -> str:
    if not (settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_FROM_NUMBER):
        raise ValueError("Configuration Twilio incomplète (SID, token ou numéro expéditeur manquant).")

    response = requests.post(
        TWILIO_MESSAGES_URL.format(sid=settings.TWILIO_ACCOUNT_SID),
        data={"To": phone, "From": settings.TWILIO_FROM_NUMBER, "Body": message},
        auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
        timeout=settings.SMS_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    sid = response.json().get("sid")
    logger.info("SMS Twilio envoyé à %s (sid=%s)", phone, sid)
    return sid
