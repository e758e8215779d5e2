"""
Schémas Pydantic des préférences de notification d'un utilisateur.

Stockées en JSON dans system_settings (catégorie notification_preferences,
clé = id utilisateur) et créées avec les valeurs par défaut au premier accès.
"""

import re
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator

from lecturetrack.enums import Channel, NotificationCategory, NotificationPriority

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ChannelPreference(BaseModel):
    """Un canal : activé ou non, avec une priorité minimale optionnelle."""
    type: Channel
    enabled: bool = True
    priority: Optional[NotificationPriority] = None


class QuietHours(BaseModel):
    enabled: bool = False
    start: str = "22:00"  # HH:MM, heure locale de l'utilisateur
    end: str = "07:00"
    timezone: str = "UTC"

    @field_validator("start", "end")
    @classmethod
    def valid_hhmm(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError("Heure invalide, format attendu HH:MM.")
        return v


class NotificationPreferences(BaseModel):
    channels: Dict[Channel, ChannelPreference]
    categories: Dict[NotificationCategory, List[ChannelPreference]]
    quiet_hours: Optional[QuietHours] = None


class NotificationPreferencesUpdate(BaseModel):
    """Mise à jour partielle : seules les clés fournies remplacent les valeurs stockées."""
    channels: Optional[Dict[Channel, ChannelPreference]] = None
    categories: Optional[Dict[NotificationCategory, List[ChannelPreference]]] = None
    quiet_hours: Optional[QuietHours] = None


DEFAULT_PREFERENCES = NotificationPreferences(
    channels={
        Channel.EMAIL: ChannelPreference(type=Channel.EMAIL, enabled=True, priority=NotificationPriority.NORMAL),
        Channel.SMS: ChannelPreference(type=Channel.SMS, enabled=False, priority=NotificationPriority.HIGH),
        Channel.IN_APP: ChannelPreference(type=Channel.IN_APP, enabled=True, priority=NotificationPriority.NORMAL),
        Channel.PUSH: ChannelPreference(type=Channel.PUSH, enabled=True, priority=NotificationPriority.NORMAL),
    },
    categories={
        NotificationCategory.ATTENDANCE: [
            ChannelPreference(type=Channel.IN_APP),
            ChannelPreference(type=Channel.EMAIL),
        ],
        NotificationCategory.VERIFICATION: [
            ChannelPreference(type=Channel.IN_APP),
            ChannelPreference(type=Channel.EMAIL),
            ChannelPreference(type=Channel.SMS, priority=NotificationPriority.HIGH),
        ],
        NotificationCategory.SYSTEM: [
            ChannelPreference(type=Channel.IN_APP),
            ChannelPreference(type=Channel.EMAIL),
        ],
        NotificationCategory.REMINDER: [
            ChannelPreference(type=Channel.IN_APP),
            ChannelPreference(type=Channel.EMAIL),
        ],
        NotificationCategory.ESCALATION: [
            ChannelPreference(type=Channel.IN_APP),
            ChannelPreference(type=Channel.EMAIL),
            ChannelPreference(type=Channel.SMS, priority=NotificationPriority.URGENT),
        ],
    },
)
