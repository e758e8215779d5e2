"""
Accès aux préférences de notification, stockées dans system_settings.

Schéma clé-valeur : catégorie `notification_preferences`, clé = id utilisateur,
valeur = JSON de NotificationPreferences. Les valeurs par défaut sont injectées
à la construction et persistées au premier accès d'un utilisateur.
"""

import logging
import uuid
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from lecturetrack.models.notification import SystemSetting
from lecturetrack.schemas.preferences import (
    DEFAULT_PREFERENCES,
    NotificationPreferences,
    NotificationPreferencesUpdate,
)

logger = logging.getLogger(__name__)

PREFERENCES_CATEGORY = "notification_preferences"


class PreferenceStore:
    def __init__(self, db: Session, defaults: NotificationPreferences = DEFAULT_PREFERENCES):
        self.db = db
        self.defaults = defaults

    def get(self, user_id: uuid.UUID) -> NotificationPreferences:
        """Retourne les préférences de l'utilisateur, créées avec les valeurs par défaut si absentes."""
        raw = self._get_value(str(user_id))
        if raw is not None:
            try:
                return NotificationPreferences.model_validate_json(raw)
            except ValidationError as exc:
                # Valeur illisible : on ne bloque pas l'envoi, on retombe sur les défauts sans écraser
                logger.error("Préférences illisibles pour %s, valeurs par défaut utilisées : %s", user_id, exc)
                return self.defaults.model_copy(deep=True)

        preferences = self.defaults.model_copy(deep=True)
        self._put_value(str(user_id), preferences.model_dump_json())
        logger.info("Préférences par défaut créées pour l'utilisateur %s", user_id)
        return preferences

    def update(self, user_id: uuid.UUID, data: NotificationPreferencesUpdate) -> NotificationPreferences:
        """
        Fusionne les clés fournies avec les préférences courantes et les persiste.
        channels et categories sont fusionnés clé par clé ; quiet_hours est remplacé.
        """
        merged = self.get(user_id).model_dump()
        for field, value in data.model_dump(exclude_unset=True).items():
            if field in ("channels", "categories"):
                if value is not None:
                    merged[field] = {**merged[field], **value}
            else:
                merged[field] = value
        preferences = NotificationPreferences.model_validate(merged)
        self._put_value(str(user_id), preferences.model_dump_json())
        return preferences

    def _get_value(self, key: str) -> Optional[str]:
        setting = self.db.execute(
            select(SystemSetting).where(
                SystemSetting.category == PREFERENCES_CATEGORY,
                SystemSetting.key == key,
                SystemSetting.is_active.is_(True),
            )
        ).scalar()
        return setting.value if setting else None

    def _put_value(self, key: str, value: str) -> None:
        setting = self.db.execute(
            select(SystemSetting).where(
                SystemSetting.category == PREFERENCES_CATEGORY,
                SystemSetting.key == key,
            )
        ).scalar()
        if setting is None:
            setting = SystemSetting(
                category=PREFERENCES_CATEGORY,
                key=key,
                value=value,
                description="User notification preferences",
            )
            self.db.add(setting)
        else:
            setting.value = value
            setting.is_active = True
        self.db.commit()
