"""
Schémas Pydantic pour le routage des notifications.

NotificationEvent est éphémère : seul l'enregistrement in-app (ou la notification
différée) qu'il produit est persisté.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from lecturetrack.enums import (
    Channel,
    NotificationCategory,
    NotificationPriority,
    NotificationTemplate,
)

# Canal fictif utilisé dans le résultat d'un envoi différé
SCHEDULED_CHANNEL = "scheduled"


class NotificationEvent(BaseModel):
    """Événement à router vers un ou plusieurs utilisateurs."""
    user_ids: List[uuid.UUID]
    category: NotificationCategory
    priority: NotificationPriority = NotificationPriority.NORMAL
    title: str
    message: str
    channels: Optional[List[Channel]] = None  # Surcharge explicite : ignore les préférences
    scheduled_for: Optional[datetime] = None
    template: Optional[NotificationTemplate] = None
    template_data: Dict[str, Any] = Field(default_factory=dict)
    action_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("user_ids")
    @classmethod
    def at_least_one_user(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        if not v:
            raise ValueError("Au moins un destinataire doit être fourni.")
        return v

    @field_validator("title", "message")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le titre et le message ne peuvent pas être vides.")
        return v.strip()


class DeliveryResult(BaseModel):
    """Retour brut d'un expéditeur de canal."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class ChannelResult(BaseModel):
    """Résultat d'un canal pour un utilisateur, suffisant pour décider d'un renvoi."""
    channel: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    attempted_at: datetime


class UserDeliveryResult(BaseModel):
    user_id: uuid.UUID
    success: bool  # Au moins un canal réussi
    channels: List[ChannelResult]


class RouteResult(BaseModel):
    success: bool  # Au moins un utilisateur servi
    results: List[UserDeliveryResult]
