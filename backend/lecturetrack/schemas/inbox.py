"""
Schémas Pydantic de la boîte de réception in-app et des statistiques d'envoi.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class InboxNotification(BaseModel):
    id: uuid.UUID
    category: str
    priority: str
    title: str
    message: str
    action_url: Optional[str]
    data: Optional[Dict[str, Any]]
    sent_at: Optional[datetime]
    read_at: Optional[datetime]

    model_config = {"from_attributes": True}


class InboxPage(BaseModel):
    notifications: List[InboxNotification]
    total_count: int
    unread_count: int
    has_more: bool


class MarkReadIn(BaseModel):
    """Soit une liste d'identifiants, soit mark_all=true."""
    notification_ids: List[uuid.UUID] = Field(default_factory=list)
    mark_all: bool = False

    @model_validator(mode="after")
    def ids_or_all(self) -> "MarkReadIn":
        if not self.mark_all and not self.notification_ids:
            raise ValueError("Fournir notification_ids ou mark_all=true.")
        return self


class UpdatedCount(BaseModel):
    updated_count: int


class DeletedCount(BaseModel):
    deleted_count: int


class DeliveryStats(BaseModel):
    """Compteurs sur la table notifications (in-app envoyées, différées rejouées ou en échec)."""
    total: int
    by_status: Dict[str, int]
    by_category: Dict[str, int]
    unread: int
    deferred_success_rate: Optional[float]  # dispatched / (dispatched + failed), None sans envoi différé
