"""
Router des notifications : routage d'un événement, préférences utilisateur,
boîte de réception in-app et statistiques d'envoi.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lecturetrack.database import get_db
from lecturetrack.exceptions import DomainError
from lecturetrack.routers.errors import to_http
from lecturetrack.schemas.inbox import DeletedCount, DeliveryStats, InboxPage, MarkReadIn, UpdatedCount
from lecturetrack.schemas.notification import NotificationEvent, RouteResult
from lecturetrack.schemas.preferences import NotificationPreferences, NotificationPreferencesUpdate
from lecturetrack.services import inbox_service
from lecturetrack.services.notification_router import NotificationRouter
from lecturetrack.services.preference_store import PreferenceStore

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.post("/route", response_model=RouteResult, summary="Router une notification")
def route_notification(event: NotificationEvent, db: Session = Depends(get_db)):
    """
    Envoie l'événement à chaque destinataire sur les canaux résolus
    (préférences, priorité, heures calmes), ou le diffère si scheduled_for est futur.

    Toujours 200 : le détail par utilisateur et par canal est dans le corps.
    success=false signifie qu'aucun destinataire n'a rien reçu.
    """
    return NotificationRouter(db).route(event)


@router.get(
    "/preferences/{user_id}",
    response_model=NotificationPreferences,
    summary="Préférences de notification d'un utilisateur",
)
def get_preferences(user_id: uuid.UUID, db: Session = Depends(get_db)):
    """Retourne les préférences, créées avec les valeurs par défaut au premier accès."""
    return PreferenceStore(db).get(user_id)


@router.put(
    "/preferences/{user_id}",
    response_model=NotificationPreferences,
    summary="Modifier les préférences de notification",
)
def update_preferences(
    user_id: uuid.UUID,
    data: NotificationPreferencesUpdate,
    db: Session = Depends(get_db),
):
    """Seules les clés fournies (channels, categories, quiet_hours) sont remplacées."""
    return PreferenceStore(db).update(user_id, data)


@router.get("/inbox/{user_id}", response_model=InboxPage, summary="Boîte de réception in-app")
def list_inbox(
    user_id: uuid.UUID,
    unread: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Notifications in-app les plus récentes d'abord, avec total, non lues et has_more."""
    return inbox_service.list_notifications(db, user_id, unread_only=unread, limit=limit, offset=offset)


@router.put(
    "/inbox/{user_id}/read",
    response_model=UpdatedCount,
    summary="Marquer des notifications comme lues",
)
def mark_inbox_read(user_id: uuid.UUID, data: MarkReadIn, db: Session = Depends(get_db)):
    try:
        updated = inbox_service.mark_read(
            db, user_id, notification_ids=data.notification_ids, mark_all=data.mark_all,
        )
    except DomainError as e:
        raise to_http(e)
    return UpdatedCount(updated_count=updated)


@router.delete("/inbox/{user_id}", response_model=DeletedCount, summary="Supprimer des notifications")
def delete_inbox(
    user_id: uuid.UUID,
    ids: Optional[List[uuid.UUID]] = Query(None),
    read: bool = False,
    all: bool = False,
    db: Session = Depends(get_db),
):
    """
    all=true vide la boîte, read=true supprime les notifications lues,
    sinon ids est obligatoire (400 s'il manque).
    """
    try:
        deleted = inbox_service.delete_notifications(
            db, user_id, notification_ids=ids, read_only=read, delete_all=all,
        )
    except DomainError as e:
        raise to_http(e)
    return DeletedCount(deleted_count=deleted)


@router.get("/stats", response_model=DeliveryStats, summary="Statistiques d'envoi")
def get_delivery_stats(
    user_id: Optional[uuid.UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return inbox_service.delivery_stats(db, user_id=user_id, start=start, end=end)
