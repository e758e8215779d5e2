"""
Boîte de réception in-app : lecture paginée, marquage comme lu, suppression,
et statistiques d'envoi calculées sur la table notifications.

Seules les lignes `sent` (créées par le canal in_app) forment la boîte de réception ;
les lignes scheduled / dispatched / failed sont les envois différés.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from lecturetrack.database import utcnow
from lecturetrack.enums import NotificationStatus
from lecturetrack.exceptions import DomainError
from lecturetrack.models.notification import Notification
from lecturetrack.schemas.inbox import DeliveryStats, InboxNotification, InboxPage

logger = logging.getLogger(__name__)


def _inbox(user_id: uuid.UUID) -> list:
    return [
        Notification.recipient_id == user_id,
        Notification.status == NotificationStatus.SENT.value,
    ]


def _count(db: Session, *conditions) -> int:
    return db.execute(select(func.count()).select_from(Notification).where(*conditions)).scalar() or 0


def list_notifications(
    db: Session,
    user_id: uuid.UUID,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> InboxPage:
    """Notifications in-app de l'utilisateur, les plus récentes d'abord."""
    conditions = _inbox(user_id)
    if unread_only:
        conditions.append(Notification.read_at.is_(None))

    rows = db.execute(
        select(Notification)
        .where(*conditions)
        .order_by(Notification.sent_at.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    total = _count(db, *conditions)

    return InboxPage(
        notifications=[InboxNotification.model_validate(row) for row in rows],
        total_count=total,
        unread_count=_count(db, *_inbox(user_id), Notification.read_at.is_(None)),
        has_more=offset + limit < total,
    )


def mark_read(
    db: Session,
    user_id: uuid.UUID,
    notification_ids: Optional[List[uuid.UUID]] = None,
    mark_all: bool = False,
) -> int:
    """
    Pose read_at sur les notifications non lues de l'utilisateur (toutes, ou celles listées).
    Les identifiants d'un autre utilisateur sont ignorés. Retourne le nombre de lignes modifiées.
    """
    stmt = update(Notification).where(*_inbox(user_id), Notification.read_at.is_(None))
    if not mark_all:
        if not notification_ids:
            raise DomainError("Aucun identifiant de notification fourni.")
        stmt = stmt.where(Notification.id.in_(notification_ids))

    result = db.execute(stmt.values(read_at=utcnow()).execution_options(synchronize_session=False))
    db.commit()
    logger.info("%d notification(s) marquée(s) lue(s) pour %s", result.rowcount, user_id)
    return result.rowcount


def delete_notifications(
    db: Session,
    user_id: uuid.UUID,
    notification_ids: Optional[List[uuid.UUID]] = None,
    read_only: bool = False,
    delete_all: bool = False,
) -> int:
    """
    Supprime des notifications de la boîte de l'utilisateur : toutes, les lues,
    ou celles listées. Retourne le nombre de lignes supprimées.
    """
    stmt = delete(Notification).where(*_inbox(user_id))
    if not delete_all:
        if read_only:
            stmt = stmt.where(Notification.read_at.is_not(None))
        elif notification_ids:
            stmt = stmt.where(Notification.id.in_(notification_ids))
        else:
            raise DomainError("Aucun identifiant de notification fourni.")

    result = db.execute(stmt.execution_options(synchronize_session=False))
    db.commit()
    logger.info("%d notification(s) supprimée(s) pour %s", result.rowcount, user_id)
    return result.rowcount


def delivery_stats(
    db: Session,
    user_id: Optional[uuid.UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> DeliveryStats:
    """Répartition des notifications par statut et par catégorie, filtrable par destinataire et période."""
    conditions = []
    if user_id is not None:
        conditions.append(Notification.recipient_id == user_id)
    if start is not None:
        conditions.append(Notification.created_at >= start)
    if end is not None:
        conditions.append(Notification.created_at < end)

    by_status = dict(db.execute(
        select(Notification.status, func.count()).where(*conditions).group_by(Notification.status)
    ).all())
    by_category = dict(db.execute(
        select(Notification.category, func.count()).where(*conditions).group_by(Notification.category)
    ).all())

    dispatched = by_status.get(NotificationStatus.DISPATCHED.value, 0)
    failed = by_status.get(NotificationStatus.FAILED.value, 0)
    return DeliveryStats(
        total=sum(by_status.values()),
        by_status=by_status,
        by_category=by_category,
        unread=_count(
            db, *conditions,
            Notification.status == NotificationStatus.SENT.value,
            Notification.read_at.is_(None),
        ),
        deferred_success_rate=round(dispatched / (dispatched + failed), 4) if dispatched + failed else None,
    )
