"""
Tâches périodiques du routeur de notifications (lancées par le scheduler).

- dispatch_due_notifications : rejoue les notifications différées arrivées à échéance
- send_upcoming_class_reminders : rappel aux lecturers 30 minutes avant leur séance
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from lecturetrack.config import settings
from lecturetrack.database import utcnow
from lecturetrack.enums import (
    NotificationCategory,
    NotificationPriority,
    NotificationStatus,
    NotificationTemplate,
)
from lecturetrack.models.notification import Notification
from lecturetrack.models.programme import Course, CourseSchedule
from lecturetrack.schemas.notification import NotificationEvent
from lecturetrack.services.notification_router import NotificationRouter

logger = logging.getLogger(__name__)

REMINDER_LEAD_MINUTES = 30


def dispatch_due_notifications(db: Session, now: Optional[datetime] = None, notifier=None) -> int:
    """
    Route chaque notification `scheduled` dont l'échéance est passée, pour son seul
    destinataire, puis la marque `dispatched` (ou `failed` si aucun canal n'a abouti).
    Retourne le nombre de notifications traitées.
    """
    notifier = notifier or NotificationRouter(db)
    due_before = now or utcnow()

    due = db.execute(
        select(Notification)
        .where(
            Notification.status == NotificationStatus.SCHEDULED.value,
            Notification.scheduled_for <= due_before,
        )
        .order_by(Notification.scheduled_for)
    ).scalars().all()

    # Commit ligne par ligne : une notification déjà livrée reste marquée même si la suivante échoue
    for row in due:
        try:
            event = NotificationEvent.model_validate({**(row.data or {}), "user_ids": [row.recipient_id]})
        except ValidationError as exc:
            row.status = NotificationStatus.FAILED.value
            row.error_message = f"Événement différé illisible : {exc}"
            db.commit()
            logger.error("Notification différée %s illisible : %s", row.id, exc)
            continue

        try:
            result = notifier.route(event)
        except Exception as exc:
            db.rollback()
            row.status = NotificationStatus.FAILED.value
            row.error_message = f"Erreur de routage : {exc}"
            row.sent_at = utcnow()
            db.commit()
            logger.error("Routage de la notification différée %s impossible : %s", row.id, exc, exc_info=True)
            continue

        row.status = (NotificationStatus.DISPATCHED if result.success else NotificationStatus.FAILED).value
        row.sent_at = utcnow()
        if not result.success:
            row.error_message = "; ".join(
                f"{c.channel}: {c.error}" for r in result.results for c in r.channels if not c.success
            )
        db.commit()

    if due:
        logger.info("%d notification(s) différée(s) traitée(s)", len(due))
    return len(due)


def send_upcoming_class_reminders(db: Session, now: Optional[datetime] = None, notifier=None) -> int:
    """
    Cherche les créneaux qui commencent dans 30 minutes (même jour de semaine et
    même HH:MM dans le fuseau de l'application) et envoie un rappel au lecturer.
    Retourne le nombre de rappels envoyés.
    """
    notifier = notifier or NotificationRouter(db)
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    target = (moment + timedelta(minutes=REMINDER_LEAD_MINUTES)).astimezone(ZoneInfo(settings.APP_TIMEZONE))

    # isoweekday : lundi=1 … dimanche=7 ; stockage : dimanche=0 … samedi=6
    day_of_week = target.isoweekday() % 7
    start_time = target.strftime("%H:%M")

    rows = db.execute(
        select(CourseSchedule, Course)
        .join(Course, Course.id == CourseSchedule.course_id)
        .where(CourseSchedule.day_of_week == day_of_week, CourseSchedule.start_time == start_time)
    ).all()

    for schedule, course in rows:
        location = schedule.location or "Virtual/TBD"
        course_name = f"{course.course_code} - {course.title}"
        notifier.route(NotificationEvent(
            user_ids=[schedule.lecturer_id],
            category=NotificationCategory.REMINDER,
            priority=NotificationPriority.NORMAL,
            title="Upcoming Class Reminder",
            message=(
                f"Upcoming Class: {course_name} with {schedule.class_group or 'your class'} "
                f"starts in {REMINDER_LEAD_MINUTES} minutes at {location}."
            ),
            template=NotificationTemplate.ATTENDANCE_REMINDER,
            template_data={
                "course_name": course_name,
                "session_time": schedule.start_time,
                "location": location,
                "session_type": schedule.session_type or "LECTURE",
            },
            action_url=settings.APP_BASE_URL.rstrip("/") + f"/dashboard/attendance/verify/{schedule.id}",
            metadata={"schedule_id": str(schedule.id), "start_time": schedule.start_time},
        ))

    if rows:
        logger.info("%d rappel(s) de séance envoyé(s) pour %s à %s", len(rows), target.date(), start_time)
    return len(rows)
