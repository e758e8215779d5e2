"""
Planificateur APScheduler des notifications.

Deux jobs tournent chaque minute :
- rejeu des notifications différées arrivées à échéance
- rappels aux lecturers 30 minutes avant le début de leur séance
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from lecturetrack.config import settings
from lecturetrack.database import SessionLocal

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _dispatch_due_notifications_scheduled() -> None:
    """
    Tâche planifiée : rejoue les notifications différées dont l'échéance est passée.
    Import local pour éviter les imports circulaires.
    """
    from lecturetrack.services.reminder_service import dispatch_due_notifications

    db = SessionLocal()
    try:
        dispatch_due_notifications(db)
    except Exception as exc:
        logger.error("Erreur lors du rejeu des notifications différées : %s", exc)
    finally:
        db.close()


def _send_upcoming_class_reminders_scheduled() -> None:
    """Tâche planifiée : rappel des séances qui commencent dans 30 minutes."""
    from lecturetrack.services.reminder_service import send_upcoming_class_reminders

    db = SessionLocal()
    try:
        send_upcoming_class_reminders(db)
    except Exception as exc:
        logger.error("Erreur lors de l'envoi des rappels de séance : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler désactivé par configuration.")
        return
    scheduler.add_job(
        _dispatch_due_notifications_scheduled,
        trigger="interval",
        minutes=1,
        id="scheduled_notifications_drain",
        replace_existing=True,
    )
    scheduler.add_job(
        _send_upcoming_class_reminders_scheduled,
        trigger="cron",
        minute="*",
        id="upcoming_class_reminders",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler démarré : notifications différées et rappels de séance chaque minute.")


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
