"""
Tests des tâches périodiques : rejeu des notifications différées et rappels de séance.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

from lecturetrack.enums import NotificationCategory, NotificationTemplate
from lecturetrack.models.notification import Notification
from lecturetrack.schemas.notification import ChannelResult, RouteResult, UserDeliveryResult
from lecturetrack.services.reminder_service import dispatch_due_notifications, send_upcoming_class_reminders


# --- Helpers ---


def make_route_result(user_id, success=True):
    return RouteResult(
        success=success,
        results=[UserDeliveryResult(
            user_id=user_id,
            success=success,
            channels=[ChannelResult(
                channel="email",
                success=success,
                error=None if success else "SMTP refusé",
                attempted_at=datetime(2026, 3, 2, 8, 0),
            )],
        )],
    )


def add_scheduled(db, recipient_id, scheduled_for, data=None):
    row = Notification(
        recipient_id=recipient_id,
        category="reminder",
        priority="normal",
        title="Rappel",
        message="Séance demain",
        data=data if data is not None else {
            "category": "reminder",
            "priority": "normal",
            "title": "Rappel",
            "message": "Séance demain",
        },
        status="scheduled",
        scheduled_for=scheduled_for,
    )
    db.add(row)
    db.commit()
    return row


# ----------------------------------------------------------------
# dispatch_due_notifications
# ----------------------------------------------------------------

def test_notification_echue_rejouee(db_session, seed):
    row = add_scheduled(db_session, seed.lecturer.id, datetime(2026, 3, 2, 7, 0))
    notifier = MagicMock()
    notifier.route.return_value = make_route_result(seed.lecturer.id)

    count = dispatch_due_notifications(db_session, now=datetime(2026, 3, 2, 8, 0), notifier=notifier)

    assert count == 1
    event = notifier.route.call_args.args[0]
    assert event.user_ids == [seed.lecturer.id]
    assert event.category == NotificationCategory.REMINDER
    assert event.scheduled_for is None
    assert db_session.get(Notification, row.id).status == "dispatched"


def test_notification_future_ignoree(db_session, seed):
    add_scheduled(db_session, seed.lecturer.id, datetime(2026, 3, 2, 9, 0))
    notifier = MagicMock()

    count = dispatch_due_notifications(db_session, now=datetime(2026, 3, 2, 8, 0), notifier=notifier)

    assert count == 0
    notifier.route.assert_not_called()


def test_echec_de_livraison_marque_failed(db_session, seed):
    row = add_scheduled(db_session, seed.lecturer.id, datetime(2026, 3, 2, 7, 0))
    notifier = MagicMock()
    notifier.route.return_value = make_route_result(seed.lecturer.id, success=False)

    dispatch_due_notifications(db_session, now=datetime(2026, 3, 2, 8, 0), notifier=notifier)

    stored = db_session.get(Notification, row.id)
    assert stored.status == "failed"
    assert stored.error_message == "email: SMTP refusé"


def test_payload_illisible_marque_failed(db_session, seed):
    row = add_scheduled(db_session, seed.lecturer.id, datetime(2026, 3, 2, 7, 0), data={"category": "nope"})
    notifier = MagicMock()

    dispatch_due_notifications(db_session, now=datetime(2026, 3, 2, 8, 0), notifier=notifier)

    notifier.route.assert_not_called()
    assert db_session.get(Notification, row.id).status == "failed"


# ----------------------------------------------------------------
# send_upcoming_class_reminders
# ----------------------------------------------------------------

def test_rappel_30_minutes_avant(db_session, seed):
    notifier = MagicMock()
    # Lundi 2 mars 2026, 08:30 à Accra (UTC+0) : le créneau du lundi 09:00 est visé
    now = datetime(2026, 3, 2, 8, 30, tzinfo=timezone.utc)

    count = send_upcoming_class_reminders(db_session, now=now, notifier=notifier)

    assert count == 1
    event = notifier.route.call_args.args[0]
    assert event.user_ids == [seed.lecturer.id]
    assert event.template == NotificationTemplate.ATTENDANCE_REMINDER
    assert event.template_data == {
        "course_name": "ACC301 - Financial Reporting",
        "session_time": "09:00",
        "location": "Block B, Room 12",
        "session_type": "LECTURE",
    }
    assert str(seed.schedule.id) in event.action_url


def test_aucun_creneau_a_cette_heure(db_session, seed):
    notifier = MagicMock()

    count = send_upcoming_class_reminders(
        db_session, now=datetime(2026, 3, 2, 8, 45, tzinfo=timezone.utc), notifier=notifier,
    )

    assert count == 0
    notifier.route.assert_not_called()


def test_autre_jour_de_semaine(db_session, seed):
    notifier = MagicMock()

    # Mardi 3 mars, même heure
    count = send_upcoming_class_reminders(
        db_session, now=datetime(2026, 3, 3, 8, 30, tzinfo=timezone.utc), notifier=notifier,
    )

    assert count == 0


def test_erreur_de_routage_n_annule_pas_les_lignes_deja_livrees(session_factory, db_session, seed):
    """La première ligne livrée reste dispatched quand la seconde lève une exception."""
    first_id = add_scheduled(db_session, seed.lecturer.id, datetime(2026, 3, 2, 6, 0)).id
    second_id = add_scheduled(db_session, seed.class_rep.id, datetime(2026, 3, 2, 7, 0)).id
    notifier = MagicMock()
    notifier.route.side_effect = [make_route_result(seed.lecturer.id), RuntimeError("SMTP indisponible")]

    count = dispatch_due_notifications(db_session, now=datetime(2026, 3, 2, 8, 0), notifier=notifier)
    db_session.close()

    assert count == 2
    fresh = session_factory()
    try:
        assert fresh.get(Notification, first_id).status == "dispatched"
        failed = fresh.get(Notification, second_id)
        assert failed.status == "failed"
        assert "SMTP indisponible" in failed.error_message
    finally:
        fresh.close()
