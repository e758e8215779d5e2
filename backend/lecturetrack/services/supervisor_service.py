"""
Réconciliation des passages superviseur.

Flux de record_supervisor_check :
  1. Upsert du log pour (créneau, jour calendaire du passage)
  2. Présence confirmée si le statut vaut ongoing ou online
  3. Report best-effort sur l'enregistrement de présence du même jour :
     absent → rien à faire ; une décision de vérification (approved/rejected)
     déjà prise reste prioritaire
L'écriture du log n'échoue jamais à cause du report.
"""

import logging
import uuid
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lecturetrack.config import settings
from lecturetrack.database import utcnow
from lecturetrack.enums import PRESENCE_CONFIRMED_STATUSES, VerificationStatus
from lecturetrack.exceptions import NotFoundError
from lecturetrack.models.attendance import AttendanceRecord
from lecturetrack.models.programme import CourseSchedule
from lecturetrack.models.supervisor_log import SupervisorLog
from lecturetrack.models.verification import VerificationRequest
from lecturetrack.schemas.supervisor import SupervisorLogResponse

logger = logging.getLogger(__name__)

DECIDED_STATUSES = (VerificationStatus.APPROVED.value, VerificationStatus.REJECTED.value)


def day_bounds(moment: datetime, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """
    Bornes [début, fin) du jour calendaire de `moment` dans le fuseau de l'application,
    converties en UTC naïf (format de stockage).
    """
    tz = ZoneInfo(tz_name or settings.APP_TIMEZONE)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local_day = moment.astimezone(tz).date()
    start = datetime.combine(local_day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def is_presence_confirmed(status: str) -> bool:
    return status.strip().lower() in PRESENCE_CONFIRMED_STATUSES


def record_supervisor_check(
    db: Session,
    course_schedule_id: uuid.UUID,
    supervisor_id: uuid.UUID,
    status: str,
    comments: Optional[str] = None,
    is_online: bool = False,
    check_in_time: Optional[datetime] = None,
) -> SupervisorLogResponse:
    """
    Enregistre le passage d'un superviseur (un log par créneau et par jour).

    Lève NotFoundError si le créneau est introuvable.
    """
    if db.get(CourseSchedule, course_schedule_id) is None:
        raise NotFoundError(f"Créneau {course_schedule_id} introuvable.")

    status = status.strip().lower()
    checked_at = check_in_time or utcnow()
    if checked_at.tzinfo is not None:
        checked_at = checked_at.astimezone(timezone.utc).replace(tzinfo=None)
    start, end = day_bounds(checked_at)

    log = db.execute(
        select(SupervisorLog).where(
            SupervisorLog.course_schedule_id == course_schedule_id,
            SupervisorLog.check_in_time >= start,
            SupervisorLog.check_in_time < end,
        )
    ).scalar()

    if log is None:
        log = SupervisorLog(course_schedule_id=course_schedule_id)
        db.add(log)
        action = "créé"
    else:
        action = "mis à jour"

    log.supervisor_id = supervisor_id
    log.status = status
    log.comments = comments
    log.is_online = is_online
    log.check_in_time = checked_at
    db.commit()
    db.refresh(log)

    presence_confirmed = is_presence_confirmed(status)
    logger.info(
        "Log superviseur %s %s, créneau %s, statut %s (présence confirmée : %s)",
        log.id, action, course_schedule_id, status, presence_confirmed,
    )

    try:
        _project_on_attendance(db, course_schedule_id, start, end, presence_confirmed, comments)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Report du log superviseur %s sur la présence impossible : %s", log.id, exc, exc_info=True,
        )

    return SupervisorLogResponse(
        id=log.id,
        supervisor_id=log.supervisor_id,
        course_schedule_id=log.course_schedule_id,
        check_in_time=log.check_in_time,
        status=log.status,
        comments=log.comments,
        is_online=log.is_online,
        presence_confirmed=presence_confirmed,
    )


def _project_on_attendance(
    db: Session,
    course_schedule_id: uuid.UUID,
    start: datetime,
    end: datetime,
    presence_confirmed: bool,
    comments: Optional[str],
) -> None:
    record = db.execute(
        select(AttendanceRecord)
        .where(
            AttendanceRecord.course_schedule_id == course_schedule_id,
            AttendanceRecord.timestamp >= start,
            AttendanceRecord.timestamp < end,
        )
        .order_by(AttendanceRecord.timestamp)
    ).scalars().first()

    if record is None:
        logger.debug("Aucune présence du jour pour le créneau %s, report ignoré", course_schedule_id)
        return

    latest = db.execute(
        select(VerificationRequest.status)
        .where(VerificationRequest.attendance_record_id == record.id)
        .order_by(VerificationRequest.submitted_at.desc())
    ).scalars().first()
    if latest in DECIDED_STATUSES:
        logger.info(
            "Présence %s déjà tranchée par une vérification (%s), report superviseur ignoré",
            record.id, latest,
        )
        return

    record.supervisor_verified = presence_confirmed
    record.supervisor_comment = comments
    db.commit()
