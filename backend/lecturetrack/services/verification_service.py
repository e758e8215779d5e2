"""
Machine à états des demandes de vérification de présence.

  pending ──► approved | rejected | disputed   (statuts terminaux)

Une demande terminale n'est jamais rouverte : une nouvelle vérification passe
par une nouvelle demande. La transition utilise un contrôle optimiste
(UPDATE … WHERE status = 'pending') : sur deux décisions concurrentes, une seule
réussit, l'autre reçoit InvalidStateError et aucune notification n'est émise.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lecturetrack.config import settings
from lecturetrack.database import utcnow
from lecturetrack.enums import (
    REVIEWER_ROLES,
    Channel,
    NotificationCategory,
    NotificationPriority,
    NotificationTemplate,
    UserRole,
    VerificationDecision,
    VerificationStatus,
)
from lecturetrack.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from lecturetrack.models.attendance import AttendanceRecord
from lecturetrack.models.programme import Course, CourseSchedule, ProgrammeCoordinator
from lecturetrack.models.user import User
from lecturetrack.models.verification import VerificationRequest
from lecturetrack.schemas.notification import NotificationEvent
from lecturetrack.schemas.verification import VerificationRequestCreate, VerificationRequestResponse
from lecturetrack.services.notification_router import NotificationRouter

logger = logging.getLogger(__name__)


def create_request(
    db: Session,
    data: VerificationRequestCreate,
    notifier=None,
) -> VerificationRequestResponse:
    """
    Crée une demande de vérification `pending` pour un enregistrement de présence
    et notifie le lecturer concerné (in_app + email, priorité haute).

    Lève NotFoundError si l'enregistrement est introuvable,
    ConflictError si une demande ouverte existe déjà pour cet enregistrement.
    """
    record = db.get(AttendanceRecord, data.attendance_record_id)
    if record is None:
        raise NotFoundError(f"Enregistrement de présence {data.attendance_record_id} introuvable.")

    if _open_request_exists(db, record.id):
        raise ConflictError("Une demande de vérification est déjà ouverte pour cet enregistrement.")

    request = VerificationRequest(
        attendance_record_id=record.id,
        requester_id=data.submitter_id,
        status=VerificationStatus.PENDING.value,
        submitted_at=utcnow(),
        verification_notes=data.verification_notes,
        evidence_urls=list(data.evidence_urls),
        student_attendance_data=(
            data.student_attendance_data.model_dump(mode="json") if data.student_attendance_data else None
        ),
    )
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        # Course perdue contre une création concurrente : l'index unique partiel a tranché
        db.rollback()
        raise ConflictError("Une demande de vérification est déjà ouverte pour cet enregistrement.")
    db.refresh(request)

    logger.info(
        "Demande de vérification %s créée pour l'enregistrement %s par %s",
        request.id, record.id, data.submitter_id,
    )

    context = _session_context(db, record)
    submitter = db.get(User, data.submitter_id)
    _notify(notifier, db, NotificationEvent(
        user_ids=[record.lecturer_id],
        category=NotificationCategory.VERIFICATION,
        priority=NotificationPriority.HIGH,
        channels=[Channel.IN_APP, Channel.EMAIL],
        title=f"Attendance Verification Required - {context['course_name']}",
        message=(
            f"{_name(submitter, 'A class representative')} has submitted an attendance "
            f"verification request for {context['course_name']}."
        ),
        template=NotificationTemplate.VERIFICATION_REQUEST,
        template_data={
            "class_rep_name": _name(submitter, "Class representative"),
            "course_name": context["course_name"],
            "class_group": context["class_group"],
            "session_date": context["session_date"],
            "location": context["location"],
            "verification_url": _url(f"/dashboard/verification-requests?request={request.id}"),
        },
        action_url=_url(f"/dashboard/verification-requests?request={request.id}"),
        metadata={"verification_request_id": str(request.id), "attendance_record_id": str(record.id)},
    ))

    return VerificationRequestResponse.model_validate(request)


def decide(
    db: Session,
    request_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    decision: VerificationDecision,
    review_notes: Optional[str] = None,
    escalate: bool = False,
    notifier=None,
) -> VerificationRequestResponse:
    """
    Statue sur une demande `pending` : approved, rejected ou disputed.

    - reviewed_at (et escalated_at si escalade ou contestation) posés à l'instant de la décision
    - approved / rejected sont reportés sur l'enregistrement de présence
    - le demandeur est notifié (SMS en plus si rejet)
    - si escalate : alerte urgente à tous les coordinateurs du programme

    Le rôle du reviewer est vérifié en amont (voir ensure_reviewer).
    Lève NotFoundError si la demande est introuvable,
    InvalidStateError si elle n'est plus pending (y compris course perdue).
    """
    request = db.get(VerificationRequest, request_id)
    if request is None:
        raise NotFoundError(f"Demande de vérification {request_id} introuvable.")
    if request.status != VerificationStatus.PENDING.value:
        raise InvalidStateError(
            f"Impossible de statuer : la demande est déjà en statut {request.status}."
        )

    decision = VerificationDecision(decision)
    now = utcnow()
    values = {
        "status": decision.value,
        "reviewed_at": now,
        "reviewed_by": reviewer_id,
        "review_notes": review_notes,
    }
    if escalate or decision == VerificationDecision.DISPUTED:
        values["escalated_at"] = now

    # Écriture conditionnelle : seule la première décision trouve encore status = pending
    outcome = db.execute(
        update(VerificationRequest)
        .where(
            VerificationRequest.id == request_id,
            VerificationRequest.status == VerificationStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if outcome.rowcount != 1:
        db.rollback()
        raise InvalidStateError("Impossible de statuer : la demande a déjà été traitée.")

    record = db.get(AttendanceRecord, request.attendance_record_id)
    if record is not None:
        _project_decision(record, decision, review_notes)

    db.commit()
    db.refresh(request)

    logger.info(
        "Demande %s passée en %s par %s%s",
        request.id, decision.value, reviewer_id, " (escaladée)" if escalate else "",
    )

    context = _session_context(db, record) if record is not None else _empty_context()
    rejected = decision == VerificationDecision.REJECTED
    channels = [Channel.IN_APP, Channel.EMAIL] + ([Channel.SMS] if rejected else [])
    _notify(notifier, db, NotificationEvent(
        user_ids=[request.requester_id],
        category=NotificationCategory.VERIFICATION,
        priority=NotificationPriority.HIGH if rejected else NotificationPriority.NORMAL,
        channels=channels,
        title=f"Verification {decision.value.capitalize()} - {context['course_name']}",
        message=f"Your attendance verification request has been {decision.value}.",
        template=NotificationTemplate.VERIFICATION_STATUS_UPDATE,
        template_data={
            "course_name": context["course_name"],
            "session_date": context["session_date"],
            "status": decision.value,
            "review_notes": review_notes,
            "dashboard_url": _url("/dashboard/verification-requests"),
        },
        action_url=_url("/dashboard/verification-requests"),
        metadata={"verification_request_id": str(request.id), "status": decision.value},
    ))

    if escalate:
        _escalate(db, request, record, reviewer_id, review_notes, context, notifier)

    return VerificationRequestResponse.model_validate(request)


def get_request(db: Session, request_id: uuid.UUID) -> VerificationRequestResponse:
    """Retourne une demande par son ID. Lève NotFoundError si elle n'existe pas."""
    request = db.get(VerificationRequest, request_id)
    if request is None:
        raise NotFoundError(f"Demande de vérification {request_id} introuvable.")
    return VerificationRequestResponse.model_validate(request)


def ensure_reviewer(db: Session, reviewer_id: uuid.UUID) -> User:
    """Vérifie que l'utilisateur peut statuer (LECTURER, ADMIN, COORDINATOR)."""
    reviewer = db.get(User, reviewer_id)
    if reviewer is None:
        raise NotFoundError(f"Utilisateur {reviewer_id} introuvable.")
    if reviewer.role not in {role.value for role in REVIEWER_ROLES}:
        raise ForbiddenError(f"Le rôle {reviewer.role} ne permet pas de statuer sur une vérification.")
    return reviewer


def programme_coordinator_ids(db: Session, record: AttendanceRecord) -> List[uuid.UUID]:
    """Coordinateurs actifs du programme auquel appartient le cours de l'enregistrement."""
    return list(db.execute(
        select(User.id)
        .join(ProgrammeCoordinator, ProgrammeCoordinator.user_id == User.id)
        .join(Course, Course.programme_id == ProgrammeCoordinator.programme_id)
        .join(CourseSchedule, CourseSchedule.course_id == Course.id)
        .where(
            CourseSchedule.id == record.course_schedule_id,
            User.role == UserRole.COORDINATOR.value,
            User.is_active.is_(True),
        )
        .distinct()
    ).scalars().all())


# ----------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------

def _open_request_exists(db: Session, record_id: uuid.UUID) -> bool:
    return db.execute(
        select(VerificationRequest.id).where(
            VerificationRequest.attendance_record_id == record_id,
            VerificationRequest.status == VerificationStatus.PENDING.value,
        )
    ).first() is not None


def _project_decision(record: AttendanceRecord, decision: VerificationDecision, notes: Optional[str]) -> None:
    """Reporte une décision approved/rejected sur l'enregistrement ; disputed ne le modifie pas."""
    if decision == VerificationDecision.APPROVED:
        record.supervisor_verified = True
        record.supervisor_comment = f"Verified via request: {notes or 'Approved by reviewer'}"
    elif decision == VerificationDecision.REJECTED:
        record.supervisor_verified = False
        record.supervisor_comment = f"Rejected via request: {notes or 'Rejected by reviewer'}"


def _escalate(db, request, record, reviewer_id, review_notes, context, notifier) -> None:
    coordinator_ids = programme_coordinator_ids(db, record) if record is not None else []
    if not coordinator_ids:
        logger.warning("Escalade de la demande %s : aucun coordinateur de programme trouvé", request.id)
        return

    reviewer = db.get(User, reviewer_id)
    _notify(notifier, db, NotificationEvent(
        user_ids=coordinator_ids,
        category=NotificationCategory.ESCALATION,
        priority=NotificationPriority.URGENT,
        channels=[Channel.IN_APP, Channel.EMAIL, Channel.SMS],
        title="Escalation Alert - Disputed attendance verification",
        message=(
            f"Disputed attendance verification reported for {context['course_name']} by "
            f"{_name(reviewer, 'a reviewer')}. Immediate attention required."
        ),
        template=NotificationTemplate.ESCALATION_ALERT,
        template_data={
            "course_name": context["course_name"],
            "issue_type": "Disputed attendance verification",
            "reporter_name": _name(reviewer, "Reviewer"),
            "details": review_notes or f"Session of {context['session_date']} requires coordinator review.",
        },
        action_url=_url(f"/dashboard/verification-requests?request={request.id}"),
        metadata={"verification_request_id": str(request.id), "escalated": True},
    ))


def _notify(notifier, db: Session, event: NotificationEvent) -> None:
    """
    Route l'événement après commit de la transition. Une panne du routage ne
    défait pas la transition : elle est journalisée pour l'exploitation.
    """
    if notifier is None:
        notifier = NotificationRouter(db)
    try:
        result = notifier.route(event)
    except Exception as exc:
        logger.error("Routage de la notification %s impossible : %s", event.template, exc, exc_info=True)
        return
    if not result.success:
        logger.error("Notification %s non délivrée à %s", event.template, event.user_ids)


def _session_context(db: Session, record: AttendanceRecord) -> dict:
    schedule = db.get(CourseSchedule, record.course_schedule_id)
    course = db.get(Course, schedule.course_id) if schedule is not None else None
    return {
        "course_name": f"{course.course_code} - {course.title}" if course is not None else "Unknown course",
        "class_group": (schedule.class_group if schedule is not None else None) or "N/A",
        "session_date": record.timestamp.strftime("%d/%m/%Y %H:%M"),
        "location": (schedule.location if schedule is not None else None) or "Virtual/TBD",
    }


def _empty_context() -> dict:
    return {"course_name": "Unknown course", "class_group": "N/A", "session_date": "N/A", "location": "Virtual/TBD"}


def _name(user: Optional[User], fallback: str) -> str:
    return user.full_name if user is not None else fallback


def _url(path: str) -> str:
    return settings.APP_BASE_URL.rstrip("/") + path
