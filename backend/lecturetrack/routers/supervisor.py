"""
Router des passages superviseur (sur site et en ligne).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lecturetrack.database import get_db
from lecturetrack.exceptions import DomainError
from lecturetrack.routers.errors import to_http
from lecturetrack.schemas.supervisor import SupervisorCheckIn, SupervisorLogResponse
from lecturetrack.services import supervisor_service

router = APIRouter(prefix="/api/v1/supervisor", tags=["Supervision"])


@router.post("/checks", response_model=SupervisorLogResponse, summary="Enregistrer un passage superviseur")
def record_supervisor_check(data: SupervisorCheckIn, db: Session = Depends(get_db)):
    """
    Crée ou met à jour le log du jour pour le créneau.
    Le statut ongoing/online confirme la présence du lecturer sur l'enregistrement du jour, s'il existe.

    Retourne 404 si le créneau est introuvable.
    """
    try:
        return supervisor_service.record_supervisor_check(
            db,
            course_schedule_id=data.course_schedule_id,
            supervisor_id=data.supervisor_id,
            status=data.status,
            comments=data.comments,
            is_online=data.is_online,
        )
    except DomainError as e:
        raise to_http(e)
