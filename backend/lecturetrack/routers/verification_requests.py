"""
Router des demandes de vérification de présence.
Création par le délégué de classe, décision par un lecturer, admin ou coordinateur.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lecturetrack.database import get_db
from lecturetrack.exceptions import DomainError
from lecturetrack.routers.errors import to_http
from lecturetrack.schemas.verification import (
    VerificationDecisionIn,
    VerificationRequestCreate,
    VerificationRequestResponse,
)
from lecturetrack.services import verification_service

router = APIRouter(prefix="/api/v1/verification-requests", tags=["Vérifications"])


@router.post(
    "",
    response_model=VerificationRequestResponse,
    status_code=201,
    summary="Soumettre une demande de vérification",
)
def create_verification_request(data: VerificationRequestCreate, db: Session = Depends(get_db)):
    """
    Crée une demande `pending` pour un enregistrement de présence et notifie le lecturer.

    Retourne 404 si l'enregistrement est introuvable,
    409 si une demande est déjà ouverte pour cet enregistrement.
    """
    try:
        return verification_service.create_request(db, data)
    except DomainError as e:
        raise to_http(e)


@router.get(
    "/{request_id}",
    response_model=VerificationRequestResponse,
    summary="Détail d'une demande de vérification",
)
def get_verification_request(request_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return verification_service.get_request(db, request_id)
    except DomainError as e:
        raise to_http(e)


@router.post(
    "/{request_id}/decision",
    response_model=VerificationRequestResponse,
    summary="Statuer sur une demande de vérification",
)
def decide_verification_request(
    request_id: uuid.UUID,
    data: VerificationDecisionIn,
    db: Session = Depends(get_db),
):
    """
    Approuve, rejette ou conteste une demande `pending`.
    Avec escalate=true, les coordinateurs du programme reçoivent une alerte urgente.

    Retourne 403 si le reviewer n'est ni LECTURER, ni ADMIN, ni COORDINATOR,
    404 si la demande est introuvable, 409 si elle a déjà été traitée.
    """
    try:
        verification_service.ensure_reviewer(db, data.reviewer_id)
        return verification_service.decide(
            db,
            request_id,
            reviewer_id=data.reviewer_id,
            decision=data.decision,
            review_notes=data.review_notes,
            escalate=data.escalate,
        )
    except DomainError as e:
        raise to_http(e)
