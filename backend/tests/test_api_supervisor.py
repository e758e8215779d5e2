"""
Tests d'intégration API pour les passages superviseur.
Testent POST /api/v1/supervisor/checks
"""

import uuid
from datetime import datetime
from unittest.mock import patch

from lecturetrack.exceptions import NotFoundError
from lecturetrack.schemas.supervisor import SupervisorLogResponse


def make_log_response(**kwargs) -> SupervisorLogResponse:
    return SupervisorLogResponse(
        id=kwargs.get("id", uuid.uuid4()),
        supervisor_id=kwargs.get("supervisor_id", uuid.uuid4()),
        course_schedule_id=kwargs.get("course_schedule_id", uuid.uuid4()),
        check_in_time=kwargs.get("check_in_time", datetime(2026, 3, 2, 9, 30)),
        status=kwargs.get("status", "ongoing"),
        comments=kwargs.get("comments", None),
        is_online=kwargs.get("is_online", False),
        presence_confirmed=kwargs.get("presence_confirmed", True),
    )


def test_passage_enregistre(client):
    schedule_id = uuid.uuid4()
    with patch("lecturetrack.routers.supervisor.supervisor_service.record_supervisor_check") as mock:
        mock.return_value = make_log_response(course_schedule_id=schedule_id)
        response = client.post("/api/v1/supervisor/checks", json={
            "course_schedule_id": str(schedule_id),
            "supervisor_id": str(uuid.uuid4()),
            "status": "  Ongoing ",
        })

    assert response.status_code == 200
    assert response.json()["presence_confirmed"] is True
    assert mock.call_args.kwargs["status"] == "ongoing"


def test_creneau_introuvable(client):
    with patch(
        "lecturetrack.routers.supervisor.supervisor_service.record_supervisor_check",
        side_effect=NotFoundError("Créneau introuvable."),
    ):
        response = client.post("/api/v1/supervisor/checks", json={
            "course_schedule_id": str(uuid.uuid4()),
            "supervisor_id": str(uuid.uuid4()),
            "status": "ongoing",
        })

    assert response.status_code == 404


def test_statut_vide(client):
    response = client.post("/api/v1/supervisor/checks", json={
        "course_schedule_id": str(uuid.uuid4()),
        "supervisor_id": str(uuid.uuid4()),
        "status": "   ",
    })

    assert response.status_code == 422
