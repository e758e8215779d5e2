"""
Tests du service superviseur : upsert du log du jour, confirmation de présence
et report best-effort sur l'enregistrement de présence.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from lecturetrack.exceptions import NotFoundError
from lecturetrack.models.attendance import AttendanceRecord
from lecturetrack.models.supervisor_log import SupervisorLog
from lecturetrack.models.verification import VerificationRequest
from lecturetrack.services.supervisor_service import (
    day_bounds,
    is_presence_confirmed,
    record_supervisor_check,
)

CHECK_TIME = datetime(2026, 3, 2, 9, 30)


def check(db, seed, status, comments=None, check_in_time=CHECK_TIME, is_online=False):
    return record_supervisor_check(
        db,
        course_schedule_id=seed.schedule.id,
        supervisor_id=seed.supervisor.id,
        status=status,
        comments=comments,
        is_online=is_online,
        check_in_time=check_in_time,
    )


def test_journee_accra_alignee_sur_utc():
    start, end = day_bounds(datetime(2026, 3, 2, 23, 59), "Africa/Accra")
    assert start == datetime(2026, 3, 2, 0, 0)
    assert end == datetime(2026, 3, 3, 0, 0)


def test_fuseau_decale():
    # 23:30 UTC le 2 mars = 00:30 le 3 mars à Lagos (UTC+1)
    start, end = day_bounds(datetime(2026, 3, 2, 23, 30, tzinfo=timezone.utc), "Africa/Lagos")
    assert start == datetime(2026, 3, 2, 23, 0)
    assert end == datetime(2026, 3, 3, 23, 0)


@pytest.mark.parametrize("status,expected", [
    ("ongoing", True),
    ("online", True),
    (" Ongoing ", True),
    ("lecturer_absent", False),
    ("not_started", False),
])
def test_is_presence_confirmed(status, expected):
    assert is_presence_confirmed(status) is expected


def test_log_cree_et_presence_confirmee(db_session, seed):
    result = check(db_session, seed, "ongoing", "Lecture in progress")

    assert result.presence_confirmed is True
    assert result.status == "ongoing"
    record = db_session.get(AttendanceRecord, seed.record.id)
    assert record.supervisor_verified is True
    assert record.supervisor_comment == "Lecture in progress"


def test_statut_absent_infirme_la_presence(db_session, seed):
    result = check(db_session, seed, "lecturer_absent", "Room empty")

    assert result.presence_confirmed is False
    assert db_session.get(AttendanceRecord, seed.record.id).supervisor_verified is False


def test_meme_jour_met_a_jour_le_meme_log(db_session, seed):
    first = check(db_session, seed, "not_started")
    second = check(db_session, seed, "ongoing", check_in_time=datetime(2026, 3, 2, 10, 15))

    assert second.id == first.id
    assert db_session.query(SupervisorLog).count() == 1
    log = db_session.get(SupervisorLog, first.id)
    assert log.status == "ongoing"
    assert log.check_in_time == datetime(2026, 3, 2, 10, 15)


def test_jour_suivant_cree_un_nouveau_log(db_session, seed):
    check(db_session, seed, "ongoing")
    check(db_session, seed, "ongoing", check_in_time=datetime(2026, 3, 9, 9, 30))

    assert db_session.query(SupervisorLog).count() == 2


def test_idempotence(db_session, seed):
    first = check(db_session, seed, "online", "Stream OK", is_online=True)
    record_after_first = db_session.get(AttendanceRecord, seed.record.id)
    state_first = (record_after_first.supervisor_verified, record_after_first.supervisor_comment)

    second = check(db_session, seed, "online", "Stream OK", is_online=True)

    assert second.model_dump() == first.model_dump()
    assert db_session.query(SupervisorLog).count() == 1
    record = db_session.get(AttendanceRecord, seed.record.id)
    assert (record.supervisor_verified, record.supervisor_comment) == state_first


def test_sans_presence_du_jour_aucune_mutation(db_session, seed):
    """Passage un autre jour que la présence enregistrée : log créé, présence intacte."""
    result = check(db_session, seed, "lecturer_absent", check_in_time=datetime(2026, 3, 3, 9, 30))

    assert result.presence_confirmed is False
    assert db_session.query(SupervisorLog).count() == 1
    record = db_session.get(AttendanceRecord, seed.record.id)
    assert record.supervisor_verified is None
    assert record.supervisor_comment is None


def test_decision_de_verification_prioritaire(db_session, seed):
    record = db_session.get(AttendanceRecord, seed.record.id)
    record.supervisor_verified = True
    record.supervisor_comment = "Verified via request: Confirmed"
    db_session.add(VerificationRequest(
        attendance_record_id=seed.record.id,
        requester_id=seed.class_rep.id,
        status="approved",
        submitted_at=datetime(2026, 3, 2, 11, 0),
        evidence_urls=[],
    ))
    db_session.commit()

    check(db_session, seed, "lecturer_absent", "Room empty")

    record = db_session.get(AttendanceRecord, seed.record.id)
    assert record.supervisor_verified is True
    assert record.supervisor_comment == "Verified via request: Confirmed"


def test_demande_en_attente_n_empeche_pas_le_report(db_session, seed):
    db_session.add(VerificationRequest(
        attendance_record_id=seed.record.id,
        requester_id=seed.class_rep.id,
        status="pending",
        submitted_at=datetime(2026, 3, 2, 11, 0),
        evidence_urls=[],
    ))
    db_session.commit()

    check(db_session, seed, "ongoing")

    assert db_session.get(AttendanceRecord, seed.record.id).supervisor_verified is True


def test_echec_du_report_n_echoue_pas_le_log(db_session, seed):
    error = OperationalError("UPDATE attendance_records", {}, Exception("database is locked"))
    with patch(
        "lecturetrack.services.supervisor_service._project_on_attendance",
        side_effect=error,
    ):
        result = check(db_session, seed, "ongoing")

    assert result.presence_confirmed is True
    assert db_session.query(SupervisorLog).count() == 1


def test_creneau_introuvable(db_session, seed):
    with pytest.raises(NotFoundError, match="introuvable"):
        record_supervisor_check(db_session, uuid.uuid4(), seed.supervisor.id, "ongoing")
