"""
Modèle SQLAlchemy pour les demandes de vérification de présence.

Invariant : au plus une demande `pending` par AttendanceRecord, garanti par
l'index unique partiel uq_verification_open_per_record.
"""

import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text, Uuid, text

from lecturetrack.database import Base


class VerificationRequest(Base):
    __tablename__ = "verification_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    attendance_record_id = Column(
        Uuid, ForeignKey("attendance_records.id", ondelete="RESTRICT"), nullable=False
    )
    requester_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected, disputed
    submitted_at = Column(DateTime, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    escalated_at = Column(DateTime, nullable=True)

    verification_notes = Column(Text, nullable=True)
    review_notes = Column(Text, nullable=True)
    evidence_urls = Column(JSON, nullable=False, default=list)
    student_attendance_data = Column(JSON, nullable=True)

    __table_args__ = (
        Index(
            "uq_verification_open_per_record",
            "attendance_record_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )
