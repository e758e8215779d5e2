"""
Modèle SQLAlchemy pour les présences des lecturers.

Un enregistrement par (créneau, jour calendaire). Les champs supervisor_*
sont écrits par la réconciliation superviseur et par les décisions de vérification.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid, func

from lecturetrack.database import Base


class AttendanceRecord(Base):
    """Présence déclarée par un lecturer pour une séance."""
    __tablename__ = "attendance_records"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    lecturer_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    course_schedule_id = Column(Uuid, ForeignKey("course_schedules.id"), nullable=False)

    timestamp = Column(DateTime, nullable=False)
    method = Column(String(20), nullable=False)          # onsite, virtual
    location_verified = Column(Boolean, nullable=False, default=False)

    supervisor_verified = Column(Boolean, nullable=True)  # NULL = en attente
    supervisor_comment = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
