"""
Modèles SQLAlchemy pour les programmes, cours et créneaux horaires.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid, func

from lecturetrack.database import Base


class Programme(Base):
    __tablename__ = "programmes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    level = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class ProgrammeCoordinator(Base):
    """Association programme ↔ coordinateurs (destinataires des escalades)."""
    __tablename__ = "programme_coordinators"

    programme_id = Column(Uuid, ForeignKey("programmes.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    assigned_at = Column(DateTime, server_default=func.now())


class Course(Base):
    __tablename__ = "courses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    course_code = Column(String(30), nullable=False)
    title = Column(String(255), nullable=False)
    programme_id = Column(Uuid, ForeignKey("programmes.id"), nullable=False)


class CourseSchedule(Base):
    """Créneau hebdomadaire d'un cours (jour + heure de début/fin HH:MM)."""
    __tablename__ = "course_schedules"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    lecturer_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    class_group = Column(String(100), nullable=True)
    day_of_week = Column(Integer, nullable=False)   # 0 = dimanche … 6 = samedi
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    location = Column(String(255), nullable=True)   # NULL = virtuel / à définir
    session_type = Column(String(20), default="LECTURE")  # LECTURE, SEMINAR, LAB, VIRTUAL, HYBRID
