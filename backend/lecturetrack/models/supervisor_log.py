"""
Modèle SQLAlchemy pour les passages des superviseurs (sur site ou en ligne).
Un log par (créneau, jour calendaire), mis à jour à chaque nouveau passage.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid

from lecturetrack.database import Base


class SupervisorLog(Base):
    __tablename__ = "supervisor_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    supervisor_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    course_schedule_id = Column(Uuid, ForeignKey("course_schedules.id", ondelete="CASCADE"), nullable=False)
    check_in_time = Column(DateTime, nullable=False)
    status = Column(String(50), nullable=False)  # ongoing, online, not_started, lecturer_absent, cancelled, technical_issues…
    comments = Column(Text, nullable=True)
    is_online = Column(Boolean, nullable=False, default=False)
