"""
Modèle SQLAlchemy pour les utilisateurs.
Version minimale : l'authentification est gérée par la couche web.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, String, Uuid, func

from lecturetrack.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(50), nullable=False)  # ADMIN, COORDINATOR, LECTURER, CLASS_REP, SUPERVISOR, ONLINE_SUPERVISOR
    phone_number = Column(String(30), nullable=True)
    timezone = Column(String(64), default="UTC")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email
