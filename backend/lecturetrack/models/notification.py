"""
Modèles SQLAlchemy pour les notifications in-app et le stockage clé-valeur des réglages.

Une notification `scheduled` est un envoi différé : `data` contient l'événement
complet, rejoué par le scheduler à partir de `scheduled_for`.
"""

import uuid
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid, func,
)

from lecturetrack.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category = Column(String(20), nullable=False)
    priority = Column(String(10), nullable=False, default="normal")
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    data = Column(JSON, nullable=True)

    status = Column(String(20), nullable=False, default="sent")  # sent, scheduled, dispatched, failed
    scheduled_for = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())


class SystemSetting(Base):
    """Réglage clé-valeur (JSON sérialisé) regroupé par catégorie."""
    __tablename__ = "system_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category = Column(String(100), nullable=False)
    key = Column(String(255), nullable=False)
    value = Column(Text, nullable=False)
    description = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("category", "key", name="uq_system_settings_category_key"),)
