"""
Schémas Pydantic pour les passages superviseur (sur site / en ligne).
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class SupervisorCheckIn(BaseModel):
    course_schedule_id: uuid.UUID
    supervisor_id: uuid.UUID
    status: str  # ongoing, online, not_started, lecturer_absent, cancelled, technical_issues…
    comments: Optional[str] = None
    is_online: bool = False

    @field_validator("status")
    @classmethod
    def status_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le statut de la séance ne peut pas être vide.")
        return v.strip().lower()


class SupervisorLogResponse(BaseModel):
    id: uuid.UUID
    supervisor_id: uuid.UUID
    course_schedule_id: uuid.UUID
    check_in_time: datetime
    status: str
    comments: Optional[str]
    is_online: bool
    presence_confirmed: bool

    model_config = {"from_attributes": True}
