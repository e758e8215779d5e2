"""
Schémas Pydantic pour les demandes de vérification de présence.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from lecturetrack.enums import SessionQuality, VerificationDecision, VerificationStatus


class StudentAttendanceData(BaseModel):
    """Relevé du délégué : effectif présent, absents, qualité de la séance."""
    total_students_present: int = Field(ge=0)
    students_absent: List[str] = Field(default_factory=list)
    session_quality: SessionQuality
    technical_issues: List[str] = Field(default_factory=list)
    additional_notes: Optional[str] = None


class VerificationRequestCreate(BaseModel):
    attendance_record_id: uuid.UUID
    submitter_id: uuid.UUID
    evidence_urls: List[str] = Field(default_factory=list)
    verification_notes: Optional[str] = None
    student_attendance_data: Optional[StudentAttendanceData] = None

    @field_validator("evidence_urls")
    @classmethod
    def urls_not_blank(cls, v: List[str]) -> List[str]:
        if any(not url.strip() for url in v):
            raise ValueError("Les URLs de preuve ne peuvent pas être vides.")
        return [url.strip() for url in v]


class VerificationDecisionIn(BaseModel):
    reviewer_id: uuid.UUID
    decision: VerificationDecision
    review_notes: Optional[str] = None
    escalate: bool = False


class VerificationRequestResponse(BaseModel):
    id: uuid.UUID
    attendance_record_id: uuid.UUID
    requester_id: uuid.UUID
    status: VerificationStatus
    submitted_at: datetime
    reviewed_at: Optional[datetime]
    reviewed_by: Optional[uuid.UUID]
    escalated_at: Optional[datetime]
    verification_notes: Optional[str]
    review_notes: Optional[str]
    evidence_urls: List[str]
    student_attendance_data: Optional[StudentAttendanceData]

    model_config = {"from_attributes": True}
