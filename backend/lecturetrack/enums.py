"""
Énumérations fermées du domaine.

Les valeurs correspondent aux chaînes stockées en base ; une valeur inconnue
est rejetée dès la construction (pydantic) au lieu d'être ignorée silencieusement.
"""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    COORDINATOR = "COORDINATOR"
    LECTURER = "LECTURER"
    CLASS_REP = "CLASS_REP"
    SUPERVISOR = "SUPERVISOR"
    ONLINE_SUPERVISOR = "ONLINE_SUPERVISOR"


# Rôles autorisés à statuer sur une demande de vérification
REVIEWER_ROLES = {UserRole.LECTURER, UserRole.ADMIN, UserRole.COORDINATOR}


class AttendanceMethod(str, Enum):
    ONSITE = "onsite"
    VIRTUAL = "virtual"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISPUTED = "disputed"


class VerificationDecision(str, Enum):
    """Issues possibles d'une revue : tout sauf pending."""
    APPROVED = "approved"
    REJECTED = "rejected"
    DISPUTED = "disputed"


class SessionQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class NotificationCategory(str, Enum):
    ATTENDANCE = "attendance"
    VERIFICATION = "verification"
    SYSTEM = "system"
    REMINDER = "reminder"
    ESCALATION = "escalation"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.LOW: 1,
    NotificationPriority.NORMAL: 2,
    NotificationPriority.HIGH: 3,
    NotificationPriority.URGENT: 4,
}


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    IN_APP = "in_app"
    PUSH = "push"


class NotificationTemplate(str, Enum):
    ATTENDANCE_REMINDER = "attendance-reminder"
    VERIFICATION_REQUEST = "verification-request"
    VERIFICATION_STATUS_UPDATE = "verification-status-update"
    ESCALATION_ALERT = "escalation-alert"


class NotificationStatus(str, Enum):
    SENT = "sent"
    SCHEDULED = "scheduled"
    DISPATCHED = "dispatched"
    FAILED = "failed"


# Statuts de log superviseur qui confirment la présence du lecturer
PRESENCE_CONFIRMED_STATUSES = {"ongoing", "online"}
