# Chargement de tous les modèles : les clés étrangères (attendance_records.lecturer_id → users.id,
# verification_requests.attendance_record_id → attendance_records.id…) ne se résolvent
# que si chaque table est déjà dans Base.metadata, d'où l'ordre ci-dessous.

from lecturetrack.models.user import User  # noqa: F401, référencée par toutes les autres tables
from lecturetrack.models.programme import Programme, ProgrammeCoordinator, Course, CourseSchedule  # noqa: F401
from lecturetrack.models.attendance import AttendanceRecord  # noqa: F401
from lecturetrack.models.verification import VerificationRequest  # noqa: F401
from lecturetrack.models.supervisor_log import SupervisorLog  # noqa: F401
from lecturetrack.models.notification import Notification, SystemSetting  # noqa: F401
