from campustrack.models.academic import (  # noqa: F401
    GRADUATING_SEMESTER_NUMBER,
    AcademicYear,
    Department,
    Semester,
    Subject,
    SubjectColorMap,
    SubjectType,
)
from campustrack.models.activity_log import ActivityLog  # noqa: F401
from campustrack.models.attendance import AttendanceRecord, AttendanceStatus  # noqa: F401
from campustrack.models.mdc import MDCAttendanceRecord, MDCCourse  # noqa: F401
from campustrack.models.notification import Notification, NotificationType  # noqa: F401
from campustrack.models.profiles import (  # noqa: F401
    FacultyProfile,
    FacultySubject,
    StudentProfile,
    StudentSemesterHistory,
)
from campustrack.models.timetable import DAYS_PER_WEEK, PERIODS_PER_DAY, TimetableEntry  # noqa: F401
from campustrack.models.user import User, UserRole  # noqa: F401
