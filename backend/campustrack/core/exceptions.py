class ErrorCode:
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_DAY = "INVALID_DAY"
    NOT_IN_TIMETABLE = "NOT_IN_TIMETABLE"
    INVALID_STUDENTS = "INVALID_STUDENTS"
    INVALID_SEMESTER = "INVALID_SEMESTER"
    NO_CHANGE = "NO_CHANGE"
    DELETED = "DELETED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    TIMETABLE_FAILED = "TIMETABLE_FAILED"
    ATTENDANCE_FAILED = "ATTENDANCE_FAILED"
    MDC_FAILED = "MDC_FAILED"
    PROGRESSION_FAILED = "PROGRESSION_FAILED"
    SEMESTER_UPDATE_FAILED = "SEMESTER_UPDATE_FAILED"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, code: str | None = None, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class UnauthorizedError(AppError):
    """Raised when there is no session, the role is wrong, or a subject is not assigned."""
    def __init__(self, message: str = "Unauthorized", *, status_code: int = 403):
        super().__init__(message, status_code=status_code, code=ErrorCode.UNAUTHORIZED)


class ForbiddenError(AppError):
    """Raised when an authenticated caller is not entitled to a specific resource."""
    def __init__(self, message: str):
        super().__init__(message, status_code=403, code=ErrorCode.FORBIDDEN)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, message: str):
        super().__init__(message, status_code=404, code=ErrorCode.NOT_FOUND)


class ConflictError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=409, code=ErrorCode.CONFLICT)


class DomainRuleError(AppError):
    """Raised when input is well formed but breaks an attendance or progression rule."""
    def __init__(self, message: str, code: str):
        super().__init__(message, status_code=422, code=code)


class ValidationFailedError(AppError):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, code=ErrorCode.VALIDATION_ERROR, details=details)


class OperationFailedError(AppError):
    """Raised after a storage failure; the message is always safe to show."""
    def __init__(self, message: str, code: str):
        super().__init__(message, status_code=500, code=code)
