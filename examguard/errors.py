"""
Error taxonomy for the ExamGuard core

Every failure a caller can act on carries a machine-readable code.
Services raise these, the app factory renders them as JSON.
"""


class ExamGuardError(Exception):
    """Base error with a machine-readable code and an HTTP status"""
    status_code = 400

    def __init__(self, code: str, message: str, status_code: int = None):
        super().__init__(message)
        self.code = code
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class ValidationError(ExamGuardError):
    """Missing or malformed input, rejected before any write"""
    status_code = 400


class ConflictError(ExamGuardError):
    """Duplicate enrollment, session or code"""
    status_code = 400

    def to_dict(self):
        data = super().to_dict()
        data["conflict"] = True
        return data


class NotFoundError(ExamGuardError):
    status_code = 404


class AuthenticationError(ExamGuardError):
    status_code = 401


class PermissionDeniedError(ExamGuardError):
    status_code = 403


class InvariantViolationError(ExamGuardError):
    """Invalid state transition or out-of-bounds score"""
    status_code = 409


class CodeSpaceExhaustedError(ExamGuardError):
    status_code = 503

    def __init__(self, attempts: int):
        super().__init__(
            "CODE_SPACE_EXHAUSTED",
            f"Could not generate a unique code after {attempts} attempts",
        )
        self.attempts = attempts
