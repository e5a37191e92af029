"""HTTP error taxonomy.

Each error carries a generic, caller-safe message. Diagnostics belong in the
server log, never in ``detail``.
"""
from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: str = None, headers: dict = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)


class AuthenticationRequired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"

    def __init__(self, detail: str = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class ConflictDuplicate(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already exists"


class SignatureInvalid(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid signature"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Internal(AppError):
    pass


class ServiceUnavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service not configured"
