"""
shared/exceptions/exceptions.py
Typed failures raised by routers and core operations.
Each one is an HTTPException, so FastAPI renders it as {"detail": ...}.
"""

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class Unauthorized(AppException):
    """No credential was supplied."""

    def __init__(self, detail: str = "Unauthorized access") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(AppException):
    """Credential present but invalid, expired, or lacking the role."""

    def __init__(self, detail: str = "Forbidden access") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidIdentifier(AppException):
    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {resource.lower()} ID",
        )


class NotFound(AppException):
    def __init__(self, resource: str = "Resource", detail: str | None = None) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} not found",
        )


class Conflict(AppException):
    def __init__(self, detail: str = "Resource already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidStateTransition(Conflict):
    """Operation is not allowed from the entity's current status."""


class ValidationFailure(AppException):
    def __init__(self, detail: str = "Validation failed") -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class PaymentGatewayError(AppException):
    def __init__(self, detail: str = "Payment gateway error") -> None:
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class ServiceUnavailable(AppException):
    def __init__(self, service: str, detail: str | None = None) -> None:
        message = f"{service} is temporarily unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)


class StorageFailure(AppException):
    """The database could not complete the operation."""

    def __init__(self, detail: str = "Storage failure") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
