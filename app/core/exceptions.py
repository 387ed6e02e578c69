from typing import Dict, Optional

from fastapi import status


class AppError(Exception):
    """Business error that maps to a client-facing status code and message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal Server Error"
    headers: Optional[Dict[str, str]] = None

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class DuplicateEmail(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "User already exists with this email"


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid email or password"


class NotVerified(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Please verify your email before logging in"


class InvalidToken(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid token"


class TokenExpired(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Token has expired"


class AlreadyVerified(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "User already verified"


class UserNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "User not found"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Could not validate credentials"
    headers = {"WWW-Authenticate": "Bearer"}


class Unverified(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Please verify your email before accessing this resource"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Access forbidden. Insufficient permissions"


class InvalidServiceType(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid service type or pricing not available"


class InvalidStatus(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid status"


class OrderCancelled(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Cannot pay for cancelled order"


class UserHasOrders(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Cannot delete user with existing orders"


class CannotDeleteSelf(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Cannot delete your own account"


class InvalidWebhook(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid webhook payload or signature"


class OperationFailed(AppError):
    """Store or processor failure; the detail never carries the underlying error."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Operation failed"
