import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Базовая ошибка приложения с фиксированным HTTP статусом"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Please authenticate"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have access to this document"


class NotFound(AppError):
    """Ресурс отсутствует или скрыт от пользователя.

    reason различает "missing" и "forbidden" для логов,
    клиент в обоих случаях получает 404.
    """

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Document not found"

    def __init__(self, message: Optional[str] = None, reason: str = "missing"):
        super().__init__(message)
        self.reason = reason


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidOperation(ValidationError):
    default_message = "Invalid operation"


class UnsupportedKind(ValidationError):
    default_message = "Unsupported file type"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class DeliveryFailure(AppError):
    default_message = "Failed to send email. Please check your email configuration."


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, NotFound) and exc.reason != "missing":
        logger.debug(f"{request.method} {request.url.path}: not found ({exc.reason})")
    elif isinstance(exc, DeliveryFailure):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")

    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message, "errors": [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors
        ]},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Единая точка преобразования ошибок в HTTP ответы"""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
