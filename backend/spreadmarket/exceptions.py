"""
Modulo de excepciones del dominio y sus handlers HTTP.

Los servicios (services/) no conocen HTTP: cuando algo sale mal lanzan una
de estas excepciones. main.py registra `marketplace_exception_handler`, que
las traduce a la taxonomia de errores de la API:

    UnauthorizedError      -> 401
    ForbiddenError         -> 403
    NotFoundError          -> 404
    ValidationError y afines -> 400
    RateLimitedError       -> 429 (con remainingRequests y resetTime)
    cualquier otra cosa    -> 500 (sin detalles internos, solo en el log)

Todas las respuestas de error comparten el formato:
    {"detail": "...", "code": "...", "details": {...}}
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from spreadmarket.models.schemas import ErrorResponse

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Excepcion base de SpreadMarket."""

    status_code: int = 500
    code: str = "MARKETPLACE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return ErrorResponse(detail=self.message, code=self.code, details=self.details or None).to_content()


class UnauthorizedError(MarketplaceError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(MarketplaceError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(MarketplaceError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(MarketplaceError):
    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidFileTypeError(ValidationError):
    code = "INVALID_FILE_TYPE"

    def __init__(self, file_type: str, allowed: list[str]):
        super().__init__(
            "Invalid file type. Only Excel and CSV files are allowed.",
            details={"fileType": file_type, "allowedTypes": allowed},
        )


class FileTooLargeError(ValidationError):
    code = "FILE_TOO_LARGE"

    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"File size too large. Maximum size is {max_size // (1024 * 1024)}MB.",
            details={"fileSize": size, "maxSize": max_size},
        )


class SelfPurchaseError(ValidationError):
    code = "SELF_PURCHASE"

    def __init__(self):
        super().__init__("Cannot purchase your own listing")


class AlreadyOwnedError(ValidationError):
    code = "ALREADY_OWNED"

    def __init__(self):
        super().__init__("You already own this spreadsheet")


class DuplicateReviewError(ValidationError):
    code = "DUPLICATE_REVIEW"

    def __init__(self):
        super().__init__("You have already reviewed this purchase")


class InvalidSignatureError(ValidationError):
    code = "INVALID_SIGNATURE"


class RateLimitedError(MarketplaceError):
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, remaining_requests: int, reset_time: int):
        super().__init__(
            "Rate limit exceeded",
            details={"remainingRequests": remaining_requests, "resetTime": reset_time},
        )


# ---------- Handlers ----------


async def marketplace_exception_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Convierte una MarketplaceError en su respuesta JSON."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Errores de validacion de Pydantic (body o query mal formados).

    FastAPI responde 422 por defecto; la API de SpreadMarket reporta
    cualquier input invalido como 400.
    """
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            detail="Invalid request", code="VALIDATION_ERROR", details={"errors": errors}
        ).to_content(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Errores inesperados: se loguean completos y al cliente solo le llega un 500 generico."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(detail="Internal server error", code="INTERNAL_ERROR").to_content(),
    )
