# backend/utils/errors.py
import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings

logger = logging.getLogger(__name__)

# PostgreSQL error codes
PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"
PG_INVALID_TEXT_REPRESENTATION = "22P02"


class ApiError(HTTPException):
    """Operational error raised by services; carries a status code, a message and optional details."""

    def __init__(self, status_code: int, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details

    @classmethod
    def bad_request(cls, message="Requête invalide", details=None):
        return cls(status.HTTP_400_BAD_REQUEST, message, details)

    @classmethod
    def unauthorized(cls, message="Non authentifié", details=None):
        return cls(status.HTTP_401_UNAUTHORIZED, message, details)

    @classmethod
    def forbidden(cls, message="Accès refusé", details=None):
        return cls(status.HTTP_403_FORBIDDEN, message, details)

    @classmethod
    def not_found(cls, message="Ressource non trouvée", details=None):
        return cls(status.HTTP_404_NOT_FOUND, message, details)

    @classmethod
    def conflict(cls, message="Conflit avec une ressource existante", details=None):
        return cls(status.HTTP_409_CONFLICT, message, details)

    @classmethod
    def internal(cls, message="Erreur interne du serveur", details=None):
        return cls(status.HTTP_500_INTERNAL_SERVER_ERROR, message, details)


def _error_body(message: str, details: Any = None, errors: Optional[list] = None) -> dict:
    body = {"success": False, "message": message}
    if details is not None:
        body["details"] = details
    if errors is not None:
        body["errors"] = errors
    return body


def _pg_code(exc) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _is_unique_violation(exc: IntegrityError) -> bool:
    if _pg_code(exc) == PG_UNIQUE_VIOLATION:
        return True
    return "unique constraint" in str(exc.orig).lower()


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    if _pg_code(exc) == PG_FOREIGN_KEY_VIOLATION:
        return True
    return "foreign key constraint" in str(exc.orig).lower()


def format_validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc),
            "message": err.get("msg"),
            "value": err.get("input"),
        })
    return errors


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = getattr(exc, "message", None) or str(exc.detail)
    details = getattr(exc, "details", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = format_validation_errors(exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Erreurs de validation", errors=jsonable(errors)),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    if _is_unique_violation(exc):
        logger.info(f"Unique constraint violation on {request.url.path}")
        return JSONResponse(status_code=status.HTTP_409_CONFLICT,
                            content=_error_body("Cette ressource existe déjà"))
    if _is_foreign_key_violation(exc):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content=_error_body("Référence invalide vers une ressource inexistante"))
    return await unhandled_exception_handler(request, exc)


async def data_error_handler(request: Request, exc: DataError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                        content=_error_body("Format de donnée invalide"))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    error = ApiError.internal()
    if settings.is_production:
        return JSONResponse(status_code=error.status_code, content=_error_body(error.message))
    body = _error_body(str(exc) or error.message)
    body["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=error.status_code, content=body)


def jsonable(errors: list) -> list:
    # Validation inputs may hold non-JSON values (bytes, decimals)
    out = []
    for e in errors:
        value = e.get("value")
        if not isinstance(value, (str, int, float, bool, list, dict, type(None))):
            value = str(value)
        out.append({**e, "value": value})
    return out


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(DataError, data_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
