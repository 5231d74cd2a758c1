"""
Error taxonomy and HTTP exception handlers.

Every error a client can see is a ``CatalogException`` carrying a
message and a status code.  Handlers render them as ``{"result":
message}``, the body shape clients of this API already parse.  Store
and signing failures map to 500 with a generic message; their details
go to the log only.
"""

import logging
from typing import Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Something went wrong, Please try after some time"
INTERNAL_ERROR = "Internal server error"


class ConfigMissing(RuntimeError):
    """Raised at startup when required environment variables are absent."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(
            "Missing required environment variables: " + ", ".join(self.names)
        )


class CatalogException(Exception):
    """Base class for errors that are rendered to the client."""

    status_code = 500
    default_message = INTERNAL_ERROR

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"result": self.message}


class ValidationError(CatalogException):
    status_code = 400
    default_message = "Email and password are required"


class NotFound(CatalogException):
    status_code = 404
    default_message = "User not found"


class InvalidProduct(CatalogException):
    """A product body that cannot be stored as JSON (NaN or Infinity)."""

    status_code = 400
    default_message = "Product fields must be valid JSON values"


class InvalidToken(CatalogException):
    status_code = 401
    default_message = "Please provide valid token!"


class MissingToken(CatalogException):
    status_code = 403
    default_message = "Token not found, please add token with header!"


class PersistenceError(CatalogException):
    """A store read or write failed."""

    default_message = GENERIC_FAILURE


class SigningError(CatalogException):
    """A token could not be signed, normally because no key is configured."""

    default_message = GENERIC_FAILURE


async def catalog_exception_handler(request: Request, exc: CatalogException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"result": INTERNAL_ERROR})
