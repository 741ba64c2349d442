"""
Inkwell REST API base library
"""

import time
import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import schemas


logger = logging.getLogger(__name__)

startup = time.time()
runtime_key = secrets.token_hex(32)


class APIWithoutValidationError(FastAPI):
    """
    FastAPI class that excludes 422 validation error responses in OpenAPI schema
    """

    def openapi(self) -> Dict[str, Any]:
        if not self.openapi_schema:
            self.openapi_schema = get_openapi(
                title=self.title,
                version=self.version,
                openapi_version=self.openapi_version,
                description=self.description,
                terms_of_service=self.terms_of_service,
                contact=self.contact,
                license_info=self.license_info,
                routes=self.routes,
                tags=self.openapi_tags,
                servers=self.servers,
            )
            for path, operations in self.openapi_schema.get("paths", {}).items():
                for method, metadata in operations.items():
                    metadata.get("responses", {}).pop("422", None)
        return self.openapi_schema


def _error_response(
        request: Request,
        status_code: int,
        message: str,
        details: str,
        repeat: bool = False,
        headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=repeat,
        message=message,
        details=details
    )), status_code=status_code, headers=headers)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    return _error_response(
        request,
        500,
        "Unexpected server error. The requested action wasn't completed successfully.",
        ""
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    msgs = "\n".join(
        "\t" + ".".join(map(str, error.get("loc", ()))) + ": " + error["msg"]
        for error in exc.errors()
    )
    message = f"Failed to process the request:\n{msgs}"
    logger.debug(f"Rejected invalid request '{request.method} {request.url.path}': {exc.errors()!r}")
    return _error_response(request, 400, message, str(jsonable_encoder(exc.errors())), repeat=False)


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception
    """

    def __init__(
            self,
            status_code: int,
            detail: Optional[str],
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or exc.__class__.__name__

        if not isinstance(exc, StarletteHTTPException):
            logger.error("Invalid exception class for base handler")

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        if status_code == 304:
            return Response(status_code=status_code, headers=getattr(exc, "headers", None))
        return _error_response(
            request,
            status_code,
            message,
            str(exc.detail or ""),
            repeat=repeat,
            headers=getattr(exc, "headers", None)
        )


class NotModified(APIException):
    """
    Exception when the user agent already has the most recent version of a resource
    """

    def __init__(self, detail: Optional[str] = None, etag: Optional[str] = None):
        super().__init__(
            status_code=304,
            detail=detail,
            repeat=False,
            message="Not modified",
            headers={"ETag": etag} if etag else None
        )


class BadRequest(APIException):
    """
    Exception when the user probably messed something up

    The `message` field must be user-friendly and not too informative!
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=400,
            detail=detail,
            repeat=True,
            message=message
        )


class Unauthorized(APIException):
    """
    Exception when a request lacks a valid bearer token for a protected operation
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=401,
            detail=detail,
            repeat=False,
            message=message,
            headers={"WWW-Authenticate": "Bearer"}
        )


class NotFound(APIException):
    """
    Exception when a requested resource was not found in the system
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=detail,
            repeat=False,
            message=f"{str(resource)!r} was not found."
        )


class Conflict(APIException):
    """
    Exception for invalid states, concurrent manipulations or other data clashes
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False):
        super().__init__(
            status_code=409,
            detail=detail,
            repeat=repeat,
            message=message
        )


class PreconditionFailed(APIException):
    """
    Exception for conditional requests whose ``If-Match`` header doesn't match the resource
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=412,
            detail=detail,
            repeat=False,
            message=f"Precondition failed for {str(resource)!r}. Fetch the current state and try again."
        )
