#!/usr/bin/env python3
"""
Custom exceptions and error handlers for the web application.

Every user-visible failure carries a machine-readable category plus a
human-readable detail string:

    {"success": false, "error": <category>, "details": <message>, "type": <class>}
"""

import logging
from typing import Union
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import LobbyMatchError

logger = logging.getLogger(__name__)

CATEGORY_STATUS = {
    "invalid_request": 400,
    "unauthorized": 401,
    "firm_not_found": 404,
    "session_not_found": 404,
    "invalid_decision": 409,
    "quota_exceeded": 429,
    "rate_limited": 429,
    "no_data": 500,
    "upstream_error": 500,
    "internal_error": 500,
}


class ServiceException(Exception):
    """Base exception for service layer errors."""
    category = "internal_error"


class InvalidRequestException(ServiceException):
    """Raised when a request is well-formed but cannot be served as asked."""
    category = "invalid_request"


class UnauthorizedException(ServiceException):
    """Raised when a protected endpoint is called without a valid key."""
    category = "unauthorized"


class FirmNotFoundException(ServiceException):
    """Raised when a firm is not found."""
    category = "firm_not_found"


class SessionNotFoundException(ServiceException):
    """Raised when a generation session is not found."""
    category = "session_not_found"


class InvalidDecisionException(ServiceException):
    """Raised when a decision is posted to a session that is not waiting for one."""
    category = "invalid_decision"


def error_body(category: str, details: str, type_name: str) -> dict:
    return {
        "success": False,
        "error": category,
        "details": details,
        "type": type_name,
    }


async def service_exception_handler(
    request: Request,
    exc: Union[ServiceException, LobbyMatchError]
) -> JSONResponse:
    """
    Handle service layer and domain exceptions.

    Args:
        request: The FastAPI request.
        exc: The service or domain exception.

    Returns:
        JSONResponse with error details.
    """
    status_code = CATEGORY_STATUS.get(exc.category, 500)
    if status_code >= 500:
        logger.error(f"Service error in {request.url.path}: {exc}")
    else:
        logger.info(f"Request to {request.url.path} rejected ({exc.category}): {exc}")

    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.category, str(exc), exc.__class__.__name__)
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Report request validation failures as 400 instead of FastAPI's 422.
    """
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))

    return JSONResponse(
        status_code=400,
        content=error_body("invalid_request", "; ".join(problems) or "Invalid request", "ValidationError")
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions (404 routes, 405 methods, ...) with consistent format.

    Args:
        request: The FastAPI request.
        exc: The HTTP exception.

    Returns:
        JSONResponse with error details.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("http_error", str(exc.detail), "HTTPException"),
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Args:
        request: The FastAPI request.
        exc: The exception.

    Returns:
        JSONResponse with error details.
    """
    logger.exception(f"Unexpected error in {request.url.path}")

    return JSONResponse(
        status_code=500,
        content=error_body("internal_error", "Internal server error", "InternalError")
    )
