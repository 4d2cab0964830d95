"""
JSON error responses and exception handlers for the API.
"""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from workspace_gateway.utils.exceptions import GatewayError, ValidationError

logger = logging.getLogger(__name__)


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(error: GatewayError, title: str) -> JSONResponse:
    """
    Build the response for a failed service call.

    Args:
        error: Error raised by the service
        title: Short description of the failed operation

    Returns:
        JSONResponse with the error's status code
    """
    return JSONResponse(
        status_code=error.status_code,
        content={"error": title, "message": error.message}
    )


def available_endpoints(app: FastAPI) -> List[str]:
    """List "METHOD /path" for every documented endpoint, including router ones."""
    endpoints = []
    for path, operations in app.openapi().get("paths", {}).items():
        for method in sorted(operations):
            endpoints.append(f"{method.upper()} {path}")
    return endpoints


def register_exception_handlers(app: FastAPI) -> None:
    """Convert gateway, HTTP and unexpected errors into JSON bodies."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        content: Dict[str, Any] = {"error": exc.message}
        content.update(exc.details)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        logger.error(
            f"Request failed: {exc.message}",
            extra={"extra_data": {"request_id": get_request_id(request), "error_code": exc.error_code}}
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, **exc.details}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": [err.get("msg") for err in exc.errors()]}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Endpoint not found",
                    "availableEndpoints": available_endpoints(request.app)
                }
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error: {exc}",
            exc_info=exc,
            extra={"extra_data": {"request_id": get_request_id(request)}}
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Something went wrong!", "message": str(exc)}
        )
