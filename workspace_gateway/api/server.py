"""
FastAPI server for the workspace gateway.
Exposes SMTP mail, Gmail search, Google Calendar and OAuth2 endpoints.
"""

import time
from typing import Dict, Any
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Body, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from workspace_gateway import __version__
from workspace_gateway.api.auth_routes import router as auth_router
from workspace_gateway.api.calendar_routes import router as calendar_router
from workspace_gateway.api.errors import error_response, get_request_id, register_exception_handlers
from workspace_gateway.api.gmail_routes import router as gmail_router
from workspace_gateway.services.email_service import get_email_service
from workspace_gateway.utils.audit import get_audit_logger
from workspace_gateway.utils.config_loader import get_config
from workspace_gateway.utils.exceptions import GatewayError, ValidationError
from workspace_gateway.utils.logging_config import request_id_var, setup_logging, get_logger
from workspace_gateway.utils.validators import require_fields, validate_email, validate_header_value

config = get_config()
setup_logging(config.log_level, config.log_dir, config.log_to_file)
logger = get_logger(__name__)

app = FastAPI(
    title="Workspace Gateway",
    description="REST gateway for SMTP mail, Gmail search, Google Calendar and OAuth2",
    version=__version__
)

cors_origins = config.api_cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(gmail_router)
app.include_router(calendar_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with an id and log method, path, status and latency."""
    request_id = uuid4().hex[:9]
    request.state.request_id = request_id
    token = request_id_var.set(request_id)
    started = time.perf_counter()

    logger.info(
        f"{request.method} {request.url.path}",
        extra={"extra_data": {"client": request.client.host if request.client else None}}
    )

    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    duration_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"Response: {response.status_code} ({duration_ms:.0f}ms)",
        extra={"extra_data": {"request_id": request_id, "status_code": response.status_code}}
    )
    return response


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "OK", "message": "Email service is running"}


@app.get("/test-smtp")
async def test_smtp(request: Request):
    """Open an authenticated SMTP session without sending anything."""
    request_id = get_request_id(request)
    try:
        await run_in_threadpool(get_email_service().test_connection, request_id)
    except GatewayError as e:
        logger.error(f"SMTP test failed: {e.message}", extra={"extra_data": {"request_id": request_id}})
        return error_response(e, "SMTP connection test failed")

    return {"success": True, "message": "SMTP connection test successful"}


@app.post("/send-email")
async def send_email(request: Request, payload: Dict[str, Any] = Body(default={})):
    """
    Send a templated email.

    Request body:
    - to: Recipient address (required)
    - subject: Subject line (required)
    - body: Plain-text body, newlines preserved (required)
    """
    request_id = get_request_id(request)
    require_fields(payload, ["to", "subject", "body"])
    to = validate_email(payload["to"])
    subject = validate_header_value(payload["subject"], "subject")
    body = str(payload["body"])

    started = time.perf_counter()
    try:
        result = await run_in_threadpool(get_email_service().send_email, to, subject, body, request_id)
    except ValidationError:
        raise
    except GatewayError as e:
        logger.error(f"Error sending email: {e.message}", extra={"extra_data": {"request_id": request_id}})
        get_audit_logger().log_operation(
            "send_email", "smtp", {"to": to, "subject": subject}, error=e.message, request_id=request_id
        )
        return error_response(e, "Failed to send email")

    get_audit_logger().log_operation(
        "send_email",
        "smtp",
        {"to": to, "subject": subject},
        result={"messageId": result["messageId"], "rejected": len(result["rejected"])},
        duration_ms=(time.perf_counter() - started) * 1000,
        request_id=request_id
    )
    return {
        "success": True,
        "message": "Email sent successfully",
        "messageId": result["messageId"]
    }


def main() -> None:
    """Run the gateway with uvicorn."""
    logger.info(f"Workspace gateway starting on {config.api_host}:{config.api_port}")
    uvicorn.run(
        "workspace_gateway.api.server:app",
        host=config.api_host,
        port=config.api_port,
        reload=config.debug
    )


if __name__ == "__main__":
    main()
