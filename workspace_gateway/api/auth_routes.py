"""
OAuth 2.0 routes.
Hands out the Google consent URL and exchanges authorization codes for tokens.
"""

import logging
import time
from typing import Dict, Any, Optional

from fastapi import APIRouter, Body, Request
from fastapi.concurrency import run_in_threadpool

from workspace_gateway.api.errors import error_response, get_request_id
from workspace_gateway.utils.audit import get_audit_logger
from workspace_gateway.utils.exceptions import GatewayError, ValidationError
from workspace_gateway.utils.google_auth import OAuthAuth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


async def _exchange(code: Optional[str], request: Request):
    if not code:
        raise ValidationError("Authorization code is missing", field="code")

    request_id = get_request_id(request)
    started = time.perf_counter()
    try:
        oauth = OAuthAuth.from_config()
        tokens = await run_in_threadpool(oauth.exchange_code_for_tokens, code)
    except ValidationError:
        raise
    except GatewayError as e:
        get_audit_logger().log_operation(
            "exchange_code", "oauth", {"code": code}, error=e.message, request_id=request_id
        )
        return error_response(e, "Failed to exchange authorization code")

    get_audit_logger().log_operation(
        "exchange_code",
        "oauth",
        {"code": code},
        result={"has_refresh_token": bool(tokens.get("refresh_token")), "scope": tokens.get("scope")},
        duration_ms=(time.perf_counter() - started) * 1000,
        request_id=request_id
    )
    logger.info(
        "OAuth code exchanged",
        extra={"extra_data": {"request_id": request_id, "has_refresh_token": bool(tokens.get("refresh_token"))}}
    )
    return {"success": True, "tokens": tokens}


@router.get("/url")
async def get_auth_url(scopes: Optional[str] = None):
    """
    Get the Google consent URL.

    Query params:
    - scopes: Optional comma-separated scope list (defaults to Gmail readonly + Calendar events)
    """
    scope_list = [scope.strip() for scope in (scopes or "").split(",") if scope.strip()]

    try:
        url = OAuthAuth.from_config().get_authorization_url(scope_list or None)
    except GatewayError as e:
        return error_response(e, "Failed to build authorization URL")

    return {"url": url}


@router.get("/callback")
async def callback(request: Request, code: Optional[str] = None, error: Optional[str] = None):
    """
    OAuth 2.0 redirect target.
    Exchanges the authorization code for tokens.
    """
    if error:
        raise ValidationError(f"OAuth error: {error}", field="error", value=error)
    return await _exchange(code, request)


@router.post("/token")
async def exchange_token(request: Request, payload: Dict[str, Any] = Body(default={})):
    """
    Exchange an authorization code pasted by the user.

    Request body:
    - code: Authorization code (required)
    """
    return await _exchange(payload.get("code"), request)
