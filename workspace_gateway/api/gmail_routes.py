"""
Gmail search routes.
"""

import logging
import time
from typing import Dict, Any

from fastapi import APIRouter, Body, Request
from fastapi.concurrency import run_in_threadpool

from workspace_gateway.api.errors import error_response, get_request_id
from workspace_gateway.services.gmail_service import search_emails
from workspace_gateway.utils.audit import get_audit_logger
from workspace_gateway.utils.exceptions import GatewayError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gmail", tags=["gmail"])


@router.post("/search")
async def search(request: Request, filters: Dict[str, Any] = Body(default={})):
    """
    Search the mailbox.

    Request body (all optional):
    - fromEmail, fromName, subjectContains, threadContains, query
    - after, before: YYYY/MM/DD or ISO 8601 dates
    - includeBody: Include decoded text bodies
    - maxResults: Number of messages (default 5, max 25)
    """
    request_id = get_request_id(request)
    started = time.perf_counter()

    try:
        result = await run_in_threadpool(search_emails, filters, request_id)
    except ValidationError:
        raise
    except GatewayError as e:
        logger.error(f"Error searching emails: {e.message}", extra={"extra_data": {"request_id": request_id}})
        get_audit_logger().log_operation(
            "search_emails", "gmail", filters, error=e.message, request_id=request_id
        )
        return error_response(e, "Failed to search emails")

    get_audit_logger().log_operation(
        "search_emails",
        "gmail",
        filters,
        result={"query": result["query"], "total": result["total"]},
        duration_ms=(time.perf_counter() - started) * 1000,
        request_id=request_id
    )
    return {"success": True, **result}
