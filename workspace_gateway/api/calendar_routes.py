"""
Google Calendar routes.
"""

import logging
import time
from typing import Dict, Any, Optional

from fastapi import APIRouter, Body, Request
from fastapi.concurrency import run_in_threadpool

from workspace_gateway.api.errors import error_response, get_request_id
from workspace_gateway.services.calendar_service import create_meet_event, list_events
from workspace_gateway.utils.audit import get_audit_logger
from workspace_gateway.utils.exceptions import GatewayError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/events")
async def get_events(
    request: Request,
    timeMin: Optional[str] = None,
    timeMax: Optional[str] = None,
    maxResults: Optional[int] = None,
    singleEvents: Optional[bool] = None,
    orderBy: Optional[str] = None,
    q: Optional[str] = None,
    calendarId: Optional[str] = None
):
    """List events, by default the next 10 from the primary calendar."""
    request_id = get_request_id(request)
    params = {
        "timeMin": timeMin,
        "timeMax": timeMax,
        "maxResults": maxResults,
        "singleEvents": singleEvents,
        "orderBy": orderBy,
        "q": q,
        "calendarId": calendarId,
    }
    params = {key: value for key, value in params.items() if value is not None}

    try:
        result = await run_in_threadpool(list_events, params, request_id)
    except ValidationError:
        raise
    except GatewayError as e:
        logger.error(f"Error listing events: {e.message}", extra={"extra_data": {"request_id": request_id}})
        return error_response(e, "Failed to list events")

    return {"success": True, **result}


@router.post("/events")
async def create_event(request: Request, payload: Dict[str, Any] = Body(default={})):
    """
    Create an event with a Google Meet link.

    Request body:
    - title, start, end: Required
    - description, location: Optional text
    - timeZone: IANA timezone (default UTC)
    - attendees: List of email addresses
    - sendUpdates: none | externalOnly | all (default all)
    - reminders: {useDefault, overrides: [{method, minutes}]}
    """
    request_id = get_request_id(request)
    started = time.perf_counter()

    try:
        event = await run_in_threadpool(create_meet_event, payload, request_id)
    except ValidationError:
        raise
    except GatewayError as e:
        logger.error(f"Error creating event: {e.message}", extra={"extra_data": {"request_id": request_id}})
        get_audit_logger().log_operation(
            "create_event", "calendar", payload, error=e.message, request_id=request_id
        )
        return error_response(e, "Failed to create event")

    get_audit_logger().log_operation(
        "create_event",
        "calendar",
        payload,
        result={"id": event.get("id"), "status": event.get("status")},
        duration_ms=(time.perf_counter() - started) * 1000,
        request_id=request_id
    )
    return {"success": True, "event": event}
