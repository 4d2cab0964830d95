"""
Google Calendar service.
Lists events and creates events with a Google Meet conference attached.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from workspace_gateway.utils.exceptions import AuthenticationError, GoogleApiError, ValidationError
from workspace_gateway.utils.google_auth import create_credentials
from workspace_gateway.utils.validators import (
    coerce_bool,
    coerce_int,
    parse_datetime,
    validate_email_list,
    validate_timezone,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_RESULTS = 10
MAX_LIST_RESULTS = 250
SEND_UPDATES_OPTIONS = ("none", "externalOnly", "all")
ORDER_BY_OPTIONS = ("startTime", "updated")


def to_rfc3339(value: Any) -> str:
    """
    Convert an ISO 8601 date/datetime to an RFC 3339 UTC timestamp.

    Output has millisecond precision and a Z suffix.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    dt = parse_datetime(value)
    if dt is None:
        raise ValidationError(f"Invalid date: {value}", value=value)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def extract_meet_link(event: Dict[str, Any]) -> Optional[str]:
    """Return the Meet URL of an event, if any."""
    if event.get("hangoutLink"):
        return event["hangoutLink"]
    entry_points = (event.get("conferenceData") or {}).get("entryPoints") or []
    for entry in entry_points:
        if entry.get("entryPointType") == "video" and entry.get("uri"):
            return entry["uri"]
    return None


def format_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Reshape a Calendar API event for the API response."""
    organizer = event.get("organizer")
    return {
        "id": event.get("id"),
        "summary": event.get("summary") or "No title",
        "description": event.get("description") or "",
        "start": event.get("start"),
        "end": event.get("end"),
        "location": event.get("location") or "",
        "attendees": [
            {
                "email": attendee.get("email"),
                "displayName": attendee.get("displayName") or "",
                "responseStatus": attendee.get("responseStatus") or "needsAction",
            }
            for attendee in event.get("attendees") or []
        ],
        "organizer": {
            "email": organizer.get("email"),
            "displayName": organizer.get("displayName") or "",
        } if organizer else None,
        "status": event.get("status"),
        "htmlLink": event.get("htmlLink"),
        "meetLink": extract_meet_link(event),
        "created": event.get("created"),
        "updated": event.get("updated"),
    }


class CalendarService:
    """Calendar operations for the configured account."""

    def __init__(self, credentials: Optional[Credentials] = None):
        self._credentials = credentials
        self._calendar_service = None

    def _get_calendar_service(self):
        """Get or create Google Calendar API service."""
        if self._calendar_service is None:
            credentials = self._credentials or create_credentials()
            self._calendar_service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        return self._calendar_service

    def _execute(self, request, operation: str, request_id: str) -> Dict[str, Any]:
        try:
            return request.execute()
        except HttpError as e:
            logger.error(
                f"CalendarService: {operation} failed: {e}",
                extra={"extra_data": {"request_id": request_id}}
            )
            raise GoogleApiError(
                f"Calendar API error: {e}",
                service_name="calendar",
                upstream_status=getattr(e.resp, "status", None)
            ) from e
        except RefreshError as e:
            raise AuthenticationError(f"Google token refresh failed: {e}") from e

    def list_events(
        self,
        params: Optional[Dict[str, Any]] = None,
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        List calendar events.

        Args:
            params: timeMin, timeMax, maxResults, singleEvents, orderBy, q, calendarId
            request_id: Request identifier for logging

        Returns:
            Dict with total, events and the calendar timeZone
        """
        params = params or {}
        logger.info("CalendarService: Listing events", extra={"extra_data": {"request_id": request_id}})

        max_results = coerce_int(params.get("maxResults")) or DEFAULT_LIST_RESULTS
        order_by = params.get("orderBy") or "startTime"
        if order_by not in ORDER_BY_OPTIONS:
            raise ValidationError(
                f"orderBy must be one of: {', '.join(ORDER_BY_OPTIONS)}",
                field="orderBy",
                value=order_by
            )

        list_params = {
            "calendarId": params.get("calendarId") or "primary",
            "maxResults": max(1, min(max_results, MAX_LIST_RESULTS)),
            "singleEvents": coerce_bool(params.get("singleEvents"), default=True),
            "orderBy": order_by,
        }
        if params.get("timeMin"):
            list_params["timeMin"] = to_rfc3339(params["timeMin"])
        if params.get("timeMax"):
            list_params["timeMax"] = to_rfc3339(params["timeMax"])
        if params.get("q"):
            list_params["q"] = params["q"]

        service = self._get_calendar_service()
        response = self._execute(service.events().list(**list_params), "list events", request_id)

        events = [format_event(event) for event in response.get("items", [])]
        return {
            "total": len(events),
            "events": events,
            "timeZone": response.get("timeZone"),
        }

    def create_meet_event(
        self,
        params: Optional[Dict[str, Any]] = None,
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Create an event with a Google Meet conference.

        Args:
            params: title, start, end (required); description, location,
                timeZone, attendees, sendUpdates, reminders
            request_id: Request identifier for logging

        Returns:
            Dict with id, htmlLink, status, meetLink, start, end, attendees
        """
        params = params or {}
        logger.info("CalendarService: Creating event", extra={"extra_data": {"request_id": request_id}})

        if not params.get("title") or not params.get("start") or not params.get("end"):
            raise ValidationError(
                "Missing required fields: title, start, end",
                details={"required": ["title", "start", "end"]}
            )

        time_zone = validate_timezone(params.get("timeZone") or "UTC")
        send_updates = params.get("sendUpdates") or "all"
        if send_updates not in SEND_UPDATES_OPTIONS:
            raise ValidationError(
                f"sendUpdates must be one of: {', '.join(SEND_UPDATES_OPTIONS)}",
                field="sendUpdates",
                value=send_updates
            )

        attendees: List[str] = validate_email_list(params.get("attendees"))

        event = {
            "summary": params["title"],
            "description": params.get("description") or "",
            "start": {"dateTime": to_rfc3339(params["start"]), "timeZone": time_zone},
            "end": {"dateTime": to_rfc3339(params["end"]), "timeZone": time_zone},
            "attendees": [{"email": email} for email in attendees],
            "reminders": params.get("reminders") or {"useDefault": True},
            "conferenceData": {
                "createRequest": {
                    "requestId": uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }
        if params.get("location"):
            event["location"] = params["location"]

        service = self._get_calendar_service()
        created = self._execute(
            service.events().insert(
                calendarId="primary",
                body=event,
                conferenceDataVersion=1,
                sendUpdates=send_updates
            ),
            "create event",
            request_id
        ) or {}

        logger.info(
            f"CalendarService: Created event {created.get('id')}",
            extra={"extra_data": {"request_id": request_id}}
        )
        return {
            "id": created.get("id"),
            "htmlLink": created.get("htmlLink"),
            "status": created.get("status"),
            "meetLink": extract_meet_link(created),
            "start": created.get("start"),
            "end": created.get("end"),
            "attendees": created.get("attendees") or [],
        }


def list_events(params: Optional[Dict[str, Any]] = None, request_id: str = "unknown") -> Dict[str, Any]:
    """List events with credentials from configuration."""
    return CalendarService().list_events(params, request_id)


def create_meet_event(params: Optional[Dict[str, Any]] = None, request_id: str = "unknown") -> Dict[str, Any]:
    """Create a Meet event with credentials from configuration."""
    return CalendarService().create_meet_event(params, request_id)
