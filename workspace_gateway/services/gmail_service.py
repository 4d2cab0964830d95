"""
Gmail search service.
Maps a small filter object to a Gmail search query, lists matching
messages and reshapes them into summaries with an optional text body.
"""

import base64
import html
import json
import logging
import re
from typing import Any, Dict, List, Optional

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from workspace_gateway.utils.exceptions import AuthenticationError, GoogleApiError
from workspace_gateway.utils.google_auth import create_credentials
from workspace_gateway.utils.validators import coerce_bool, coerce_int, parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 5
MAX_RESULTS_LIMIT = 25

GMAIL_DATE_REGEX = re.compile(r'^\d{4}/(0?[1-9]|1[0-2])/(0?[1-9]|[12]\d|3[01])$')
BR_TAG_REGEX = re.compile(r'<br\s*/?>\n?', re.IGNORECASE)
HTML_TAG_REGEX = re.compile(r'<[^>]+>')


def _quote(value: Any) -> str:
    """Quote a filter value the way Gmail expects a phrase."""
    return json.dumps(str(value), ensure_ascii=False)


def normalize_to_gmail_date(value: Any) -> Optional[str]:
    """
    Normalize a date to Gmail's YYYY/MM/DD search format.

    YYYY/MM/DD input is returned unchanged; ISO 8601 dates and datetimes
    are converted to their UTC calendar date. Returns None otherwise.
    """
    if isinstance(value, str) and GMAIL_DATE_REGEX.match(value.strip()):
        return value.strip()

    dt = parse_datetime(value)
    if dt is None:
        return None
    return f"{dt.year:04d}/{dt.month:02d}/{dt.day:02d}"


def build_gmail_query(filters: Dict[str, Any]) -> str:
    """
    Build a Gmail search query from filters.

    Every recognized filter adds one term; the search always spans all
    mail, not just the inbox.
    """
    terms = ["in:anywhere"]

    if filters.get("fromEmail"):
        terms.append(f"from:{_quote(filters['fromEmail'])}")
    if filters.get("fromName"):
        # Display names are unreliable in headers, search as free text
        terms.append(_quote(filters["fromName"]))
    if filters.get("subjectContains"):
        terms.append(f"subject:{_quote(filters['subjectContains'])}")
    if filters.get("threadContains"):
        terms.append(_quote(filters["threadContains"]))
    if filters.get("query"):
        terms.append(str(filters["query"]))
    if filters.get("after"):
        date = normalize_to_gmail_date(filters["after"])
        if date:
            terms.append(f"after:{date}")
    if filters.get("before"):
        date = normalize_to_gmail_date(filters["before"])
        if date:
            terms.append(f"before:{date}")

    return " ".join(terms)


def resolve_max_results(value: Any) -> int:
    """Default to 5 results and clamp to 1..25."""
    count = coerce_int(value)
    if not count:
        count = DEFAULT_MAX_RESULTS
    return max(1, min(count, MAX_RESULTS_LIMIT))


def decode_base64_url_safe(data: str) -> str:
    """Decode Gmail's base64url body data as UTF-8."""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def extract_body_from_message(payload: Optional[Dict[str, Any]]) -> str:
    """
    Extract a text body from a Gmail message payload.

    Prefers the first text/plain part; falls back to the first text/html
    part converted to plain text.
    """
    parts: List[Dict[str, str]] = []

    def walk(node: Optional[Dict[str, Any]]) -> None:
        if not node:
            return
        mime_type = node.get("mimeType") or ""
        data = (node.get("body") or {}).get("data")
        if data and mime_type.startswith("text/"):
            parts.append({"mimeType": mime_type, "data": decode_base64_url_safe(data)})
        for child in node.get("parts") or []:
            walk(child)

    walk(payload)

    for part in parts:
        if part["mimeType"] == "text/plain":
            return part["data"]

    for part in parts:
        if part["mimeType"] == "text/html":
            text = BR_TAG_REGEX.sub("\n", part["data"])
            text = HTML_TAG_REGEX.sub("", text)
            return html.unescape(text).strip()

    return ""


def get_header_value(headers: List[Dict[str, str]], name: str) -> str:
    """Get header value by name, case-insensitively."""
    for header in headers:
        if header.get("name", "").lower() == name.lower():
            return header.get("value", "")
    return ""


class GmailService:
    """Read-only Gmail search for the configured account."""

    def __init__(self, credentials: Optional[Credentials] = None):
        self._credentials = credentials
        self._gmail_service = None

    def _get_gmail_service(self):
        """Get or create Gmail API service."""
        if self._gmail_service is None:
            credentials = self._credentials or create_credentials()
            self._gmail_service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
        return self._gmail_service

    def _format_email(self, message: Dict[str, Any], include_body: bool) -> Dict[str, Any]:
        payload = message.get("payload") or {}
        headers = payload.get("headers") or []

        email = {
            "id": message.get("id"),
            "threadId": message.get("threadId"),
            "snippet": message.get("snippet", ""),
            "from": get_header_value(headers, "From"),
            "to": get_header_value(headers, "To"),
            "subject": get_header_value(headers, "Subject"),
            "date": get_header_value(headers, "Date"),
        }
        if include_body:
            email["body"] = extract_body_from_message(payload)
        return email

    def search_emails(
        self,
        filters: Optional[Dict[str, Any]] = None,
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Search the mailbox.

        Args:
            filters: fromEmail, fromName, subjectContains, threadContains,
                query, after, before, includeBody, maxResults
            request_id: Request identifier for logging

        Returns:
            Dict with query, total and emails
        """
        filters = filters or {}
        query = build_gmail_query(filters)
        max_results = resolve_max_results(filters.get("maxResults"))
        include_body = coerce_bool(filters.get("includeBody"))

        logger.info(
            f"GmailService: Query => {query}",
            extra={"extra_data": {"request_id": request_id, "max_results": max_results}}
        )

        try:
            service = self._get_gmail_service()
            results = service.users().messages().list(
                userId="me",
                q=query,
                maxResults=max_results
            ).execute()

            messages = results.get("messages", [])
            emails = []
            for msg in messages:
                full = service.users().messages().get(
                    userId="me",
                    id=msg["id"],
                    format="full"
                ).execute()
                emails.append(self._format_email(full, include_body))

        except HttpError as e:
            logger.error(
                f"GmailService: Gmail API error: {e}",
                extra={"extra_data": {"request_id": request_id}}
            )
            raise GoogleApiError(
                f"Gmail API error: {e}",
                service_name="gmail",
                upstream_status=getattr(e.resp, "status", None)
            ) from e
        except RefreshError as e:
            raise AuthenticationError(f"Google token refresh failed: {e}") from e

        logger.info(
            f"GmailService: Found {len(emails)} messages",
            extra={"extra_data": {"request_id": request_id}}
        )
        return {"query": query, "total": len(emails), "emails": emails}


def search_emails(filters: Optional[Dict[str, Any]] = None, request_id: str = "unknown") -> Dict[str, Any]:
    """Search the mailbox with credentials from configuration."""
    return GmailService().search_emails(filters, request_id)
