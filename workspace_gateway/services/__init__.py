"""
Service wrappers behind the REST endpoints.

Available services:
- email_service: SMTP mail sending
- gmail_service: Gmail search via OAuth2
- calendar_service: Google Calendar listing and Meet event creation via OAuth2
"""

from .email_service import EmailService, get_email_service
from .gmail_service import GmailService
from .calendar_service import CalendarService

__all__ = [
    "EmailService",
    "GmailService",
    "CalendarService",
    "get_email_service",
]
