"""
Workspace Gateway: REST endpoints for SMTP mail, Gmail search, Google Calendar and OAuth2.
"""

__version__ = "1.0.0"
