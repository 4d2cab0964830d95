"""
Custom exception classes for the workspace gateway.
Each error type maps to an HTTP status code used by the API layer.
"""

from typing import Optional, Dict, Any


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional fields merged into the JSON error body
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(GatewayError):
    """Raised when request input validation fails."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of invalid field
            value: Invalid value
            **kwargs: Additional arguments for GatewayError
        """
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)
        self.field = field
        self.value = value


class ConfigurationError(GatewayError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_key: Name of missing/invalid config key
            **kwargs: Additional arguments for GatewayError
        """
        super().__init__(message, error_code="CONFIG_ERROR", **kwargs)
        self.config_key = config_key


class AuthenticationError(GatewayError):
    """Raised when an OAuth exchange or token refresh fails."""

    status_code = 401

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="AUTH_ERROR", **kwargs)


class ServiceError(GatewayError):
    """Base exception for failures of a downstream service."""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        error_code: str = "SERVICE_ERROR",
        **kwargs
    ):
        """
        Initialize service error.

        Args:
            message: Error message
            service_name: Name of the downstream service (smtp, gmail, calendar)
            error_code: Machine-readable error code
            **kwargs: Additional arguments for GatewayError
        """
        super().__init__(message, error_code=error_code, **kwargs)
        self.service_name = service_name


class EmailDeliveryError(ServiceError):
    """Raised when the SMTP server rejects or cannot deliver a message."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, service_name="smtp", error_code="EMAIL_DELIVERY_ERROR", **kwargs)


class GoogleApiError(ServiceError):
    """Raised when a Google API call returns an error response."""

    status_code = 502

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        upstream_status: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, service_name=service_name, error_code="GOOGLE_API_ERROR", **kwargs)
        self.upstream_status = upstream_status
