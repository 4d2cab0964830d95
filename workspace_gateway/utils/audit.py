"""
Audit trail for outward gateway operations.
Records each email sent, mailbox search, calendar write and token exchange.
"""

import re
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from uuid import uuid4

from workspace_gateway.utils.logging_config import get_logger


SENSITIVE_KEYS = {
    "password", "pass", "secret", "token", "code", "authorization",
    "body", "api_key", "private_key"
}

EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')


class AuditLogger:
    """
    Audit logger for outward operations.
    Writes one structured record per operation to the "audit" logger.
    """

    def __init__(self):
        self.logger = get_logger("audit")

    def log_operation(
        self,
        operation: str,
        service_name: str,
        parameters: Dict[str, Any],
        result: Optional[Any] = None,
        error: Optional[str] = None,
        duration_ms: Optional[float] = None,
        request_id: Optional[str] = None
    ) -> str:
        """
        Log a gateway operation.

        Args:
            operation: Operation name (send_email, search_emails, ...)
            service_name: Downstream service (smtp, gmail, calendar, oauth)
            parameters: Operation parameters
            result: Operation result summary (if successful)
            error: Error message (if failed)
            duration_ms: Operation duration in milliseconds
            request_id: Request identifier

        Returns:
            Audit log entry ID
        """
        log_id = str(uuid4())

        log_entry = {
            "audit_id": log_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "type": "gateway_operation",
            "operation": operation,
            "service_name": service_name,
            "status": "error" if error else "success",
            "parameters": self._redact_sensitive_data(parameters),
            "result": self._redact_sensitive_data(result) if result else None,
            "error": error,
            "duration_ms": duration_ms,
            "request_id": request_id
        }

        self.logger.info(f"Gateway operation: {operation}", extra={"extra_data": log_entry})
        return log_id

    def _redact_sensitive_data(self, data: Any) -> Any:
        """
        Redact sensitive data from log entries.

        Secret-looking keys are replaced wholesale; email addresses inside
        strings are masked.
        """
        if isinstance(data, dict):
            redacted = {}
            for key, value in data.items():
                if any(sensitive in str(key).lower() for sensitive in SENSITIVE_KEYS):
                    redacted[key] = "[REDACTED]"
                else:
                    redacted[key] = self._redact_sensitive_data(value)
            return redacted
        elif isinstance(data, list):
            return [self._redact_sensitive_data(item) for item in data]
        elif isinstance(data, str):
            return EMAIL_PATTERN.sub("[EMAIL_REDACTED]", data)
        return data


# Global audit logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """
    Get the global audit logger.

    Returns:
        AuditLogger instance
    """
    global _audit_logger

    if _audit_logger is None:
        _audit_logger = AuditLogger()

    return _audit_logger
