"""Error sanitization utilities to prevent key material leaking into logs and events."""

import json
import re
from typing import Any

from kubernetes.client.exceptions import ApiException

PEM_BLOCK_PATTERN = re.compile(
    r"-----BEGIN ([A-Z ]+)-----.*?-----END \1-----",
    flags=re.DOTALL,
)

# Patterns whose captured value is replaced
SENSITIVE_PATTERNS = [
    r"(ca[_\s]?bundle[\"']?[:\s]+[\"']?)([A-Za-z0-9/+=]{16,})",
    r"(tls\.key[\"']?[:\s]+[\"']?)([A-Za-z0-9/+=]{16,})",
    r"(\"request\"[:\s]+\")([A-Za-z0-9/+=]{16,})",
    r"(bearer\s+)([A-Za-z0-9\-_\.]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "tls.key",
    "private_key",
    "token",
    "password",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove key material.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = PEM_BLOCK_PATTERN.sub(r"[REDACTED \1]", message)

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, r"\1[REDACTED]", sanitized, flags=re.IGNORECASE)

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))


def summarize_exception(error: Exception) -> str:
    """Sanitized one-line description of an error.

    API errors are reduced to status, reason and the server's message, leaving
    out response headers that differ between otherwise identical failures.
    """
    if not isinstance(error, ApiException):
        return sanitize_exception(error)

    summary = f"({error.status}) {error.reason}"
    try:
        message = json.loads(error.body or "{}").get("message")
    except (TypeError, ValueError, AttributeError):
        message = None
    if message:
        summary = f"{summary}: {message}"
    return sanitize_error_message(summary)


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
