"""Structured logging configuration for the Certificate Helper Operator."""

import json
import logging
import sys
from typing import Any

from .constants import CONTROLLER_NAME
from .utils.errors import sanitize_dict, sanitize_error_message


def setup_structured_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # kopf's per-object logger duplicates our resource events
    logging.getLogger("kopf.objects").setLevel(logging.WARNING)


def log_resource_event(
    logger: logging.Logger,
    resource_kind: str,
    resource_name: str,
    namespace: str | None,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event.

    Extra keyword arguments become fields of the JSON line. Key material in
    them and in the message is redacted first.
    """
    log_data = {
        "controller": CONTROLLER_NAME,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": sanitize_error_message(message),
    }
    log_data.update(sanitize_dict(kwargs))
    logger.log(level, json.dumps(log_data, default=str))
