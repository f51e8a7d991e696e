"""Utility functions for the Certificate Helper Operator."""

from .conditions import (
    Condition,
    StageType,
    append_condition,
    build_condition,
    last_condition,
)
from .errors import sanitize_exception
from .events import emit_event
from .rate_limit import handle_rate_limit_error, rate_limit_k8s

__all__ = [
    "Condition",
    "StageType",
    "append_condition",
    "build_condition",
    "last_condition",
    "sanitize_exception",
    "emit_event",
    "rate_limit_k8s",
    "handle_rate_limit_error",
]
