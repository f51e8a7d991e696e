"""Utilities for the append-only condition log kept in resource status.

Conditions are stored as plain dicts for wire compatibility with the CRD
schema; ``Condition`` is the typed view used when reading them back.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_CERTIFICATE_CREATED,
    COND_CREATING,
    COND_CREATION_FAILED,
    COND_DELETING,
    COND_SERVICE_CREATED,
    COND_WEBHOOK_CREATED,
)
from ..exceptions import StageClassificationError


class StageType(str, enum.Enum):
    """Known condition types, one per stage."""

    CREATING = COND_CREATING
    DELETING = COND_DELETING
    CERTIFICATE_CREATED = COND_CERTIFICATE_CREATED
    CREATION_FAILED = COND_CREATION_FAILED
    SERVICE_CREATED = COND_SERVICE_CREATED
    WEBHOOK_CREATED = COND_WEBHOOK_CREATED


@dataclass(frozen=True)
class Condition:
    """A single entry of the condition log."""

    type: str
    message: str
    status: str
    last_transition_time: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Condition:
        return cls(
            type=data.get("type", ""),
            message=data.get("message", ""),
            status=data.get("status", "Unknown"),
            last_transition_time=data.get("lastTransitionTime", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "status": self.status,
            "lastTransitionTime": self.last_transition_time,
        }

    @property
    def stage_type(self) -> StageType:
        """The stage this condition records.

        Raises:
            StageClassificationError: If the type names no known stage
        """
        try:
            return StageType(self.type)
        except ValueError:
            raise StageClassificationError(self.type) from None


def build_condition(condition_type: str, message: str, status: str = "True") -> Condition:
    """Create a condition stamped with the current UTC time."""
    return Condition(
        type=condition_type,
        message=message,
        status=status,
        last_transition_time=datetime.now(timezone.utc).isoformat(),
    )


def append_condition(
    conditions: list[dict[str, Any]] | None,
    condition: Condition,
) -> list[dict[str, Any]]:
    """Return a new log with ``condition`` appended.

    Existing entries are never modified, reordered or removed.
    """
    return [*(conditions or []), condition.to_dict()]


def last_condition(conditions: list[dict[str, Any]] | None) -> Condition | None:
    """Return the most recent condition, or None for an empty log."""
    if not conditions:
        return None
    return Condition.from_dict(conditions[-1])
