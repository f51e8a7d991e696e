"""Stage tracking on top of the append-only condition log.

Every managed resource carries ``status.conditions``. Each workflow step
appends one condition naming the stage it reached; the current stage is read
back from the last entry only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from .constants import (
    COND_CERTIFICATE_CREATED,
    COND_CREATING,
    COND_CREATION_FAILED,
    COND_DELETING,
    COND_SERVICE_CREATED,
    COND_WEBHOOK_CREATED,
)
from .resources import ResourceApi
from .utils.conditions import StageType, append_condition, build_condition, last_condition

VALIDATING_WEBHOOK_KIND = "ValidatingWebhookConfiguration"
MUTATING_WEBHOOK_KIND = "MutatingWebhookConfiguration"

UNKNOWN_NAME = "<unknown>"


class Stage:
    """Base class of all stages."""

    name: ClassVar[str] = ""
    succeeded: ClassVar[bool] = True

    def message(self) -> str:
        raise NotImplementedError

    def status_fields(self, spec: dict[str, Any]) -> dict[str, Any]:
        """Status fields recorded alongside the condition."""
        return {}


@dataclass(frozen=True)
class Creating(Stage):
    name: ClassVar[str] = COND_CREATING

    def message(self) -> str:
        return "Creating resource"


@dataclass(frozen=True)
class Deleting(Stage):
    name: ClassVar[str] = COND_DELETING

    def message(self) -> str:
        return "Deleting resource"


@dataclass(frozen=True)
class CertificateCreated(Stage):
    certificate: str

    name: ClassVar[str] = COND_CERTIFICATE_CREATED

    def message(self) -> str:
        return f"Certificate {self.certificate} Created"

    def status_fields(self, spec: dict[str, Any]) -> dict[str, Any]:
        return {
            "certificate": self.certificate,
            "service": spec.get("service"),
            "alt_names": spec.get("alt_names"),
        }


@dataclass(frozen=True)
class CreationFailed(Stage):
    reason: str

    name: ClassVar[str] = COND_CREATION_FAILED
    succeeded: ClassVar[bool] = False

    def message(self) -> str:
        return f"Certificate creation failed: {self.reason}"


@dataclass(frozen=True)
class ServiceCreated(Stage):
    service: str
    namespace: str | None = None

    name: ClassVar[str] = COND_SERVICE_CREATED

    def message(self) -> str:
        return f"Service {self.service} Created"

    def status_fields(self, spec: dict[str, Any]) -> dict[str, Any]:
        return {
            "service_ref": {
                "name": self.service,
                "namespace": self.namespace or spec.get("namespace"),
            }
        }


@dataclass(frozen=True)
class WebhookCreated(Stage):
    kind: str
    webhook: str

    name: ClassVar[str] = COND_WEBHOOK_CREATED

    def message(self) -> str:
        return f"{self.kind} {self.webhook} Created"

    def status_fields(self, spec: dict[str, Any]) -> dict[str, Any]:
        field = "validating_webhook_ref" if self.kind == VALIDATING_WEBHOOK_KIND else "mutating_webhook_ref"
        return {field: {"name": self.webhook}}


def update_status(api: ResourceApi, body: dict[str, Any], stage: Stage, repeat: bool = True) -> dict[str, Any]:
    """Append the condition for ``stage`` to the resource's status.

    The status subresource is read fresh, extended by exactly one condition
    and written back with a full replace.

    Args:
        api: ResourceApi of the resource kind
        body: Resource whose status is updated
        stage: Stage reached
        repeat: If False, nothing is written when the last condition already
            records the same stage with the same message

    Returns:
        The resource as returned by the API server
    """
    current = api.get_status(body)
    status = dict(current.get("status") or {})

    condition = build_condition(stage.name, stage.message(), "True" if stage.succeeded else "False")
    if not repeat:
        last = last_condition(status.get("conditions"))
        if last is not None and last.type == condition.type and last.message == condition.message:
            return current
    status["conditions"] = append_condition(status.get("conditions"), condition)
    status.update(stage.status_fields(current.get("spec") or {}))

    current["status"] = status
    return api.replace_status(current)


def stage_from_status(status: dict[str, Any] | None) -> Stage:
    """Classify a status by its last condition.

    Raises:
        StageClassificationError: If the last condition names no known stage
    """
    status = status or {}
    condition = last_condition(status.get("conditions"))
    if condition is None:
        return Creating()

    stage_type = condition.stage_type
    if stage_type is StageType.CREATING:
        return Creating()
    if stage_type is StageType.DELETING:
        return Deleting()
    if stage_type is StageType.CERTIFICATE_CREATED:
        return CertificateCreated(status.get("certificate") or UNKNOWN_NAME)
    if stage_type is StageType.CREATION_FAILED:
        return CreationFailed(condition.message)
    if stage_type is StageType.SERVICE_CREATED:
        ref = status.get("service_ref") or {}
        return ServiceCreated(ref.get("name") or UNKNOWN_NAME, ref.get("namespace"))

    validating = (status.get("validating_webhook_ref") or {}).get("name")
    if validating:
        return WebhookCreated(VALIDATING_WEBHOOK_KIND, validating)
    mutating = (status.get("mutating_webhook_ref") or {}).get("name")
    return WebhookCreated(MUTATING_WEBHOOK_KIND, mutating or UNKNOWN_NAME)


def determine_stage(api: ResourceApi, body: dict[str, Any]) -> Stage:
    """Fetch the resource's status and classify its current stage."""
    current = api.get_status(body)
    return stage_from_status(current.get("status"))
