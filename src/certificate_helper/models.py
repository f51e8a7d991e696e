"""Typed views of the Certificate and WebhookHelper specs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import SerializationError


def _required_str(spec: dict[str, Any], key: str) -> str:
    value = spec.get(key)
    if not isinstance(value, str) or not value:
        raise SerializationError(f"spec.{key} must be a non-empty string")
    return value


def _optional_int(spec: dict[str, Any], key: str) -> int | None:
    value = spec.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"spec.{key} must be an integer")
    return value


@dataclass(frozen=True)
class CertificateSpec:
    """Desired state of a Certificate."""

    namespace: str
    service: str
    alt_names: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, spec: dict[str, Any] | None) -> CertificateSpec:
        """Parse a Certificate spec.

        Raises:
            SerializationError: If a required field is missing or mistyped
        """
        if not isinstance(spec, dict):
            raise SerializationError("spec must be an object")

        alt_names = spec.get("alt_names") or []
        if not isinstance(alt_names, list) or not all(isinstance(n, str) for n in alt_names):
            raise SerializationError("spec.alt_names must be a list of strings")

        return cls(
            namespace=_required_str(spec, "namespace"),
            service=_required_str(spec, "service"),
            alt_names=list(alt_names),
        )


@dataclass(frozen=True)
class WebhookHelperSpec:
    """Desired state of a WebhookHelper."""

    namespace: str
    webhook: dict[str, Any]
    listening_port: int
    deployment: dict[str, Any]
    target_port: int | None = None
    path: str | None = None
    container_name: str | None = None

    @classmethod
    def from_dict(cls, spec: dict[str, Any] | None) -> WebhookHelperSpec:
        """Parse a WebhookHelper spec.

        Raises:
            SerializationError: If a required field is missing or mistyped
        """
        if not isinstance(spec, dict):
            raise SerializationError("spec must be an object")

        webhook = spec.get("webhook")
        if not isinstance(webhook, dict):
            raise SerializationError("spec.webhook must be a manifest object")
        deployment = spec.get("deployment")
        if not isinstance(deployment, dict):
            raise SerializationError("spec.deployment must be a manifest object")

        listening_port = _optional_int(spec, "listening_port")
        if listening_port is None:
            raise SerializationError("spec.listening_port is required")

        return cls(
            namespace=_required_str(spec, "namespace"),
            webhook=webhook,
            listening_port=listening_port,
            deployment=deployment,
            target_port=_optional_int(spec, "target_port"),
            path=spec.get("path"),
            container_name=spec.get("container_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "namespace": self.namespace,
            "webhook": self.webhook,
            "listening_port": self.listening_port,
            "deployment": self.deployment,
        }
        if self.target_port is not None:
            data["target_port"] = self.target_port
        if self.path is not None:
            data["path"] = self.path
        if self.container_name is not None:
            data["container_name"] = self.container_name
        return data
