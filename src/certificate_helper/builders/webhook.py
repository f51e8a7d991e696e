"""Builder for admission webhook configurations."""

from __future__ import annotations

import base64
import copy
import enum
from dataclasses import dataclass
from typing import Any

from ..exceptions import UnknownWebhookTypeError

ADMISSION_API_VERSION = "admissionregistration.k8s.io/v1"


class WebhookKind(str, enum.Enum):
    """The two webhook configuration variants."""

    MUTATING = "MutatingWebhookConfiguration"
    VALIDATING = "ValidatingWebhookConfiguration"


def _parse(raw: Any, kind: WebhookKind) -> dict[str, Any] | None:
    if not isinstance(raw, dict):
        return None
    if raw.get("apiVersion") != ADMISSION_API_VERSION or raw.get("kind") != kind.value:
        return None
    metadata = raw.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("name"):
        return None
    webhooks = raw.get("webhooks") or []
    if not isinstance(webhooks, list) or not all(isinstance(w, dict) for w in webhooks):
        return None
    return raw


@dataclass(frozen=True)
class WebhookManifest:
    """A webhook configuration manifest whose variant has been resolved."""

    kind: WebhookKind
    manifest: dict[str, Any]

    @classmethod
    def load(cls, raw: Any) -> WebhookManifest:
        """Resolve the variant of ``raw``, trying mutating before validating.

        Raises:
            UnknownWebhookTypeError: If ``raw`` is neither variant
        """
        for kind in (WebhookKind.MUTATING, WebhookKind.VALIDATING):
            manifest = _parse(raw, kind)
            if manifest is not None:
                return cls(kind, copy.deepcopy(manifest))
        raise UnknownWebhookTypeError()

    @property
    def name(self) -> str:
        return self.manifest["metadata"]["name"]

    def bind_to_service(
        self,
        ca_bundle: str,
        service_name: str,
        service_namespace: str,
        port: int,
        path: str | None = None,
    ) -> dict[str, Any]:
        """Return a copy of the manifest with every webhook pointed at a service.

        Static URLs are dropped and the cluster CA is injected as ``caBundle``.

        Args:
            ca_bundle: PEM encoded CA bundle
            service_name: Target service name
            service_namespace: Target service namespace
            port: Target service port
            path: Optional URL path on the service
        """
        manifest = copy.deepcopy(self.manifest)
        encoded_ca = base64.b64encode(ca_bundle.encode("utf-8")).decode("utf-8")

        service_ref: dict[str, Any] = {
            "name": service_name,
            "namespace": service_namespace,
            "port": port,
        }
        if path:
            service_ref["path"] = path

        webhooks = []
        for webhook in manifest.get("webhooks") or []:
            client_config = dict(webhook.get("clientConfig") or {})
            client_config.pop("url", None)
            client_config["caBundle"] = encoded_ca
            client_config["service"] = dict(service_ref)
            webhooks.append({**webhook, "clientConfig": client_config})
        manifest["webhooks"] = webhooks

        # Server-assigned identity must not be submitted on create
        for key in ("resourceVersion", "uid", "creationTimestamp"):
            manifest["metadata"].pop(key, None)

        return manifest
