"""Lifecycle of the admission webhook configuration owned by a WebhookHelper."""

from __future__ import annotations

import logging
from typing import Any

from .. import metrics
from ..builders.webhook import WebhookKind, WebhookManifest
from ..clients import ClusterContext
from ..constants import CLUSTER_CA_CONFIGMAP, CLUSTER_CA_KEY, KIND_WEBHOOK_HELPER
from ..exceptions import ConfigurationError, PreconditionError
from ..models import WebhookHelperSpec
from ..resources import DEFAULT_NAMESPACE, Operation, ResourceApi, object_ref, owner_reference, perform_operation
from ..status import ServiceCreated, WebhookCreated, determine_stage, update_status
from ..tracing import trace_span

logger = logging.getLogger(__name__)


class WebhookManager:
    """Creates and deletes the webhook configuration described by a WebhookHelper."""

    def __init__(self, context: ClusterContext):
        self.context = context

    def api_for(self, kind: WebhookKind) -> ResourceApi:
        if kind is WebhookKind.MUTATING:
            return self.context.mutating_webhooks
        return self.context.validating_webhooks

    def cluster_ca(self) -> str:
        """Read the cluster root CA bundle.

        Raises:
            ConfigurationError: If the ConfigMap has no CA bundle
            ApiException: If the ConfigMap cannot be read
        """
        namespace = self.context.config.cluster_ca_namespace
        config_map = perform_operation(
            self.context.config_maps, Operation.get(), object_ref(CLUSTER_CA_CONFIGMAP, namespace)
        )
        ca_bundle = (config_map.get("data") or {}).get(CLUSTER_CA_KEY)
        if not ca_bundle:
            raise ConfigurationError(
                f"ConfigMap {namespace}/{CLUSTER_CA_CONFIGMAP} has no {CLUSTER_CA_KEY} entry"
            )
        return ca_bundle

    def bootstrap(self, body: dict[str, Any], service: dict[str, Any] | None) -> dict[str, Any]:
        """Create the webhook configuration and bind it to ``service``.

        Args:
            body: WebhookHelper resource
            service: Service the webhooks are routed to

        Returns:
            The created webhook configuration

        Raises:
            PreconditionError: If no service is given
            UnknownWebhookTypeError: If the manifest is neither variant
            ConfigurationError: If the cluster CA bundle is missing
            ApiException: If a cluster API call fails
        """
        if service is None:
            raise PreconditionError("Service is not known")

        spec = WebhookHelperSpec.from_dict(body.get("spec"))
        manifest = WebhookManifest.load(spec.webhook)
        api = self.api_for(manifest.kind)
        variant = manifest.kind.value

        with trace_span("create_webhook", kind=KIND_WEBHOOK_HELPER, attributes={"webhook.name": manifest.name}):
            try:
                service_meta = service["metadata"]
                desired = manifest.bind_to_service(
                    self.cluster_ca(),
                    service_meta["name"],
                    service_meta.get("namespace") or DEFAULT_NAMESPACE,
                    spec.listening_port,
                    spec.path,
                )
                created = perform_operation(api, Operation.create(), desired)
                logger.info(f"Created {variant} {manifest.name}")

                update_status(self.context.webhook_helpers, body, WebhookCreated(variant, manifest.name))
                perform_operation(api, Operation.apply_owner(owner_reference(body)), created)
            except Exception:
                metrics.webhook_operations_total.labels(operation="create", variant=variant, result="failed").inc()
                raise

        metrics.webhook_operations_total.labels(operation="create", variant=variant, result="success").inc()
        return created

    def resume(self, body: dict[str, Any]) -> dict[str, Any] | None:
        """Continue a WebhookHelper whose service exists but whose webhook does not.

        Returns:
            The created webhook configuration, or None if there was nothing to do
        """
        stage = determine_stage(self.context.webhook_helpers, body)
        if not isinstance(stage, ServiceCreated):
            return None

        namespace = stage.namespace or body["metadata"].get("namespace")
        service = perform_operation(self.context.services, Operation.get(), object_ref(stage.service, namespace))
        return self.bootstrap(body, service)

    def delete(self, body: dict[str, Any]) -> bool:
        """Delete the webhook configuration recorded in the WebhookHelper status.

        Returns:
            True if a configuration was deleted, False if none was recorded
        """
        status = body.get("status") or {}
        validating = (status.get("validating_webhook_ref") or {}).get("name")
        mutating = (status.get("mutating_webhook_ref") or {}).get("name")

        if validating:
            kind, name = WebhookKind.VALIDATING, validating
        elif mutating:
            kind, name = WebhookKind.MUTATING, mutating
        else:
            return False

        api = self.api_for(kind)
        with trace_span("delete_webhook", kind=KIND_WEBHOOK_HELPER, attributes={"webhook.name": name}):
            try:
                webhook = perform_operation(api, Operation.get(), object_ref(name))
                perform_operation(api, Operation.delete(), webhook)
            except Exception:
                metrics.webhook_operations_total.labels(operation="delete", variant=kind.value, result="failed").inc()
                raise

        logger.info(f"Deleted {kind.value} {name}")
        metrics.webhook_operations_total.labels(operation="delete", variant=kind.value, result="success").inc()
        return True
