"""One-shot installation of the operator's admission webhook into a namespace."""

from __future__ import annotations

import logging
from typing import Any

from kubernetes.client.exceptions import ApiException

from .builders.bootstrap import build_service, build_webhook_helper
from .builders.webhook import WebhookManifest
from .clients import ClusterContext
from .models import WebhookHelperSpec
from .resources import Operation, object_ref, owner_reference, perform_operation
from .services.webhook import WebhookManager
from .status import ServiceCreated, update_status

logger = logging.getLogger(__name__)


def bootstrap(context: ClusterContext, namespace: str) -> dict[str, Any]:
    """Create the WebhookHelper, Deployment, Service and webhook configuration.

    The WebhookHelper owns everything else created here. A running operator
    may pick the helper up after ``ServiceCreated`` and create the webhook
    configuration first; that configuration is returned instead of failing.

    Args:
        context: Cluster API handles
        namespace: Namespace to install into

    Returns:
        The created webhook configuration
    """
    helper = perform_operation(
        context.webhook_helpers,
        Operation.create(),
        build_webhook_helper(namespace, context.config.operator_image),
    )
    logger.info(f"Created WebhookHelper {namespace}/{helper['metadata']['name']}")
    owner = Operation.apply_owner(owner_reference(helper))
    spec = WebhookHelperSpec.from_dict(helper["spec"])

    deployment = perform_operation(context.deployments, Operation.create(), spec.deployment)
    perform_operation(context.deployments, owner, deployment)
    logger.info(f"Created Deployment {namespace}/{deployment['metadata']['name']}")

    service = perform_operation(context.services, Operation.create(), build_service(spec, deployment))
    perform_operation(context.services, owner, service)
    service_meta = service["metadata"]
    logger.info(f"Created Service {namespace}/{service_meta['name']}")

    update_status(
        context.webhook_helpers,
        helper,
        ServiceCreated(service_meta["name"], service_meta.get("namespace", namespace)),
    )

    manager = WebhookManager(context)
    try:
        return manager.bootstrap(helper, service)
    except ApiException as e:
        if e.status != 409:
            raise
        existing = _existing_webhook(manager, spec, service)
        if existing is None:
            raise
        logger.info(f"{existing.get('kind', 'Webhook configuration')} {existing['metadata']['name']} already exists")
        return existing


def _existing_webhook(
    manager: WebhookManager, spec: WebhookHelperSpec, service: dict[str, Any]
) -> dict[str, Any] | None:
    """The configuration named by ``spec`` if all its webhooks route to ``service``."""
    manifest = WebhookManifest.load(spec.webhook)
    existing = perform_operation(manager.api_for(manifest.kind), Operation.get(), object_ref(manifest.name))

    meta = service["metadata"]
    targets = [(webhook.get("clientConfig") or {}).get("service") or {} for webhook in existing.get("webhooks") or []]
    if targets and all(
        target.get("name") == meta["name"] and target.get("namespace") == meta.get("namespace")
        for target in targets
    ):
        return existing
    return None
