"""Cluster API handles shared by every reconciliation."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from kubernetes import client, config

from .config import OperatorConfig
from .constants import (
    API_GROUP,
    API_VERSION,
    KIND_CERTIFICATE,
    KIND_WEBHOOK_HELPER,
    PLURAL_CERTIFICATE,
    PLURAL_WEBHOOK_HELPER,
)
from .resources import ResourceApi, custom_resource_api, typed_resource_api


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


@dataclass
class ClusterContext:
    """Explicit capability object threaded through controllers and workflows."""

    secrets: ResourceApi
    config_maps: ResourceApi
    services: ResourceApi
    deployments: ResourceApi
    csrs: ResourceApi
    validating_webhooks: ResourceApi
    mutating_webhooks: ResourceApi
    certificates: ResourceApi
    webhook_helpers: ResourceApi
    config: OperatorConfig = field(default_factory=OperatorConfig)
    stopped: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def from_environment(cls, operator_config: OperatorConfig | None = None) -> ClusterContext:
        """Build API handles once from the ambient cluster configuration."""
        load_kube_config()

        core = client.CoreV1Api()
        apps = client.AppsV1Api()
        certificates = client.CertificatesV1Api()
        admission = client.AdmissionregistrationV1Api()
        custom = client.CustomObjectsApi()

        return cls(
            secrets=typed_resource_api(core, "Secret", "secret", namespaced=True),
            config_maps=typed_resource_api(core, "ConfigMap", "config_map", namespaced=True),
            services=typed_resource_api(core, "Service", "service", namespaced=True),
            deployments=typed_resource_api(apps, "Deployment", "deployment", namespaced=True),
            csrs=typed_resource_api(
                certificates,
                "CertificateSigningRequest",
                "certificate_signing_request",
                namespaced=False,
                with_status=True,
                with_approval=True,
            ),
            validating_webhooks=typed_resource_api(
                admission,
                "ValidatingWebhookConfiguration",
                "validating_webhook_configuration",
                namespaced=False,
            ),
            mutating_webhooks=typed_resource_api(
                admission,
                "MutatingWebhookConfiguration",
                "mutating_webhook_configuration",
                namespaced=False,
            ),
            certificates=custom_resource_api(
                custom, KIND_CERTIFICATE, API_GROUP, API_VERSION, PLURAL_CERTIFICATE, namespaced=False
            ),
            webhook_helpers=custom_resource_api(
                custom, KIND_WEBHOOK_HELPER, API_GROUP, API_VERSION, PLURAL_WEBHOOK_HELPER, namespaced=True
            ),
            config=operator_config or OperatorConfig.from_env(),
        )
