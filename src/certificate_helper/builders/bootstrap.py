"""Builders for the manifests that install the operator into a namespace."""

from __future__ import annotations

from typing import Any

from ..constants import (
    API_GROUP,
    API_GROUP_VERSION,
    API_VERSION,
    BOOTSTRAP_APP_NAME,
    BOOTSTRAP_CONTAINER_PORT,
    BOOTSTRAP_SERVICE_ACCOUNT,
    BOOTSTRAP_WEBHOOK_PATH,
    KIND_WEBHOOK_HELPER,
    PLURAL_CERTIFICATE,
)
from ..models import WebhookHelperSpec


def webhook_name(namespace: str) -> str:
    return f"{BOOTSTRAP_APP_NAME}.{namespace.lower()}.svc"


def app_labels() -> dict[str, str]:
    return {"app": BOOTSTRAP_APP_NAME}


def build_deployment(namespace: str, image: str, port: int = BOOTSTRAP_CONTAINER_PORT) -> dict[str, Any]:
    """Build the Deployment running the operator and its admission endpoint."""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": BOOTSTRAP_APP_NAME,
            "namespace": namespace,
            "labels": app_labels(),
        },
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": app_labels()},
            "template": {
                "metadata": {"labels": app_labels()},
                "spec": {
                    "serviceAccountName": BOOTSTRAP_SERVICE_ACCOUNT,
                    "containers": [{
                        "name": BOOTSTRAP_APP_NAME,
                        "image": image,
                        "args": ["run", "--port", str(port)],
                        "ports": [{"containerPort": port, "protocol": "TCP"}],
                    }],
                },
            },
        },
    }


def build_validating_webhook(namespace: str) -> dict[str, Any]:
    """Build the ValidatingWebhookConfiguration guarding Certificate writes.

    The client config is left empty; it is bound to the service when the
    configuration is created.
    """
    return {
        "apiVersion": "admissionregistration.k8s.io/v1",
        "kind": "ValidatingWebhookConfiguration",
        "metadata": {"name": f"{BOOTSTRAP_APP_NAME}-admission"},
        "webhooks": [{
            "name": webhook_name(namespace),
            "admissionReviewVersions": ["v1"],
            "clientConfig": {},
            "failurePolicy": "Fail",
            "sideEffects": "None",
            "timeoutSeconds": 15,
            "rules": [{
                "apiGroups": [API_GROUP],
                "apiVersions": [API_VERSION],
                "operations": ["CREATE", "UPDATE"],
                "resources": [PLURAL_CERTIFICATE],
            }],
        }],
    }


def build_webhook_helper(namespace: str, image: str) -> dict[str, Any]:
    """Build the WebhookHelper describing the operator's own admission webhook."""
    spec = WebhookHelperSpec(
        namespace=namespace,
        webhook=build_validating_webhook(namespace),
        listening_port=BOOTSTRAP_CONTAINER_PORT,
        deployment=build_deployment(namespace, image),
        target_port=BOOTSTRAP_CONTAINER_PORT,
        path=BOOTSTRAP_WEBHOOK_PATH,
        container_name=BOOTSTRAP_APP_NAME,
    )
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_WEBHOOK_HELPER,
        "metadata": {"name": webhook_name(namespace), "namespace": namespace},
        "spec": spec.to_dict(),
    }


def build_service(spec: WebhookHelperSpec, deployment: dict[str, Any]) -> dict[str, Any]:
    """Build the Service routing webhook traffic to the deployment's pods."""
    meta = deployment["metadata"]
    selector = deployment["spec"]["selector"].get("matchLabels") or app_labels()
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": meta["name"], "namespace": meta.get("namespace", spec.namespace)},
        "spec": {
            "selector": dict(selector),
            "ports": [{
                "protocol": "TCP",
                "port": spec.listening_port,
                "targetPort": spec.target_port or spec.listening_port,
            }],
        },
    }
