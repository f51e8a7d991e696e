"""Shared fixtures: an in-memory cluster behind real ResourceApi dispatchers."""

from __future__ import annotations

import base64
import copy
import itertools
from typing import Any
from unittest.mock import patch

import pytest
from kubernetes.client.exceptions import ApiException

from certificate_helper.clients import ClusterContext
from certificate_helper.config import OperatorConfig
from certificate_helper.constants import API_GROUP_VERSION, KIND_CERTIFICATE, KIND_WEBHOOK_HELPER
from certificate_helper.resources import ClusterResourceApi, NamespacedResourceApi, ResourceApi

SIGNED_CERTIFICATE = base64.b64encode(
    b"-----BEGIN CERTIFICATE-----\nZmFrZQ==\n-----END CERTIFICATE-----\n"
).decode("utf-8")

CLUSTER_CA = "-----BEGIN CERTIFICATE-----\nY2x1c3Rlci1jYQ==\n-----END CERTIFICATE-----\n"


def merge_patch(target: dict[str, Any], patch_body: dict[str, Any]) -> None:
    """Apply a JSON merge patch in place."""
    for key, value in patch_body.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            merge_patch(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


def sign_when_approved(obj: dict[str, Any]) -> None:
    """Play the signer: attach a certificate once the CSR is approved."""
    status = obj.get("status") or {}
    if any(c.get("type") == "Approved" for c in status.get("conditions") or []):
        status["certificate"] = SIGNED_CERTIFICATE
        obj["status"] = status


class FakeStore:
    """In-memory objects of one kind, keyed by (namespace, name)."""

    def __init__(self, kind: str):
        self.kind = kind
        self.objects: dict[tuple[str | None, str], dict[str, Any]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.on_read_status = None
        self._uids = itertools.count(1)

    def _get(self, name: str, namespace: str | None) -> dict[str, Any]:
        try:
            return self.objects[(namespace, name)]
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None

    def add(self, obj: dict[str, Any]) -> dict[str, Any]:
        meta = obj["metadata"]
        self.objects[(meta.get("namespace"), meta["name"])] = copy.deepcopy(obj)
        return obj

    def stored(self, name: str, namespace: str | None = None) -> dict[str, Any]:
        return self._get(name, namespace)

    def verbs(self) -> list[str]:
        return [call[0] for call in self.calls]

    def read(self, name: str, namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("read", name, namespace))
        return copy.deepcopy(self._get(name, namespace))

    def create(self, body: dict[str, Any], namespace: str | None = None) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self.calls.append(("create", name, namespace))
        if (namespace, name) in self.objects:
            raise ApiException(status=409, reason="Conflict")
        obj = copy.deepcopy(body)
        obj["metadata"].setdefault("uid", f"{self.kind.lower()}-uid-{next(self._uids)}")
        if namespace is not None:
            obj["metadata"]["namespace"] = namespace
        self.objects[(namespace, name)] = obj
        return copy.deepcopy(obj)

    def replace(self, name: str, body: dict[str, Any], namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("replace", name, namespace))
        self._get(name, namespace)
        self.objects[(namespace, name)] = copy.deepcopy(body)
        return copy.deepcopy(body)

    def delete(self, name: str, namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("delete", name, namespace))
        self._get(name, namespace)
        del self.objects[(namespace, name)]
        return {"kind": "Status", "status": "Success"}

    def patch(self, name: str, body: dict[str, Any], namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("patch", name, namespace, copy.deepcopy(body)))
        obj = self._get(name, namespace)
        merge_patch(obj, body)
        return copy.deepcopy(obj)

    def read_status(self, name: str, namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("read_status", name, namespace))
        obj = self._get(name, namespace)
        if self.on_read_status is not None:
            self.on_read_status(obj)
        return copy.deepcopy(obj)

    def replace_status(self, name: str, body: dict[str, Any], namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("replace_status", name, namespace))
        obj = self._get(name, namespace)
        obj["status"] = copy.deepcopy(body.get("status"))
        return copy.deepcopy(obj)

    def replace_approval(self, name: str, body: dict[str, Any], namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("replace_approval", name, namespace))
        obj = self._get(name, namespace)
        obj["status"] = copy.deepcopy(body.get("status"))
        return copy.deepcopy(obj)

    def api(self, namespaced: bool) -> ResourceApi:
        cls = NamespacedResourceApi if namespaced else ClusterResourceApi
        return cls(
            self.kind,
            read=self.read,
            create=self.create,
            replace=self.replace,
            delete=self.delete,
            patch=self.patch,
            read_status=self.read_status,
            replace_status=self.replace_status,
            replace_approval=self.replace_approval,
        )


class FakeCluster:
    """All stores the operator touches plus a ClusterContext wired to them."""

    def __init__(self, config: OperatorConfig | None = None):
        self.secrets = FakeStore("Secret")
        self.config_maps = FakeStore("ConfigMap")
        self.services = FakeStore("Service")
        self.deployments = FakeStore("Deployment")
        self.csrs = FakeStore("CertificateSigningRequest")
        self.validating_webhooks = FakeStore("ValidatingWebhookConfiguration")
        self.mutating_webhooks = FakeStore("MutatingWebhookConfiguration")
        self.certificates = FakeStore(KIND_CERTIFICATE)
        self.webhook_helpers = FakeStore(KIND_WEBHOOK_HELPER)

        self.csrs.on_read_status = sign_when_approved

        self.context = ClusterContext(
            secrets=self.secrets.api(namespaced=True),
            config_maps=self.config_maps.api(namespaced=True),
            services=self.services.api(namespaced=True),
            deployments=self.deployments.api(namespaced=True),
            csrs=self.csrs.api(namespaced=False),
            validating_webhooks=self.validating_webhooks.api(namespaced=False),
            mutating_webhooks=self.mutating_webhooks.api(namespaced=False),
            certificates=self.certificates.api(namespaced=False),
            webhook_helpers=self.webhook_helpers.api(namespaced=True),
            config=config or OperatorConfig(csr_approval_poll_interval=0.0, csr_approval_timeout=5.0),
        )

    def add_cluster_ca(self, namespace: str = "default") -> None:
        self.config_maps.add({
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "kube-root-ca.crt", "namespace": namespace},
            "data": {"ca.crt": CLUSTER_CA},
        })


def make_certificate(
    name: str = "svc1",
    service: str = "svc1",
    namespace: str = "ns",
    alt_names: list[str] | None = None,
    finalizers: list[str] | None = None,
    status: dict[str, Any] | None = None,
    deletion_timestamp: str | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": name, "uid": f"{name}-uid"}
    if finalizers is not None:
        metadata["finalizers"] = finalizers
    if deletion_timestamp is not None:
        metadata["deletionTimestamp"] = deletion_timestamp
    body: dict[str, Any] = {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_CERTIFICATE,
        "metadata": metadata,
        "spec": {"namespace": namespace, "service": service},
    }
    if alt_names is not None:
        body["spec"]["alt_names"] = alt_names
    if status is not None:
        body["status"] = status
    return body


def validating_manifest(name: str = "demo-webhook", url: str | None = "https://example.invalid/hook") -> dict[str, Any]:
    client_config: dict[str, Any] = {}
    if url is not None:
        client_config["url"] = url
    return {
        "apiVersion": "admissionregistration.k8s.io/v1",
        "kind": "ValidatingWebhookConfiguration",
        "metadata": {"name": name},
        "webhooks": [{
            "name": "demo.example.com",
            "admissionReviewVersions": ["v1"],
            "sideEffects": "None",
            "clientConfig": client_config,
        }],
    }


def make_webhook_helper(
    name: str = "demo",
    namespace: str = "ns",
    webhook: dict[str, Any] | None = None,
    status: dict[str, Any] | None = None,
    path: str | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "namespace": namespace,
        "webhook": webhook if webhook is not None else validating_manifest(),
        "listening_port": 443,
        "deployment": {"apiVersion": "apps/v1", "kind": "Deployment", "metadata": {"name": name}},
    }
    if path is not None:
        spec["path"] = path
    body: dict[str, Any] = {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_WEBHOOK_HELPER,
        "metadata": {"name": name, "namespace": namespace, "uid": f"{name}-uid"},
        "spec": spec,
    }
    if status is not None:
        body["status"] = status
    return body


@pytest.fixture(autouse=True)
def fast_rate_limit():
    """Remove the API call spacing for tests."""
    with patch("certificate_helper.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 1_000_000.0):
        yield


@pytest.fixture(autouse=True)
def mock_kopf_event():
    """Events need a running operator; record them instead."""
    with patch("certificate_helper.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()
