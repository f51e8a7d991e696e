"""Tests for the resource operation abstraction."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from certificate_helper.exceptions import UnknownOperationError
from certificate_helper.resources import (
    ClusterResourceApi,
    NamespacedResourceApi,
    Operation,
    Verb,
    custom_resource_api,
    object_ref,
    owner_reference,
    perform_operation,
    typed_resource_api,
)

from conftest import FakeStore, make_certificate


def secret(name: str = "svc1", namespace: str | None = "ns") -> dict:
    metadata = {"name": name}
    if namespace is not None:
        metadata["namespace"] = namespace
    return {"apiVersion": "v1", "kind": "Secret", "metadata": metadata, "data": {"tls.crt": "Y2VydA=="}}


class TestOperation:
    """Test cases for Operation constructors."""

    def test_constructors(self):
        """Test that each constructor sets its verb."""
        assert Operation.get().verb is Verb.GET
        assert Operation.create().verb is Verb.CREATE
        assert Operation.update().verb is Verb.UPDATE
        assert Operation.delete().verb is Verb.DELETE
        assert Operation.apply_owner({"uid": "u"}).owner == {"uid": "u"}
        assert Operation.unknown("x").label == "x"


class TestPerformOperation:
    """Test cases for perform_operation over both scopes."""

    @pytest.mark.parametrize("namespaced", [True, False])
    def test_unknown_operation_carries_label(self, namespaced):
        """Test that Unknown always fails with exactly the given label."""
        store = FakeStore("Anything")
        api = store.api(namespaced=namespaced)

        with pytest.raises(UnknownOperationError) as exc_info:
            perform_operation(api, Operation.unknown("frobnicate"), secret())

        assert exc_info.value.label == "frobnicate"
        assert store.calls == []

    def test_create_then_get_namespaced(self):
        """Test that create and get go to the object's namespace."""
        store = FakeStore("Secret")
        api = store.api(namespaced=True)

        created = perform_operation(api, Operation.create(), secret())
        fetched = perform_operation(api, Operation.get(), object_ref("svc1", "ns"))

        assert created["metadata"]["uid"] == fetched["metadata"]["uid"]
        assert store.calls[0] == ("create", "svc1", "ns")
        assert store.calls[1] == ("read", "svc1", "ns")

    def test_namespaced_defaults_to_default_namespace(self):
        """Test that objects without a namespace are sent to default."""
        store = FakeStore("Secret")
        api = store.api(namespaced=True)

        perform_operation(api, Operation.create(), secret(namespace=None))

        assert ("default", "svc1") in store.objects

    def test_cluster_scope_passes_no_namespace(self):
        """Test that cluster-scoped calls carry no namespace."""
        read = MagicMock(return_value={"metadata": {"name": "hook"}})
        api = ClusterResourceApi(
            "ValidatingWebhookConfiguration",
            read=read,
            create=MagicMock(),
            replace=MagicMock(),
            delete=MagicMock(),
            patch=MagicMock(),
        )

        perform_operation(api, Operation.get(), object_ref("hook", "ignored"))

        read.assert_called_once_with(name="hook")

    def test_update_replaces(self):
        """Test that Update performs a full replace."""
        store = FakeStore("Secret")
        api = store.api(namespaced=True)
        perform_operation(api, Operation.create(), secret())

        changed = secret()
        changed["data"] = {"tls.crt": "bmV3"}
        result = perform_operation(api, Operation.update(), changed)

        assert result["data"] == {"tls.crt": "bmV3"}
        assert store.stored("svc1", "ns")["data"] == {"tls.crt": "bmV3"}

    def test_delete_returns_caller_snapshot(self):
        """Test that Delete returns the object passed in, not a server tombstone."""
        store = FakeStore("Secret")
        api = store.api(namespaced=True)
        snapshot = perform_operation(api, Operation.create(), secret())

        result = perform_operation(api, Operation.delete(), snapshot)

        assert result is snapshot
        assert store.objects == {}

    def test_apply_owner_merges_owner_reference(self):
        """Test that ApplyOwner adds an owner reference without touching other fields."""
        store = FakeStore("Secret")
        api = store.api(namespaced=True)
        created = perform_operation(api, Operation.create(), secret())
        owner = owner_reference(make_certificate())

        result = perform_operation(api, Operation.apply_owner(owner), created)

        assert result is created
        stored = store.stored("svc1", "ns")
        assert stored["metadata"]["ownerReferences"] == [{
            "apiVersion": "certificate-helper.io/v1",
            "kind": "Certificate",
            "name": "svc1",
            "uid": "svc1-uid",
            "blockOwnerDeletion": False,
        }]
        assert stored["metadata"]["name"] == "svc1"
        assert stored["data"] == {"tls.crt": "Y2VydA=="}

    def test_get_missing_raises_api_exception(self):
        """Test that not-found errors surface unwrapped."""
        api = FakeStore("Secret").api(namespaced=True)

        with pytest.raises(ApiException) as exc_info:
            perform_operation(api, Operation.get(), object_ref("missing", "ns"))

        assert exc_info.value.status == 404


class TestResourceApiCalls:
    """Test cases for retries and optional subresources."""

    @patch("certificate_helper.utils.rate_limit.time.sleep")
    def test_retries_on_rate_limit(self, mock_sleep):
        """Test that a 429 response is retried."""
        read = MagicMock(side_effect=[ApiException(status=429, reason="Too Many Requests"), {"metadata": {}}])
        api = NamespacedResourceApi("Secret", read, MagicMock(), MagicMock(), MagicMock(), MagicMock())

        assert api.get(object_ref("s", "ns")) == {"metadata": {}}
        assert read.call_count == 2
        mock_sleep.assert_any_call(1)

    def test_does_not_retry_other_errors(self):
        """Test that non rate limit errors propagate at once."""
        read = MagicMock(side_effect=ApiException(status=500, reason="Internal"))
        api = NamespacedResourceApi("Secret", read, MagicMock(), MagicMock(), MagicMock(), MagicMock())

        with pytest.raises(ApiException):
            api.get(object_ref("s", "ns"))
        assert read.call_count == 1

    def test_missing_subresource_is_unknown_operation(self):
        """Test that calling an unwired subresource fails."""
        api = NamespacedResourceApi("Secret", MagicMock(), MagicMock(), MagicMock(), MagicMock(), MagicMock())

        with pytest.raises(UnknownOperationError):
            api.replace_approval(object_ref("s", "ns"))


class TestFactories:
    """Test cases for the client wrapping factories."""

    def test_typed_resource_api_namespaced(self):
        """Test that typed namespaced methods are resolved by suffix."""
        core = MagicMock()
        core.api_client.sanitize_for_serialization.side_effect = lambda value: {"serialized": value}
        core.read_namespaced_secret.return_value = "model"

        api = typed_resource_api(core, "Secret", "secret", namespaced=True)
        result = api.get(object_ref("tls", "ns"))

        assert isinstance(api, NamespacedResourceApi)
        core.read_namespaced_secret.assert_called_once_with(name="tls", namespace="ns")
        assert result == {"serialized": "model"}

    def test_typed_resource_api_approval(self):
        """Test that the approval subresource is wired for cluster kinds."""
        certificates = MagicMock()
        certificates.api_client.sanitize_for_serialization.side_effect = lambda value: value

        api = typed_resource_api(
            certificates,
            "CertificateSigningRequest",
            "certificate_signing_request",
            namespaced=False,
            with_status=True,
            with_approval=True,
        )
        body = {"metadata": {"name": "svc1"}}
        api.replace_approval(body)
        api.get_status(body)

        assert isinstance(api, ClusterResourceApi)
        certificates.replace_certificate_signing_request_approval.assert_called_once_with(name="svc1", body=body)
        certificates.read_certificate_signing_request_status.assert_called_once_with(name="svc1")

    def test_custom_resource_api_binds_group(self):
        """Test that custom object calls carry group, version and plural."""
        custom = MagicMock()
        api = custom_resource_api(custom, "Certificate", "certificate-helper.io", "v1", "certificates", namespaced=False)

        api.patch(object_ref("svc1"), {"metadata": {"finalizers": None}})

        custom.patch_cluster_custom_object.assert_called_once_with(
            group="certificate-helper.io",
            version="v1",
            plural="certificates",
            name="svc1",
            body={"metadata": {"finalizers": None}},
        )

    def test_typed_patch_is_merge_patch(self):
        """Test that typed patches are sent as JSON merge patches."""
        core = MagicMock()
        api = typed_resource_api(core, "Secret", "secret", namespaced=True)

        api.patch(secret(), {"metadata": {"ownerReferences": []}})

        core.patch_namespaced_secret.assert_called_once_with(
            name="svc1",
            namespace="ns",
            body={"metadata": {"ownerReferences": []}},
            _content_type="application/merge-patch+json",
        )


class TestTypedClientRequest:
    """Test cases for the request a real typed client builds."""

    def test_apply_owner_sends_merge_patch_content_type(self):
        """Test that ApplyOwner on a typed kind reaches the API server as a merge patch."""
        core = client.CoreV1Api(client.ApiClient())
        core.api_client.call_api = MagicMock(side_effect=ApiException(status=418, reason="Teapot"))
        owner = owner_reference(make_certificate())

        with pytest.raises(ApiException):
            perform_operation(
                typed_resource_api(core, "Secret", "secret", namespaced=True), Operation.apply_owner(owner), secret()
            )

        call = core.api_client.call_api.call_args
        values = list(call.args) + list(call.kwargs.values())
        headers = [value for value in values if isinstance(value, dict) and "Content-Type" in value]
        assert "PATCH" in values
        assert headers
        assert headers[0]["Content-Type"] == "application/merge-patch+json"
