"""Tests for the stage tracker."""

from __future__ import annotations

import pytest

from certificate_helper.exceptions import StageClassificationError
from certificate_helper.status import (
    CertificateCreated,
    Creating,
    CreationFailed,
    Deleting,
    ServiceCreated,
    WebhookCreated,
    determine_stage,
    update_status,
)

from conftest import make_certificate, make_webhook_helper


def condition(condition_type: str, message: str = "m") -> dict:
    return {"type": condition_type, "message": message, "status": "True", "lastTransitionTime": "t"}


class TestDetermineStage:
    """Test cases for determine_stage."""

    def test_no_conditions_is_creating(self, cluster):
        """Test that an empty log classifies as Creating."""
        body = cluster.certificates.add(make_certificate())

        assert determine_stage(cluster.context.certificates, body) == Creating()

    def test_certificate_created_reads_status(self, cluster):
        """Test that CertificateCreated carries status.certificate."""
        body = cluster.certificates.add(make_certificate(status={
            "certificate": "svc1",
            "conditions": [condition("Creating"), condition("CertificateCreated")],
        }))

        assert determine_stage(cluster.context.certificates, body) == CertificateCreated("svc1")

    def test_only_last_condition_counts(self, cluster):
        """Test that earlier entries are ignored."""
        body = cluster.certificates.add(make_certificate(status={
            "certificate": "svc1",
            "conditions": [condition("CertificateCreated"), condition("Deleting")],
        }))

        assert determine_stage(cluster.context.certificates, body) == Deleting()

    def test_creation_failed_carries_message(self, cluster):
        """Test that CreationFailed carries the recorded reason."""
        body = cluster.certificates.add(make_certificate(status={
            "conditions": [condition("CreationFailed", "approval timed out")],
        }))

        assert determine_stage(cluster.context.certificates, body) == CreationFailed("approval timed out")

    def test_unknown_condition_is_error(self, cluster):
        """Test that an unknown last type raises instead of defaulting to Creating."""
        body = cluster.certificates.add(make_certificate(status={
            "conditions": [condition("Creating"), condition("Frobnicated")],
        }))

        with pytest.raises(StageClassificationError):
            determine_stage(cluster.context.certificates, body)

    def test_webhook_stages(self, cluster):
        """Test the webhook-only stages."""
        body = cluster.webhook_helpers.add(make_webhook_helper(status={
            "service_ref": {"name": "demo", "namespace": "ns"},
            "conditions": [condition("ServiceCreated")],
        }))
        assert determine_stage(cluster.context.webhook_helpers, body) == ServiceCreated("demo", "ns")

        cluster.webhook_helpers.stored("demo", "ns")["status"] = {
            "validating_webhook_ref": {"name": "demo-webhook"},
            "conditions": [condition("ServiceCreated"), condition("WebhookCreated")],
        }
        assert determine_stage(cluster.context.webhook_helpers, body) == WebhookCreated(
            "ValidatingWebhookConfiguration", "demo-webhook"
        )


class TestUpdateStatus:
    """Test cases for update_status."""

    def test_appends_exactly_one_condition(self, cluster):
        """Test that prior entries are preserved in order."""
        prior = [condition("Creating", "first"), condition("Creating", "second")]
        body = cluster.certificates.add(make_certificate(status={"conditions": list(prior)}))

        update_status(cluster.context.certificates, body, Creating())

        conditions = cluster.certificates.stored("svc1")["status"]["conditions"]
        assert conditions[:2] == prior
        assert len(conditions) == 3
        assert conditions[2]["type"] == "Creating"
        assert conditions[2]["message"] == "Creating resource"
        assert conditions[2]["status"] == "True"

    def test_certificate_created_records_fields(self, cluster):
        """Test that CertificateCreated records certificate, service and alt names."""
        body = cluster.certificates.add(make_certificate(alt_names=["svc1.ns.svc"]))

        update_status(cluster.context.certificates, body, CertificateCreated("svc1"))

        status = cluster.certificates.stored("svc1")["status"]
        assert status["certificate"] == "svc1"
        assert status["service"] == "svc1"
        assert status["alt_names"] == ["svc1.ns.svc"]
        assert status["conditions"][-1]["message"] == "Certificate svc1 Created"

    def test_creation_failed_status_is_false(self, cluster):
        """Test that only CreationFailed records status False."""
        body = cluster.certificates.add(make_certificate())

        update_status(cluster.context.certificates, body, CreationFailed("boom"))

        last = cluster.certificates.stored("svc1")["status"]["conditions"][-1]
        assert last["type"] == "CreationFailed"
        assert last["status"] == "False"
        assert "boom" in last["message"]

    def test_without_repeat_skips_identical_condition(self, cluster):
        """Test that the same stage and message is not appended twice."""
        body = cluster.certificates.add(make_certificate())
        api = cluster.context.certificates

        update_status(api, body, CreationFailed("boom"), repeat=False)
        update_status(api, body, CreationFailed("boom"), repeat=False)
        update_status(api, body, CreationFailed("other"), repeat=False)

        conditions = cluster.certificates.stored("svc1")["status"]["conditions"]
        assert [c["message"] for c in conditions] == [
            "Certificate creation failed: boom",
            "Certificate creation failed: other",
        ]
        assert cluster.certificates.verbs().count("replace_status") == 2

    def test_repeat_appends_identical_condition(self, cluster):
        """Test that by default every update appends a condition."""
        body = cluster.certificates.add(make_certificate())

        update_status(cluster.context.certificates, body, Creating())
        update_status(cluster.context.certificates, body, Creating())

        assert len(cluster.certificates.stored("svc1")["status"]["conditions"]) == 2

    def test_uses_status_subresource(self, cluster):
        """Test that the status is read fresh and written with a full replace."""
        body = cluster.certificates.add(make_certificate())

        update_status(cluster.context.certificates, body, Deleting())

        assert cluster.certificates.verbs() == ["read_status", "replace_status"]

    def test_webhook_created_records_ref(self, cluster):
        """Test that WebhookCreated records the variant's reference."""
        body = cluster.webhook_helpers.add(make_webhook_helper())

        update_status(
            cluster.context.webhook_helpers, body, WebhookCreated("MutatingWebhookConfiguration", "hook")
        )

        status = cluster.webhook_helpers.stored("demo", "ns")["status"]
        assert status["mutating_webhook_ref"] == {"name": "hook"}
        assert "validating_webhook_ref" not in status
