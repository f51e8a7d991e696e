"""Certificate issuance through the cluster's CertificateSigningRequest API."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from kubernetes.client.exceptions import ApiException

from .. import metrics
from ..builders.certificate import build_signing_request, build_tls_secret, generate_key_material
from ..clients import ClusterContext
from ..constants import CSR_APPROVAL_MESSAGE, CSR_APPROVAL_REASON, KIND_CERTIFICATE
from ..exceptions import ApprovalCancelledError, ApprovalTimeoutError
from ..models import CertificateSpec
from ..resources import Operation, ResourceApi, object_ref, owner_reference, perform_operation
from ..status import CertificateCreated, update_status
from ..tracing import trace_span
from ..utils.errors import sanitize_exception

logger = logging.getLogger(__name__)


class CertificateIssuer:
    """Runs the issuance and teardown workflows of a Certificate.

    Issuance walks through keypair generation, CSR submission, approval,
    waiting for the signer, storing the result in a TLS secret and removing
    the CSR. Errors are not retried here; they propagate to the controller.
    """

    def __init__(self, context: ClusterContext):
        self.context = context

    def issue(self, body: dict[str, Any]) -> str:
        """Issue a certificate for ``body`` and store it in a secret.

        Args:
            body: Certificate resource

        Returns:
            Name shared by the CSR and the secret

        Raises:
            SerializationError: If the Certificate spec is malformed
            CertificateGenerationError: If the keypair or CSR cannot be built
            ApprovalTimeoutError: If the CSR is not signed in time
            ApprovalCancelledError: If the operator shuts down while waiting
            ApiException: If a cluster API call fails
        """
        spec = CertificateSpec.from_dict(body.get("spec"))
        name = body["metadata"]["name"].lower()
        csrs = self.context.csrs
        secrets = self.context.secrets

        with trace_span("issue_certificate", kind=KIND_CERTIFICATE, attributes={"certificate.name": name}):
            csr = secret = None
            try:
                material = generate_key_material(spec)

                csr = perform_operation(csrs, Operation.create(), build_signing_request(name, material.csr_pem))
                logger.info(f"Submitted CertificateSigningRequest {name}")

                self._approve(csr)
                certificate = self._await_certificate(csr)

                secret = perform_operation(
                    secrets,
                    Operation.create(),
                    build_tls_secret(name, spec.namespace, material.private_key_pem, certificate),
                )
                logger.info(f"Created secret {spec.namespace}/{name}")

                perform_operation(csrs, Operation.delete(), csr)
                csr = None

                update_status(self.context.certificates, body, CertificateCreated(name))
                perform_operation(secrets, Operation.apply_owner(owner_reference(body)), secret)
            except Exception:
                # Remove only what this attempt created.
                if csr is not None:
                    self._discard(csrs, csr)
                if secret is not None:
                    self._discard(secrets, secret)
                metrics.certificate_operations_total.labels(operation="issue", result="failed").inc()
                raise

        metrics.certificate_operations_total.labels(operation="issue", result="success").inc()
        return name

    def teardown(self, body: dict[str, Any]) -> bool:
        """Delete the secret recorded in ``status.certificate``.

        Returns:
            True if a secret was deleted, False if none was recorded
        """
        certificate = (body.get("status") or {}).get("certificate")
        if not certificate:
            return False

        namespace = (body.get("spec") or {}).get("namespace")
        secrets = self.context.secrets

        with trace_span("teardown_certificate", kind=KIND_CERTIFICATE, attributes={"certificate.name": certificate}):
            try:
                secret = perform_operation(secrets, Operation.get(), object_ref(certificate, namespace))
                perform_operation(secrets, Operation.delete(), secret)
            except Exception:
                metrics.certificate_operations_total.labels(operation="delete", result="failed").inc()
                raise

        logger.info(f"Deleted secret {namespace}/{certificate}")
        metrics.certificate_operations_total.labels(operation="delete", result="success").inc()
        return True

    def _approve(self, csr: dict[str, Any]) -> None:
        """Append an Approved condition through the approval subresource."""
        status = dict(csr.get("status") or {})
        conditions = list(status.get("conditions") or [])
        conditions.append({
            "type": "Approved",
            "status": "True",
            "reason": CSR_APPROVAL_REASON,
            "message": CSR_APPROVAL_MESSAGE,
            "lastUpdateTime": datetime.now(timezone.utc).isoformat(),
        })
        status["conditions"] = conditions
        csr["status"] = status
        self.context.csrs.replace_approval(csr)

    def _await_certificate(self, csr: dict[str, Any]) -> str:
        """Poll the CSR until the signer has attached a certificate.

        The wait is bounded by ``csr_approval_timeout`` and ends early when the
        context's stop event is set.
        """
        config = self.context.config
        name = csr["metadata"]["name"]
        start_time = time.monotonic()
        deadline = start_time + config.csr_approval_timeout

        while True:
            current = self.context.csrs.get_status(csr)
            certificate = (current.get("status") or {}).get("certificate")
            if certificate:
                metrics.csr_approval_wait_seconds.observe(time.monotonic() - start_time)
                return certificate

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ApprovalTimeoutError(
                    f"CertificateSigningRequest {name} was not signed within {config.csr_approval_timeout}s"
                )

            logger.debug(f"Waiting for CertificateSigningRequest {name} to be signed")
            if self.context.stopped.wait(min(config.csr_approval_poll_interval, remaining)):
                raise ApprovalCancelledError(f"Stopped while waiting for CertificateSigningRequest {name}")

    def _discard(self, api: ResourceApi, obj: dict[str, Any]) -> None:
        """Delete a leftover of a failed issuance, logging instead of raising."""
        try:
            perform_operation(api, Operation.delete(), obj)
        except ApiException as e:
            logger.warning(f"Failed to delete {api.kind} {obj['metadata']['name']}: {sanitize_exception(e)}")
