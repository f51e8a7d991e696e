"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class OperatorConfig:
    """Operator tunables.

    Environment Variables:
        CSR_APPROVAL_POLL_INTERVAL: Seconds between CSR status polls (default: 5)
        CSR_APPROVAL_TIMEOUT: Seconds to wait for a signed certificate (default: 300)
        CLUSTER_CA_NAMESPACE: Namespace holding kube-root-ca.crt (default: default)
        ADMISSION_PORT: Port of the admission endpoint (default: 9443)
        ADMISSION_TLS_CERT: Certificate served by the admission endpoint
        ADMISSION_TLS_KEY: Private key served by the admission endpoint
        METRICS_PORT: Port of the metrics and health server (default: 8080)
        WORKER_LIMIT: Maximum concurrent reconciliations (default: 2)
        OPERATOR_IMAGE: Image used by the bootstrap Deployment
        K8S_RATE_LIMIT_PER_SECOND: Kubernetes API calls allowed per second (default: 10)
    """

    csr_approval_poll_interval: float = 5.0
    csr_approval_timeout: float = 300.0
    cluster_ca_namespace: str = "default"
    admission_port: int = 9443
    admission_tls_cert: str = "/webhook-helper/tls.crt"
    admission_tls_key: str = "/webhook-helper/tls.key"
    metrics_port: int = 8080
    worker_limit: int = 2
    operator_image: str = "rc1405/webhook-helper:latest"
    k8s_rate_limit_per_second: float = 10.0

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build a configuration from environment variables."""
        return cls(
            csr_approval_poll_interval=float(os.getenv("CSR_APPROVAL_POLL_INTERVAL", "5")),
            csr_approval_timeout=float(os.getenv("CSR_APPROVAL_TIMEOUT", "300")),
            cluster_ca_namespace=os.getenv("CLUSTER_CA_NAMESPACE", "default"),
            admission_port=int(os.getenv("ADMISSION_PORT", "9443")),
            admission_tls_cert=os.getenv("ADMISSION_TLS_CERT", "/webhook-helper/tls.crt"),
            admission_tls_key=os.getenv("ADMISSION_TLS_KEY", "/webhook-helper/tls.key"),
            metrics_port=int(os.getenv("METRICS_PORT", "8080")),
            worker_limit=int(os.getenv("WORKER_LIMIT", "2")),
            operator_image=os.getenv("OPERATOR_IMAGE", "rc1405/webhook-helper:latest"),
            k8s_rate_limit_per_second=float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0")),
        )
