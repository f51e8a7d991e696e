"""Main entry point for the Certificate Helper Operator."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Sequence

import kopf

from . import handlers  # noqa: F401
from . import logging as structured_logging
from .admission import start_admission_server
from .bootstrap import bootstrap
from .clients import ClusterContext
from .config import OperatorConfig
from .controller import CertificateController, WebhookHelperController
from .health import start_metrics_server
from .tracing import initialize_tracing
from .utils.errors import sanitize_exception
from .utils.rate_limit import set_rate_limit

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    initialize_tracing()

    operator_config = OperatorConfig.from_env()
    set_rate_limit(operator_config.k8s_rate_limit_per_second)
    context = ClusterContext.from_environment(operator_config)
    memo.context = context
    memo.certificate_controller = CertificateController(context)
    memo.webhook_helper_controller = WebhookHelperController(context)

    # Use annotations so status writes stay with the controllers
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.INFO
    settings.networking.request_timeout = 30.0

    # At most this many objects are reconciled at once, each one serially
    settings.batching.worker_limit = operator_config.worker_limit
    settings.execution.max_workers = operator_config.worker_limit

    memo.metrics_server = start_metrics_server(operator_config.metrics_port)

    port = memo.get("admission_port") or operator_config.admission_port
    cert_file = operator_config.admission_tls_cert
    key_file = operator_config.admission_tls_key
    if os.path.exists(cert_file) and os.path.exists(key_file):
        memo.admission_server = start_admission_server(port, cert_file, key_file)
    else:
        logger.warning(f"Admission endpoint disabled: {cert_file} or {key_file} not found")


@kopf.on.cleanup()
def shutdown(memo: kopf.Memo, **_: Any) -> None:
    """Stop pending approval waits and background servers."""
    context = memo.get("context")
    if context is not None:
        context.stopped.set()

    for key in ("admission_server", "metrics_server"):
        server = memo.get(key)
        if server is not None:
            server.shutdown()


def run(port: int | None) -> None:
    """Run the operator and the admission endpoint until a shutdown signal."""
    kopf.run(clusterwide=True, memo=kopf.Memo(admission_port=port))


def run_bootstrap(namespace: str) -> int:
    """Install the operator's admission webhook into ``namespace``."""
    structured_logging.setup_structured_logging()
    operator_config = OperatorConfig.from_env()
    set_rate_limit(operator_config.k8s_rate_limit_per_second)
    context = ClusterContext.from_environment(operator_config)
    try:
        webhook = bootstrap(context, namespace)
    except Exception as e:
        logger.error(f"Bootstrap failed: {sanitize_exception(e)}")
        return 1
    logger.info(f"Bootstrapped {webhook['kind']} {webhook['metadata']['name']} in {namespace}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certificate-helper",
        description="Issue in-cluster TLS certificates and manage admission webhooks.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the operator and its admission endpoint")
    run_parser.add_argument("-p", "--port", type=int, default=None, help="Admission endpoint port")

    bootstrap_parser = subparsers.add_parser("bootstrap", help="Install the admission webhook")
    bootstrap_parser.add_argument("-n", "--namespace", required=True, help="Target namespace")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "bootstrap":
        return run_bootstrap(args.namespace)
    run(args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
