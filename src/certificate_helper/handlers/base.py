"""Base handler class bridging controllers to the kopf runtime."""

from __future__ import annotations

import logging
import time
from typing import Any

import kopf

from .. import metrics
from ..controller import Action, ResourceController
from ..logging import log_resource_event
from ..utils.errors import sanitize_exception
from ..utils.events import emit_reconcile_failed, emit_reconcile_started


class BaseHandler:
    """Base class for all CRD handlers with common functionality."""

    def __init__(self, kind: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "Certificate", "WebhookHelper")
        """
        self.kind = kind
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, meta: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", ""),
            "uid": meta.get("uid", "unknown"),
        }

    def log_info(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message."""
        ctx = self._get_resource_context(meta)
        log_resource_event(
            self.logger,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            **kwargs,
        )

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        ctx = self._get_resource_context(meta)
        log_data = kwargs.copy()

        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__

        log_resource_event(
            self.logger,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=logging.ERROR,
            **log_data,
        )

    def reconcile_with_metrics(
        self,
        body: dict[str, Any],
        controller: ResourceController,
        action: str,
    ) -> Action:
        """Run one reconciliation with metrics, events and the controller's error policy.

        Args:
            body: Resource being reconciled
            controller: Controller of the resource kind
            action: Label of the kopf cause, e.g. "reconcile" or "delete"

        Returns:
            What the runtime should do next
        """
        meta = body.get("metadata") or {}
        emit_reconcile_started(body)
        metrics.reconcile_total.labels(kind=self.kind, action=action, result="started").inc()

        start_time = time.time()
        try:
            result = controller.reconcile(body)
            metrics.reconcile_total.labels(kind=self.kind, action=action, result="success").inc()
            return result
        except Exception as e:
            metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
            metrics.reconcile_total.labels(kind=self.kind, action=action, result="error").inc()
            self.log_error(meta, "Reconciliation failed", error=e, reason="ReconciliationFailed")
            emit_reconcile_failed(body, f"Reconciliation failed: {sanitize_exception(e)}")
            return controller.error_policy(body, e)
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)

    def apply_action(self, meta: dict[str, Any], action: Action) -> None:
        """Translate an Action into kopf's retry protocol.

        Raises:
            kopf.TemporaryError: If the object must be reconciled again later
        """
        if action.requeue_after is None:
            return
        self.log_info(meta, f"Requeue after {action.requeue_after}s", event="requeue", reason="Requeue")
        raise kopf.TemporaryError(f"Requeue {self.kind} {meta.get('name')}", delay=action.requeue_after)

    def handle(self, body: dict[str, Any], controller: ResourceController, action: str = "reconcile") -> None:
        meta = body.get("metadata") or {}
        self.apply_action(meta, self.reconcile_with_metrics(body, controller, action))
