"""Reconciliation of Certificate and WebhookHelper resources.

The controllers here are independent of kopf: ``reconcile`` and
``error_policy`` return an ``Action`` telling the runtime when to look at the
object again. ``handlers`` translates those actions into kopf retries.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from kubernetes.client.exceptions import ApiException

from .clients import ClusterContext
from .constants import (
    CONTROLLER_NAME,
    FINALIZER,
    KIND_CERTIFICATE,
    KIND_WEBHOOK_HELPER,
    REQUEUE_AFTER_CREATE,
    REQUEUE_ERROR_POLICY,
    REQUEUE_FETCH_API_ERROR,
    REQUEUE_FETCH_ERROR,
)
from .logging import log_resource_event
from .resources import Operation, ResourceApi, object_ref, perform_operation
from .services.certificate import CertificateIssuer
from .services.webhook import WebhookManager
from .status import (
    MUTATING_WEBHOOK_KIND,
    VALIDATING_WEBHOOK_KIND,
    CertificateCreated,
    Creating,
    CreationFailed,
    Deleting,
    ServiceCreated,
    determine_stage,
    update_status,
)
from .utils.errors import sanitize_exception, summarize_exception
from .utils.events import (
    emit_certificate_deleted,
    emit_certificate_issued,
    emit_webhook_created,
    emit_webhook_deleted,
)


class CustomAction(enum.Enum):
    """What a reconciliation has to do with an object."""

    CREATE = "create"
    DELETE = "delete"
    UPDATE = "update"
    NOOP = "noop"


@dataclass(frozen=True)
class Action:
    """When to reconcile an object again; None waits for the next change."""

    requeue_after: float | None = None

    @classmethod
    def requeue(cls, seconds: float) -> Action:
        return cls(requeue_after=seconds)

    @classmethod
    def await_change(cls) -> Action:
        return cls()


def has_finalizer(meta: dict[str, Any]) -> bool:
    return any(f.startswith(FINALIZER) for f in meta.get("finalizers") or [])


def determine_action(meta: dict[str, Any]) -> CustomAction:
    """Classify the action required by an object's metadata."""
    if meta.get("deletionTimestamp"):
        return CustomAction.DELETE if has_finalizer(meta) else CustomAction.NOOP
    return CustomAction.UPDATE if has_finalizer(meta) else CustomAction.CREATE


class ResourceController(ABC):
    """Fetch, classify and dispatch, shared by both resource kinds."""

    def __init__(self, kind: str, api: ResourceApi):
        self.kind = kind
        self.api = api
        self.logger = logging.getLogger(__name__)

    def log(
        self,
        meta: dict[str, Any],
        message: str,
        reason: str = "Info",
        level: int = logging.INFO,
        **kwargs: Any,
    ) -> None:
        log_resource_event(
            self.logger,
            resource_kind=self.kind,
            resource_name=meta.get("name", "unknown"),
            namespace=meta.get("namespace", ""),
            uid=meta.get("uid", "unknown"),
            event="reconcile",
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def fetch(self, body: dict[str, Any]) -> dict[str, Any] | None:
        """Read the current object; None if it no longer exists."""
        meta = body["metadata"]
        try:
            return perform_operation(self.api, Operation.get(), object_ref(meta["name"], meta.get("namespace")))
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def reconcile(self, body: dict[str, Any]) -> Action:
        meta = body["metadata"]
        try:
            current = self.fetch(body)
        except ApiException as e:
            self.log(meta, f"Error getting item: {sanitize_exception(e)}", reason="FetchFailed", level=logging.ERROR)
            return Action.requeue(REQUEUE_FETCH_API_ERROR)
        except Exception as e:
            self.log(meta, f"Error getting item: {sanitize_exception(e)}", reason="FetchFailed", level=logging.ERROR)
            return Action.requeue(REQUEUE_FETCH_ERROR)

        if current is None:
            self.log(meta, "Object no longer exists", reason="NotFound")
            return Action.await_change()

        action = determine_action(current["metadata"])
        if action is CustomAction.CREATE:
            return self.create(current)
        if action is CustomAction.DELETE:
            return self.delete(current)
        if action is CustomAction.UPDATE:
            return self.update(current)
        return Action.await_change()

    @abstractmethod
    def create(self, body: dict[str, Any]) -> Action:
        """Handle an object without the finalizer."""

    @abstractmethod
    def delete(self, body: dict[str, Any]) -> Action:
        """Handle an object being deleted while the finalizer is present."""

    @abstractmethod
    def update(self, body: dict[str, Any]) -> Action:
        """Handle an object carrying the finalizer."""

    def add_finalizer(self, body: dict[str, Any]) -> None:
        self.api.patch(body, {"metadata": {"finalizers": [FINALIZER]}})

    def clear_finalizers(self, body: dict[str, Any]) -> None:
        self.api.patch(body, {"metadata": {"finalizers": None}})

    def error_policy(self, body: dict[str, Any], error: Exception) -> Action:
        """Log a failed reconciliation and retry after a fixed delay."""
        self.log(
            body.get("metadata") or {},
            f"{CONTROLLER_NAME} received error: {sanitize_exception(error)}",
            reason="ReconcileFailed",
            level=logging.ERROR,
            error_type=type(error).__name__,
        )
        return Action.requeue(REQUEUE_ERROR_POLICY)


class CertificateController(ResourceController):
    """Drives Certificate resources through issuance and teardown."""

    def __init__(self, context: ClusterContext, issuer: CertificateIssuer | None = None):
        super().__init__(KIND_CERTIFICATE, context.certificates)
        self.context = context
        self.issuer = issuer or CertificateIssuer(context)

    def create(self, body: dict[str, Any]) -> Action:
        meta = body["metadata"]
        self.log(meta, f"Creating certificate {meta['name']}", reason="Creating")
        try:
            name = self.issuer.issue(body)
        except Exception as e:
            self._record_failure(body, e)
            raise

        emit_certificate_issued(body, name, body["spec"]["namespace"])
        self.add_finalizer(body)
        return Action.requeue(REQUEUE_AFTER_CREATE)

    def delete(self, body: dict[str, Any]) -> Action:
        meta = body["metadata"]
        self.log(meta, f"Deleting certificate {meta['name']}", reason="Deleting")
        if self.issuer.teardown(body):
            emit_certificate_deleted(body, body["status"]["certificate"], body["spec"]["namespace"])
        self.clear_finalizers(body)
        return Action.await_change()

    def update(self, body: dict[str, Any]) -> Action:
        meta = body["metadata"]
        stage = determine_stage(self.api, body)
        if isinstance(stage, CertificateCreated):
            self.log(meta, f"Certificate created {meta['name']}: {stage.certificate}", reason="CertificateCreated")
            return Action.await_change()
        if isinstance(stage, CreationFailed):
            self.log(meta, f"Creation failed for {meta['name']}", reason="CreationFailed")
            return Action.await_change()
        if isinstance(stage, Creating):
            self.log(meta, "Helper status found", reason="Creating")
        return Action.requeue(REQUEUE_AFTER_CREATE)

    def _record_failure(self, body: dict[str, Any], error: Exception) -> None:
        try:
            update_status(self.api, body, CreationFailed(summarize_exception(error)), repeat=False)
        except Exception as e:
            self.log(
                body["metadata"],
                f"Failed to record creation failure: {sanitize_exception(e)}",
                reason="StatusUpdateFailed",
                level=logging.WARNING,
            )


class WebhookHelperController(ResourceController):
    """Finishes webhook creation for WebhookHelpers and removes their webhooks on delete."""

    def __init__(self, context: ClusterContext, manager: WebhookManager | None = None):
        super().__init__(KIND_WEBHOOK_HELPER, context.webhook_helpers)
        self.context = context
        self.manager = manager or WebhookManager(context)

    def create(self, body: dict[str, Any]) -> Action:
        self._resume(body)
        self.add_finalizer(body)
        return Action.await_change()

    def delete(self, body: dict[str, Any]) -> Action:
        meta = body["metadata"]
        self.log(meta, f"Deleting webhook helper {meta['name']}", reason="Deleting")
        status = body.get("status") or {}
        if self.manager.delete(body):
            if status.get("validating_webhook_ref"):
                kind, ref = VALIDATING_WEBHOOK_KIND, status["validating_webhook_ref"]
            else:
                kind, ref = MUTATING_WEBHOOK_KIND, status["mutating_webhook_ref"]
            emit_webhook_deleted(body, kind, ref.get("name", ""))
        self.clear_finalizers(body)
        return Action.await_change()

    def update(self, body: dict[str, Any]) -> Action:
        stage = determine_stage(self.api, body)
        if isinstance(stage, ServiceCreated):
            self._resume(body)
        elif isinstance(stage, (Creating, Deleting)):
            return Action.requeue(REQUEUE_AFTER_CREATE)
        return Action.await_change()

    def _resume(self, body: dict[str, Any]) -> None:
        webhook = self.manager.resume(body)
        if webhook is not None:
            emit_webhook_created(body, webhook.get("kind", ""), webhook["metadata"]["name"])
