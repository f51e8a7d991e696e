"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CERTIFICATE_DELETED,
    EVENT_REASON_CERTIFICATE_ISSUED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_WEBHOOK_CREATED,
    EVENT_REASON_WEBHOOK_DELETED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource the event is attached to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_certificate_issued(body: dict[str, Any], secret_name: str, namespace: str) -> None:
    """Emit certificate issued event."""
    emit_event(
        body,
        EVENT_REASON_CERTIFICATE_ISSUED,
        f"Certificate stored in secret {namespace}/{secret_name}",
    )


def emit_certificate_deleted(body: dict[str, Any], secret_name: str, namespace: str) -> None:
    """Emit certificate deleted event."""
    emit_event(body, EVENT_REASON_CERTIFICATE_DELETED, f"Secret {namespace}/{secret_name} deleted")


def emit_webhook_created(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit webhook configuration created event."""
    emit_event(body, EVENT_REASON_WEBHOOK_CREATED, f"{kind} {name} created")


def emit_webhook_deleted(body: dict[str, Any], kind: str, name: str) -> None:
    """Emit webhook configuration deleted event."""
    emit_event(body, EVENT_REASON_WEBHOOK_DELETED, f"{kind} {name} deleted")
