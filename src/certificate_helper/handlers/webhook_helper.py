"""Handler for WebhookHelper CRD."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_WEBHOOK_HELPER
from ..controller import WebhookHelperController
from ..tracing import trace_span
from .base import BaseHandler


class WebhookHelperHandler(BaseHandler):
    """Handler for WebhookHelper resources."""

    def __init__(self):
        super().__init__(KIND_WEBHOOK_HELPER)

    def reconcile(self, body: dict[str, Any], controller: WebhookHelperController, action: str) -> None:
        name = body["metadata"]["name"]
        with trace_span("reconcile_webhook_helper", kind=KIND_WEBHOOK_HELPER, attributes={"webhook_helper.name": name}):
            self.handle(body, controller, action)


# Global handler instance
_handler = WebhookHelperHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_WEBHOOK_HELPER)
@kopf.on.resume(API_GROUP_VERSION, KIND_WEBHOOK_HELPER)
def handle_webhook_helper(body: kopf.Body, memo: kopf.Memo, **kwargs: Any) -> None:
    """Handle WebhookHelper resource reconciliation."""
    _handler.reconcile(dict(body), memo.webhook_helper_controller, "reconcile")


@kopf.on.delete(API_GROUP_VERSION, KIND_WEBHOOK_HELPER, optional=True)
def handle_webhook_helper_delete(body: kopf.Body, memo: kopf.Memo, **kwargs: Any) -> None:
    """Handle WebhookHelper resource deletion."""
    _handler.reconcile(dict(body), memo.webhook_helper_controller, "delete")
