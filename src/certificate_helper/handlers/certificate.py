"""Handler for Certificate CRD."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP_VERSION, KIND_CERTIFICATE
from ..controller import CertificateController
from ..tracing import trace_span
from .base import BaseHandler


class CertificateHandler(BaseHandler):
    """Handler for Certificate resources."""

    def __init__(self):
        super().__init__(KIND_CERTIFICATE)

    def reconcile(self, body: dict[str, Any], controller: CertificateController, action: str) -> None:
        name = body["metadata"]["name"]
        with trace_span("reconcile_certificate", kind=KIND_CERTIFICATE, attributes={"certificate.name": name}):
            self.handle(body, controller, action)


# Global handler instance
_handler = CertificateHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_CERTIFICATE)
@kopf.on.update(API_GROUP_VERSION, KIND_CERTIFICATE)
@kopf.on.resume(API_GROUP_VERSION, KIND_CERTIFICATE)
def handle_certificate(body: kopf.Body, memo: kopf.Memo, **kwargs: Any) -> None:
    """Handle Certificate resource reconciliation."""
    _handler.reconcile(dict(body), memo.certificate_controller, "reconcile")


@kopf.on.delete(API_GROUP_VERSION, KIND_CERTIFICATE, optional=True)
def handle_certificate_delete(body: kopf.Body, memo: kopf.Memo, **kwargs: Any) -> None:
    """Handle Certificate resource deletion."""
    _handler.reconcile(dict(body), memo.certificate_controller, "delete")
