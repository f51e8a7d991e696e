"""Validating admission endpoint for Certificate resources."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Request, Response

from . import metrics
from .exceptions import SerializationError
from .models import CertificateSpec

logger = logging.getLogger(__name__)

VALIDATE_PATH = "/validate"
INVALID_REQUEST_FORMAT = "invalid request format"


def review_response(uid: str, allowed: bool, message: str | None = None) -> dict[str, Any]:
    """Wrap an admission response in an AdmissionReview."""
    response: dict[str, Any] = {"uid": uid, "allowed": allowed}
    if message is not None:
        response["status"] = {"code": 200 if allowed else 400, "message": message}
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "response": response,
    }


def is_valid_certificate(obj: Any) -> bool:
    """Check that ``obj`` is a well-formed Certificate."""
    if not isinstance(obj, dict) or not isinstance(obj.get("metadata"), dict):
        return False
    try:
        CertificateSpec.from_dict(obj.get("spec"))
    except SerializationError:
        return False
    return True


def validate_review(review: Any) -> dict[str, Any]:
    """Answer an AdmissionReview.

    Reviews without an object are allowed; objects that are not well-formed
    Certificates are denied. Malformed envelopes get a not-allowed answer.
    """
    request = review.get("request") if isinstance(review, dict) else None
    if not isinstance(request, dict) or not isinstance(request.get("uid"), str):
        return review_response("", False, "AdmissionReview has no request")

    uid = request["uid"]
    obj = request.get("object")
    if obj is None:
        return review_response(uid, True)

    if not is_valid_certificate(obj):
        return review_response(uid, False, INVALID_REQUEST_FORMAT)

    logger.info("Certificate helper validated")
    return review_response(uid, True)


class AdmissionApp:
    """WSGI application serving ``POST /validate``."""

    def dispatch(self, request: Request) -> Response:
        if request.path != VALIDATE_PATH:
            raise NotFound()
        if request.method != "POST":
            raise MethodNotAllowed(valid_methods=["POST"])

        try:
            review = json.loads(request.get_data(as_text=True))
        except ValueError:
            review = None

        result = validate_review(review)
        allowed = result["response"]["allowed"]
        metrics.admission_reviews_total.labels(allowed=str(allowed).lower()).inc()
        return Response(json.dumps(result), mimetype="application/json", status=200)

    def __call__(self, environ: dict[str, Any], start_response: Any) -> Any:
        request = Request(environ)
        try:
            response = self.dispatch(request)
        except HTTPException as e:
            return e(environ, start_response)
        return response(environ, start_response)


def start_admission_server(port: int, cert_file: str, key_file: str) -> BaseWSGIServer:
    """Serve the admission endpoint over HTTPS from a background thread."""
    server = make_server("0.0.0.0", port, AdmissionApp(), threaded=True, ssl_context=(cert_file, key_file))
    thread = threading.Thread(target=server.serve_forever, name="admission", daemon=True)
    thread.start()
    logger.info(f"Admission endpoint listening on port {port}")
    return server
