"""Error taxonomy for the Certificate Helper Operator.

Cluster API failures are not wrapped: they surface as
``kubernetes.client.exceptions.ApiException`` so callers can inspect the
HTTP status directly.
"""

from __future__ import annotations


class CertificateHelperError(Exception):
    """Base class for all operator errors."""


class SerializationError(CertificateHelperError):
    """A manifest or object could not be (de)serialized."""


class CertificateGenerationError(CertificateHelperError):
    """The keypair or signing request could not be built."""


class UnknownOperationError(CertificateHelperError):
    """An unsupported operation was requested."""

    def __init__(self, label: str):
        super().__init__(f"Unknown operation: {label}")
        self.label = label


class PreconditionError(CertificateHelperError):
    """A workflow was started without a required input."""


class ConfigurationError(CertificateHelperError):
    """The cluster is missing configuration the operator depends on."""


class StageClassificationError(CertificateHelperError):
    """The last recorded condition does not name a known stage."""

    def __init__(self, condition_type: str):
        super().__init__(f"Unable to determine condition type: {condition_type}")
        self.condition_type = condition_type


class UnknownWebhookTypeError(CertificateHelperError):
    """A webhook manifest is neither a mutating nor a validating configuration."""

    def __init__(self, message: str = "Unable to determine webhook type"):
        super().__init__(message)


class ApprovalTimeoutError(CertificateHelperError):
    """A signing request was not signed before the approval deadline."""


class ApprovalCancelledError(CertificateHelperError):
    """Waiting for a signing request was interrupted by shutdown."""
