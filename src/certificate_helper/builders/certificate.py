"""Builders for keypairs, signing requests and TLS secrets."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from ..constants import (
    CSR_EXPIRATION_SECONDS,
    CSR_SIGNER_NAME,
    CSR_SUBJECT_CN_PREFIX,
    CSR_SUBJECT_ORGANIZATION,
    CSR_USAGES,
    SECRET_KEY_TLS_CRT,
    SECRET_KEY_TLS_KEY,
    SECRET_TYPE_TLS,
)
from ..exceptions import CertificateGenerationError
from ..models import CertificateSpec


@dataclass(frozen=True)
class KeyMaterial:
    """PEM encoded private key and signing request."""

    private_key_pem: bytes
    csr_pem: bytes


def subject_alt_names(spec: CertificateSpec) -> list[str]:
    """DNS names requested for ``spec``: the service first, then the extra names."""
    return [spec.service.lower(), *spec.alt_names]


def generate_key_material(spec: CertificateSpec) -> KeyMaterial:
    """Generate an ECDSA P-256 keypair and a signing request for ``spec``.

    The request carries no validity window; the signer sets it.

    Raises:
        CertificateGenerationError: If the key or request cannot be built
    """
    try:
        private_key = ec.generate_private_key(ec.SECP256R1())

        subject = x509.Name([
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, CSR_SUBJECT_ORGANIZATION),
            x509.NameAttribute(NameOID.COMMON_NAME, f"{CSR_SUBJECT_CN_PREFIX}{spec.service.lower()}"),
        ])
        sans = x509.SubjectAlternativeName([x509.DNSName(name) for name in subject_alt_names(spec)])

        csr = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(subject)
            .add_extension(sans, critical=False)
            .sign(private_key, hashes.SHA256())
        )

        return KeyMaterial(
            private_key_pem=private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.TraditionalOpenSSL,
                encryption_algorithm=serialization.NoEncryption(),
            ),
            csr_pem=csr.public_bytes(serialization.Encoding.PEM),
        )
    except (ValueError, TypeError) as e:
        raise CertificateGenerationError(f"Failed to generate signing request: {e}") from e


def build_signing_request(name: str, csr_pem: bytes) -> dict[str, Any]:
    """Build a CertificateSigningRequest for the kubelet-serving signer."""
    return {
        "apiVersion": "certificates.k8s.io/v1",
        "kind": "CertificateSigningRequest",
        "metadata": {"name": name},
        "spec": {
            "request": base64.b64encode(csr_pem).decode("utf-8"),
            "signerName": CSR_SIGNER_NAME,
            "usages": list(CSR_USAGES),
            "expirationSeconds": CSR_EXPIRATION_SECONDS,
        },
    }


def build_tls_secret(name: str, namespace: str, private_key_pem: bytes, certificate: str) -> dict[str, Any]:
    """Build a TLS secret.

    Args:
        name: Secret name
        namespace: Secret namespace
        private_key_pem: PEM private key
        certificate: Signed certificate, base64 encoded as in the CSR status
    """
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace},
        "type": SECRET_TYPE_TLS,
        "data": {
            SECRET_KEY_TLS_KEY: base64.b64encode(private_key_pem).decode("utf-8"),
            SECRET_KEY_TLS_CRT: certificate,
        },
    }
