"""Constants for the Certificate Helper Operator."""

# API Group
API_GROUP = "certificate-helper.io"
API_VERSION = "v1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_CERTIFICATE = "Certificate"
KIND_WEBHOOK_HELPER = "WebhookHelper"

PLURAL_CERTIFICATE = "certificates"
PLURAL_WEBHOOK_HELPER = "webhookhelpers"

# Finalizers
FINALIZER = API_GROUP

# Controller name used in structured logs and field management
CONTROLLER_NAME = "certificate-helper"

# Certificate signing
CSR_SIGNER_NAME = "kubernetes.io/kubelet-serving"
CSR_USAGES = ["key encipherment", "digital signature", "server auth"]
CSR_EXPIRATION_SECONDS = 86400
CSR_SUBJECT_ORGANIZATION = "system:nodes"
CSR_SUBJECT_CN_PREFIX = "system:node:"
CSR_APPROVAL_REASON = "CertificateHelperApproved"
CSR_APPROVAL_MESSAGE = "Approved by certificate-helper"

# TLS secret layout
SECRET_TYPE_TLS = "kubernetes.io/tls"
SECRET_KEY_TLS_KEY = "tls.key"
SECRET_KEY_TLS_CRT = "tls.crt"

# Cluster root CA
CLUSTER_CA_CONFIGMAP = "kube-root-ca.crt"
CLUSTER_CA_KEY = "ca.crt"

# Condition Types (stage names)
COND_CREATING = "Creating"
COND_DELETING = "Deleting"
COND_CERTIFICATE_CREATED = "CertificateCreated"
COND_CREATION_FAILED = "CreationFailed"
COND_SERVICE_CREATED = "ServiceCreated"
COND_WEBHOOK_CREATED = "WebhookCreated"

# Requeue delays (seconds)
REQUEUE_AFTER_CREATE = 5
REQUEUE_FETCH_API_ERROR = 15
REQUEUE_FETCH_ERROR = 30
REQUEUE_ERROR_POLICY = 60

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_CERTIFICATE_ISSUED = "CertificateIssued"
EVENT_REASON_CERTIFICATE_DELETED = "CertificateDeleted"
EVENT_REASON_WEBHOOK_CREATED = "WebhookCreated"
EVENT_REASON_WEBHOOK_DELETED = "WebhookDeleted"

# Bootstrap defaults
BOOTSTRAP_APP_NAME = "webhook-helper"
BOOTSTRAP_CONTAINER_PORT = 9443
BOOTSTRAP_SERVICE_ACCOUNT = "webhook-helper-service-account"
BOOTSTRAP_WEBHOOK_PATH = "/validate"
