"""Handler modules for CRD resources."""

# Import handlers to register them - all handlers register themselves via @kopf decorators
from . import certificate  # noqa: F401
from . import webhook_helper  # noqa: F401
