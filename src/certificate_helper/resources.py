"""Uniform operations over namespaced and cluster-scoped Kubernetes resources.

Every resource kind the operator touches is reached through a ``ResourceApi``
built from the typed or custom-objects client methods of that kind. The two
scopes differ only in whether a namespace is passed along, so a single
dispatcher, ``perform_operation``, serves both.

Objects are plain dicts in the API's JSON shape (camelCase keys), whatever
client produced them.
"""

from __future__ import annotations

import enum
import functools
import time
from dataclasses import dataclass
from typing import Any, Callable

from kubernetes.client.exceptions import ApiException

from . import metrics
from .exceptions import UnknownOperationError
from .utils.rate_limit import handle_rate_limit_error, rate_limit_k8s

DEFAULT_NAMESPACE = "default"
MERGE_PATCH = "application/merge-patch+json"


class Verb(str, enum.Enum):
    """Operation verbs."""

    GET = "Get"
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    APPLY_OWNER = "ApplyOwner"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Operation:
    """An operation to perform on a resource."""

    verb: Verb
    owner: dict[str, Any] | None = None
    label: str | None = None

    @classmethod
    def get(cls) -> Operation:
        return cls(Verb.GET)

    @classmethod
    def create(cls) -> Operation:
        return cls(Verb.CREATE)

    @classmethod
    def update(cls) -> Operation:
        return cls(Verb.UPDATE)

    @classmethod
    def delete(cls) -> Operation:
        return cls(Verb.DELETE)

    @classmethod
    def apply_owner(cls, owner: dict[str, Any]) -> Operation:
        """Link the target to ``owner``, an owner reference from ``owner_reference``."""
        return cls(Verb.APPLY_OWNER, owner=owner)

    @classmethod
    def unknown(cls, label: str) -> Operation:
        return cls(Verb.UNKNOWN, label=label)


def object_ref(name: str, namespace: str | None = None) -> dict[str, Any]:
    """Build a minimal object carrying only the identity of a resource."""
    metadata: dict[str, Any] = {"name": name}
    if namespace is not None:
        metadata["namespace"] = namespace
    return {"metadata": metadata}


def name_of(obj: dict[str, Any]) -> str:
    return obj["metadata"]["name"]


def owner_reference(owner: dict[str, Any]) -> dict[str, Any]:
    """Build an owner reference pointing at ``owner``."""
    meta = owner["metadata"]
    return {
        "apiVersion": owner["apiVersion"],
        "kind": owner["kind"],
        "name": meta["name"],
        "uid": meta["uid"],
        "blockOwnerDeletion": False,
    }


class ResourceApi:
    """Get/create/replace/delete/patch for one resource kind.

    Subclasses decide how the scope of an object is passed to the client.
    Status and approval subresources are optional and only wired for the
    kinds that have them.
    """

    def __init__(
        self,
        kind: str,
        read: Callable[..., Any],
        create: Callable[..., Any],
        replace: Callable[..., Any],
        delete: Callable[..., Any],
        patch: Callable[..., Any],
        read_status: Callable[..., Any] | None = None,
        replace_status: Callable[..., Any] | None = None,
        replace_approval: Callable[..., Any] | None = None,
        serialize: Callable[[Any], Any] | None = None,
    ):
        self.kind = kind
        self._read = read
        self._create = create
        self._replace = replace
        self._delete = delete
        self._patch = patch
        self._read_status = read_status
        self._replace_status = replace_status
        self._replace_approval = replace_approval
        self._serialize = serialize or (lambda value: value)

    def _scope(self, obj: dict[str, Any]) -> dict[str, str]:
        raise NotImplementedError

    def _call(self, operation: str, func: Callable[..., Any] | None, **kwargs: Any) -> Any:
        if func is None:
            raise UnknownOperationError(f"{operation} on {self.kind}")

        start_time = time.time()
        attempt = 0
        try:
            while True:
                try:
                    result = rate_limit_k8s(func)(**kwargs)
                except ApiException as e:
                    if handle_rate_limit_error(e, attempt):
                        metrics.rate_limit_hits_total.labels(kind=self.kind).inc()
                        attempt += 1
                        continue
                    metrics.api_call_total.labels(kind=self.kind, operation=operation, result="error").inc()
                    raise
                metrics.api_call_total.labels(kind=self.kind, operation=operation, result="success").inc()
                return self._serialize(result)
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(kind=self.kind, operation=operation).observe(duration)

    def get(self, obj: dict[str, Any]) -> dict[str, Any]:
        return self._call("get", self._read, name=name_of(obj), **self._scope(obj))

    def create(self, obj: dict[str, Any]) -> dict[str, Any]:
        return self._call("create", self._create, body=obj, **self._scope(obj))

    def replace(self, obj: dict[str, Any]) -> dict[str, Any]:
        return self._call("replace", self._replace, name=name_of(obj), body=obj, **self._scope(obj))

    def delete(self, obj: dict[str, Any]) -> None:
        self._call("delete", self._delete, name=name_of(obj), **self._scope(obj))

    def patch(self, obj: dict[str, Any], body: dict[str, Any]) -> dict[str, Any]:
        return self._call("patch", self._patch, name=name_of(obj), body=body, **self._scope(obj))

    def get_status(self, obj: dict[str, Any]) -> dict[str, Any]:
        return self._call("get_status", self._read_status, name=name_of(obj), **self._scope(obj))

    def replace_status(self, obj: dict[str, Any]) -> dict[str, Any]:
        return self._call(
            "replace_status", self._replace_status, name=name_of(obj), body=obj, **self._scope(obj)
        )

    def replace_approval(self, obj: dict[str, Any]) -> dict[str, Any]:
        return self._call(
            "replace_approval", self._replace_approval, name=name_of(obj), body=obj, **self._scope(obj)
        )


class NamespacedResourceApi(ResourceApi):
    """Resources living in a namespace; objects without one go to ``default``."""

    def _scope(self, obj: dict[str, Any]) -> dict[str, str]:
        return {"namespace": obj["metadata"].get("namespace") or DEFAULT_NAMESPACE}


class ClusterResourceApi(ResourceApi):
    """Cluster-scoped resources."""

    def _scope(self, obj: dict[str, Any]) -> dict[str, str]:
        return {}


def typed_resource_api(
    api: Any,
    kind: str,
    suffix: str,
    namespaced: bool,
    with_status: bool = False,
    with_approval: bool = False,
) -> ResourceApi:
    """Wrap the generated client methods of a built-in kind.

    Args:
        api: Typed client, e.g. ``client.CoreV1Api()``
        kind: Resource kind, used for metrics and errors
        suffix: Method suffix, e.g. ``secret`` for ``read_namespaced_secret``
        namespaced: Whether the kind is namespace-scoped
        with_status: Wire ``read_*_status``
        with_approval: Wire ``replace_*_approval``
    """
    name = f"namespaced_{suffix}" if namespaced else suffix
    cls = NamespacedResourceApi if namespaced else ClusterResourceApi
    return cls(
        kind,
        read=getattr(api, f"read_{name}"),
        create=getattr(api, f"create_{name}"),
        replace=getattr(api, f"replace_{name}"),
        delete=getattr(api, f"delete_{name}"),
        patch=functools.partial(getattr(api, f"patch_{name}"), _content_type=MERGE_PATCH),
        read_status=getattr(api, f"read_{name}_status") if with_status else None,
        replace_approval=getattr(api, f"replace_{name}_approval") if with_approval else None,
        serialize=api.api_client.sanitize_for_serialization,
    )


def custom_resource_api(
    api: Any,
    kind: str,
    group: str,
    version: str,
    plural: str,
    namespaced: bool,
) -> ResourceApi:
    """Wrap ``CustomObjectsApi`` methods for one custom resource kind."""
    scope = "namespaced" if namespaced else "cluster"
    cls = NamespacedResourceApi if namespaced else ClusterResourceApi

    def bind(method: str) -> Callable[..., Any]:
        return functools.partial(getattr(api, method), group=group, version=version, plural=plural)

    return cls(
        kind,
        read=bind(f"get_{scope}_custom_object"),
        create=bind(f"create_{scope}_custom_object"),
        replace=bind(f"replace_{scope}_custom_object"),
        delete=bind(f"delete_{scope}_custom_object"),
        patch=bind(f"patch_{scope}_custom_object"),
        read_status=bind(f"get_{scope}_custom_object_status"),
        replace_status=bind(f"replace_{scope}_custom_object_status"),
    )


def patch_owner_reference(api: ResourceApi, owner: dict[str, Any], obj: dict[str, Any]) -> None:
    """Merge-patch an owner reference onto ``obj`` without touching other metadata."""
    api.patch(obj, {"metadata": {"ownerReferences": [owner]}})


def perform_operation(api: ResourceApi, operation: Operation, obj: dict[str, Any]) -> dict[str, Any]:
    """Perform ``operation`` on ``obj`` through ``api``.

    Returns:
        The server's object for Get, Create and Update; the caller's object for
        Delete and ApplyOwner.

    Raises:
        UnknownOperationError: For ``Operation.unknown``
        ApiException: If the API server rejects the request
    """
    if operation.verb is Verb.GET:
        return api.get(obj)
    if operation.verb is Verb.CREATE:
        return api.create(obj)
    if operation.verb is Verb.UPDATE:
        return api.replace(obj)
    if operation.verb is Verb.DELETE:
        api.delete(obj)
        return obj
    if operation.verb is Verb.APPLY_OWNER and operation.owner is not None:
        patch_owner_reference(api, operation.owner, obj)
        return obj
    raise UnknownOperationError(operation.label or operation.verb.value)
