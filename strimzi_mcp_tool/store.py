"""Typed access to Strimzi custom resources and their Secrets.

A thin layer over ``CustomObjectsApi`` and ``CoreV1Api``. It does no caching
and holds no state beyond the two API handles: every call goes to the API
server, and other actors may change a resource between two calls.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from kubernetes.client.rest import ApiException

from strimzi_mcp_tool.errors import AlreadyExistsError, NotFoundError
from strimzi_mcp_tool.k8s_config import get_clients
from strimzi_mcp_tool.strimzi import ResourceKind

logger = logging.getLogger("mcp-server")


def _is_status(e: ApiException, status: int) -> bool:
    return getattr(e, "status", None) == status


def resource_name(resource: Dict[str, Any]) -> str:
    return (resource.get("metadata") or {}).get("name") or "<unnamed>"


def resource_namespace(resource: Dict[str, Any]) -> str:
    return (resource.get("metadata") or {}).get("namespace") or ""


def resource_labels(resource: Dict[str, Any]) -> Dict[str, str]:
    return (resource.get("metadata") or {}).get("labels") or {}


def resource_annotations(resource: Dict[str, Any]) -> Dict[str, str]:
    return (resource.get("metadata") or {}).get("annotations") or {}


class ResourceStore:
    """Resource store backed by the Kubernetes API.

    Args:
        custom_api: ``kubernetes.client.CustomObjectsApi`` instance.
        core_api: ``kubernetes.client.CoreV1Api`` instance, used for Secrets
            and broker Pods.
    """

    def __init__(self, custom_api, core_api=None):
        self.custom_api = custom_api
        self.core_api = core_api

    @classmethod
    def for_context(cls, context: str = "") -> "ResourceStore":
        """Build a store for a kubeconfig context (empty = current context)."""
        custom_api, core_api = get_clients(context)
        return cls(custom_api, core_api)

    def get(self, kind: ResourceKind, namespace: str, name: str) -> Dict[str, Any]:
        """Fetch one resource.

        Raises:
            NotFoundError: if the resource does not exist.
        """
        try:
            return self.custom_api.get_namespaced_custom_object(
                group=kind.group, version=kind.version, namespace=namespace,
                plural=kind.plural, name=name,
            )
        except ApiException as e:
            if _is_status(e, 404):
                raise NotFoundError(kind.kind, namespace, name) from e
            raise

    def find(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Like :meth:`get`, but returns ``None`` for a missing resource."""
        try:
            return self.get(kind, namespace, name)
        except NotFoundError:
            return None

    def list(
        self,
        kind: ResourceKind,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List resources of one kind, in one namespace or across all of them."""
        kwargs: Dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector

        if namespace:
            raw = self.custom_api.list_namespaced_custom_object(
                group=kind.group, version=kind.version, namespace=namespace,
                plural=kind.plural, **kwargs,
            )
        else:
            raw = self.custom_api.list_cluster_custom_object(
                group=kind.group, version=kind.version, plural=kind.plural, **kwargs,
            )
        return list(raw.get("items") or [])

    def create(self, kind: ResourceKind, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create a resource.

        Raises:
            AlreadyExistsError: if a resource with the same name exists.
        """
        name = (body.get("metadata") or {}).get("name", "")
        try:
            return self.custom_api.create_namespaced_custom_object(
                group=kind.group, version=kind.version, namespace=namespace,
                plural=kind.plural, body=body,
            )
        except ApiException as e:
            if _is_status(e, 409):
                raise AlreadyExistsError(kind.kind, namespace, name) from e
            raise

    def patch_annotations(
        self,
        kind: ResourceKind,
        namespace: str,
        name: str,
        annotations: Dict[str, str],
    ) -> Dict[str, Any]:
        """Merge ``annotations`` into the resource's metadata.

        Raises:
            NotFoundError: if the resource no longer exists.
        """
        body = {"metadata": {"annotations": dict(annotations)}}
        try:
            patched = self.custom_api.patch_namespaced_custom_object(
                group=kind.group, version=kind.version, namespace=namespace,
                plural=kind.plural, name=name, body=body,
            )
        except ApiException as e:
            if _is_status(e, 404):
                raise NotFoundError(kind.kind, namespace, name) from e
            raise
        logger.info(f"Annotated {kind.kind} {namespace}/{name}: {annotations}")
        return patched

    def get_secret(self, namespace: str, name: str) -> Dict[str, bytes]:
        """Return a Secret's data with every value base64-decoded.

        Values that are not valid base64 are returned as their raw encoded
        bytes so the caller can report them as unreadable.

        Raises:
            NotFoundError: if the Secret does not exist.
        """
        try:
            secret = self.core_api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if _is_status(e, 404):
                raise NotFoundError("Secret", namespace, name) from e
            raise

        data: Dict[str, bytes] = {}
        for key, value in (secret.data or {}).items():
            try:
                data[key] = base64.b64decode(value or "", validate=True)
            except (binascii.Error, ValueError):
                data[key] = (value or "").encode()
        return data

    def list_secrets(self, namespace: str, label_selector: Optional[str] = None) -> List[Any]:
        kwargs: Dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        return list(self.core_api.list_namespaced_secret(namespace=namespace, **kwargs).items or [])

    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> List[Any]:
        kwargs: Dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        return list(self.core_api.list_namespaced_pod(namespace=namespace, **kwargs).items or [])

    def patch_pod_annotations(self, namespace: str, name: str, annotations: Dict[str, str]) -> Any:
        body = {"metadata": {"annotations": dict(annotations)}}
        try:
            patched = self.core_api.patch_namespaced_pod(name=name, namespace=namespace, body=body)
        except ApiException as e:
            if _is_status(e, 404):
                raise NotFoundError("Pod", namespace, name) from e
            raise
        logger.info(f"Annotated Pod {namespace}/{name}: {annotations}")
        return patched
