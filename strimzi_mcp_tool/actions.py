"""Operator actions requested through annotations.

Each action reads the target first (so a missing resource is reported as
``NotFoundError``), then writes a single annotation the Strimzi operators act
on. Timestamp-valued annotations only need to change to trigger the
operator; their value is not interpreted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from strimzi_mcp_tool.errors import NotFoundError
from strimzi_mcp_tool.store import ResourceStore
from strimzi_mcp_tool.strimzi import (
    ANNOTATION_FORCE_PASSWORD_RENEWAL,
    ANNOTATION_MANUAL_ROLLING_UPDATE,
    ANNOTATION_RESTART,
    ANNOTATION_RESTART_TASK,
    KAFKA,
    KAFKA_CONNECTOR,
    KAFKA_USER,
    STRIMZI_POD_SET,
)

logger = logging.getLogger("mcp-server")


@dataclass(frozen=True)
class AnnotationWrite:
    kind: str
    namespace: str
    name: str
    key: str
    value: str

    @property
    def target(self) -> str:
        return f"{self.kind} {self.namespace}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "namespace": self.namespace,
            "name": self.name,
            "annotation": {self.key: self.value},
        }


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def restart_connector(
    store: ResourceStore,
    namespace: str,
    name: str,
    task_id: Optional[int] = None,
) -> AnnotationWrite:
    """Restart a KafkaConnector, or only one of its tasks when ``task_id`` is given."""
    store.get(KAFKA_CONNECTOR, namespace, name)
    if task_id is not None:
        key, value = ANNOTATION_RESTART_TASK, str(task_id)
    else:
        key, value = ANNOTATION_RESTART, "true"
    store.patch_annotations(KAFKA_CONNECTOR, namespace, name, {key: value})
    return AnnotationWrite(KAFKA_CONNECTOR.kind, namespace, name, key, value)


def user_authentication_type(user: Dict[str, Any]) -> str:
    authentication = (user.get("spec") or {}).get("authentication") or {}
    return authentication.get("type") or "none"


def renew_user_credentials(store: ResourceStore, namespace: str, name: str) -> Dict[str, Any]:
    """Ask the User Operator to regenerate a KafkaUser's credentials.

    Returns:
        Dict with the annotation written and the user's authentication type.
    """
    user = store.get(KAFKA_USER, namespace, name)
    auth_type = user_authentication_type(user)
    value = _timestamp()
    store.patch_annotations(KAFKA_USER, namespace, name, {ANNOTATION_FORCE_PASSWORD_RENEWAL: value})
    write = AnnotationWrite(KAFKA_USER.kind, namespace, name, ANNOTATION_FORCE_PASSWORD_RENEWAL, value)
    return {"write": write, "authentication": auth_type}


def rolling_update_kafka(
    store: ResourceStore,
    namespace: str,
    name: str,
    node_pool: Optional[str] = None,
    pod_name: Optional[str] = None,
) -> AnnotationWrite:
    """Trigger a rolling update of a Kafka cluster, one node pool, or one pod."""
    store.get(KAFKA, namespace, name)
    value = _timestamp()
    annotation = {ANNOTATION_MANUAL_ROLLING_UPDATE: "true"}

    if pod_name:
        store.patch_pod_annotations(namespace, pod_name, annotation)
        return AnnotationWrite("Pod", namespace, pod_name, ANNOTATION_MANUAL_ROLLING_UPDATE, "true")

    if node_pool:
        pod_set = f"{name}-{node_pool}"
        try:
            store.get(STRIMZI_POD_SET, namespace, pod_set)
        except NotFoundError as e:
            raise NotFoundError(f"StrimziPodSet for node pool '{node_pool}'", namespace, pod_set) from e
        store.patch_annotations(STRIMZI_POD_SET, namespace, pod_set, annotation)
        return AnnotationWrite(STRIMZI_POD_SET.kind, namespace, pod_set, ANNOTATION_MANUAL_ROLLING_UPDATE, "true")

    store.patch_annotations(KAFKA, namespace, name, {ANNOTATION_MANUAL_ROLLING_UPDATE: value})
    return AnnotationWrite(KAFKA.kind, namespace, name, ANNOTATION_MANUAL_ROLLING_UPDATE, value)
