"""List, describe and restart tools for Strimzi custom resources.

Every state shown here comes from the same condition resolver the health
check uses, so a resource reported NotReady by list_topics is reported the
same way by health_check.

Tools:
    list_kafkas            - Kafka clusters with readiness and listeners
    list_topics            - KafkaTopics with partitions, replicas and state
    list_users             - KafkaUsers with authentication type and state
    list_connectors        - KafkaConnectors with connector and task states
    list_bridges           - KafkaBridges with replicas and URL
    list_kafka_connects    - KafkaConnect clusters with REST URL and plugin count
    get_kafka_status       - Detailed status of one Kafka cluster and its node pools
    describe_topic         - Spec, config and status of one KafkaTopic
    describe_user          - Authentication, ACLs and quotas of one KafkaUser
    describe_bridge        - HTTP, producer and consumer settings of one KafkaBridge
    describe_kafka_connect - Build, config and plugins of one KafkaConnect
    describe_connector     - Full status of one KafkaConnector, including task traces
    get_unready_topics     - Only the topics that are not Ready, with their conditions
    restart_connector      - Restart a connector or one of its tasks
    restart_kafka_broker   - Rolling update of a cluster, node pool or pod
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from kubernetes.client.rest import ApiException
from mcp.types import ToolAnnotations

from strimzi_mcp_tool.actions import restart_connector as request_connector_restart
from strimzi_mcp_tool.actions import rolling_update_kafka, user_authentication_type
from strimzi_mcp_tool.conditions import (
    conditions_of,
    format_conditions,
    is_ready,
    resource_state,
)
from strimzi_mcp_tool.errors import StrimziToolError
from strimzi_mcp_tool.health.checkers import failed_tasks, first_line
from strimzi_mcp_tool.store import ResourceStore, resource_labels, resource_name, resource_namespace
from strimzi_mcp_tool.strimzi import (
    KAFKA,
    KAFKA_BRIDGE,
    KAFKA_CONNECT,
    KAFKA_CONNECTOR,
    KAFKA_NODE_POOL,
    KAFKA_TOPIC,
    KAFKA_USER,
    LABEL_CLUSTER,
    ResourceKind,
    cluster_label_selector,
)

logger = logging.getLogger("mcp-server")


def _entry(item: Dict[str, Any]) -> Dict[str, Any]:
    metadata = item.get("metadata", {})
    state = resource_state(item)
    return {
        "name": metadata.get("name"),
        "namespace": metadata.get("namespace"),
        "kafkaCluster": (metadata.get("labels") or {}).get(LABEL_CLUSTER),
        "state": state.label,
        "ready": is_ready(state),
        "detail": state.detail,
    }


def _list(
    kind: ResourceKind,
    namespace: str,
    kafka_cluster: str,
    context: str,
    extra: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None,
    filter_by_name: bool = False,
) -> Dict[str, Any]:
    try:
        store = ResourceStore.for_context(context)
        selector = None
        if kafka_cluster and not filter_by_name:
            selector = cluster_label_selector(kafka_cluster)
        items = store.list(kind, namespace=namespace or None, label_selector=selector)
        if kafka_cluster and filter_by_name:
            items = [i for i in items if (i.get("metadata") or {}).get("name") == kafka_cluster]

        resources: List[Dict[str, Any]] = []
        for item in items:
            entry = _entry(item)
            if extra:
                entry.update(extra(item))
            resources.append(entry)

        return {
            "success": True,
            "context": context or "current",
            "resource": kind.kind,
            "namespace": namespace or "all",
            "count": len(resources),
            "readyCount": sum(1 for r in resources if r["ready"]),
            "items": resources,
        }
    except Exception as e:
        logger.error(f"Error listing {kind.plural}: {e}")
        return {"success": False, "error": str(e)}


def _kafka_extra(item: Dict[str, Any]) -> Dict[str, Any]:
    status = item.get("status") or {}
    spec = item.get("spec") or {}
    return {
        "kafkaVersion": status.get("kafkaVersion") or (spec.get("kafka") or {}).get("version"),
        "listeners": [
            {"name": l.get("name"), "bootstrapServers": l.get("bootstrapServers")}
            for l in status.get("listeners") or []
        ],
    }


def _topic_extra(item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    return {
        "topicName": (item.get("status") or {}).get("topicName") or spec.get("topicName"),
        "partitions": spec.get("partitions"),
        "replicas": spec.get("replicas"),
    }


def _user_extra(item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    return {
        "authentication": user_authentication_type(item),
        "authorization": (spec.get("authorization") or {}).get("type"),
    }


def _connector_extra(item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    connector_status = (item.get("status") or {}).get("connectorStatus") or {}
    return {
        "connectCluster": resource_labels(item).get(LABEL_CLUSTER),
        "class": spec.get("class"),
        "connectorState": (connector_status.get("connector") or {}).get("state"),
        "taskStates": [t.get("state") for t in connector_status.get("tasks") or []],
        "failedTasks": failed_tasks(item),
    }


def _bridge_extra(item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    status = item.get("status") or {}
    return {
        "replicas": status.get("replicas", spec.get("replicas")),
        "url": status.get("url"),
        "bootstrapServers": spec.get("bootstrapServers"),
    }


def _connect_extra(item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    status = item.get("status") or {}
    return {
        "replicas": status.get("replicas", spec.get("replicas")),
        "bootstrapServers": spec.get("bootstrapServers"),
        "url": status.get("url"),
        "pluginCount": len(status.get("connectorPlugins") or []),
    }


def _describe(
    kind: ResourceKind,
    name: str,
    namespace: str,
    context: str,
    details: Callable[[ResourceStore, Dict[str, Any]], Dict[str, Any]],
) -> Dict[str, Any]:
    try:
        store = ResourceStore.for_context(context)
        item = store.get(kind, namespace, name)

        result = _entry(item)
        result.update({
            "success": True,
            "context": context or "current",
            "resource": kind.kind,
        })
        result.update(details(store, item))
        result["conditions"] = format_conditions(conditions_of(item))
        result["observedGeneration"] = (item.get("status") or {}).get("observedGeneration")
        return result
    except StrimziToolError as e:
        return {"success": False, "error": str(e)}
    except Exception as e:
        logger.error(f"Error describing {kind.kind}: {e}")
        return {"success": False, "error": str(e)}


def _node_pools(store: ResourceStore, namespace: str, cluster: str) -> Optional[List[Dict[str, Any]]]:
    try:
        pools = store.list(KAFKA_NODE_POOL, namespace=namespace, label_selector=cluster_label_selector(cluster))
    except ApiException as e:
        # Clusters without KafkaNodePools may not have the CRD installed
        logger.warning(f"Could not list node pools for {namespace}/{cluster}: {e}")
        return None
    entries = []
    for pool in pools:
        spec = pool.get("spec") or {}
        entry = _entry(pool)
        entry.update({
            "replicas": (pool.get("status") or {}).get("replicas", spec.get("replicas")),
            "roles": spec.get("roles") or [],
            "nodeIds": (pool.get("status") or {}).get("nodeIds") or [],
        })
        entries.append(entry)
    return entries


def _kafka_details(store: ResourceStore, item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    status = item.get("status") or {}
    details = _kafka_extra(item)
    details.update({
        "kafkaReplicas": (spec.get("kafka") or {}).get("replicas"),
        "zookeeperReplicas": (spec.get("zookeeper") or {}).get("replicas"),
        "clusterId": status.get("clusterId"),
        "nodePools": [p.get("name") for p in status.get("kafkaNodePools") or []],
        "nodePoolResources": _node_pools(store, resource_namespace(item), resource_name(item)),
    })
    return details


def _topic_details(store: ResourceStore, item: Dict[str, Any]) -> Dict[str, Any]:
    details = _topic_extra(item)
    details["config"] = (item.get("spec") or {}).get("config") or {}
    return details


def _acl_entry(acl: Dict[str, Any]) -> Dict[str, Any]:
    resource = acl.get("resource") or {}
    operations = acl.get("operations") or ([acl["operation"]] if acl.get("operation") else [])
    return {
        "type": acl.get("type") or "allow",
        "operations": operations,
        "resourceType": resource.get("type"),
        "resourceName": resource.get("name"),
        "patternType": resource.get("patternType", "literal"),
        "host": acl.get("host", "*"),
    }


def _user_details(store: ResourceStore, item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    status = item.get("status") or {}
    authorization = spec.get("authorization") or {}
    details = _user_extra(item)
    details.update({
        "acls": [_acl_entry(a) for a in authorization.get("acls") or []],
        "quotas": spec.get("quotas") or {},
        "username": status.get("username"),
        "secret": status.get("secret"),
    })
    return details


def _bridge_details(store: ResourceStore, item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    http = spec.get("http") or {}
    details = _bridge_extra(item)
    details.update({
        "http": {
            "port": http.get("port"),
            "cors": http.get("cors"),
        },
        "producerConfig": (spec.get("producer") or {}).get("config") or {},
        "consumerConfig": (spec.get("consumer") or {}).get("config") or {},
        "authentication": (spec.get("authentication") or {}).get("type"),
        "tls": spec.get("tls") is not None,
        "resources": spec.get("resources") or {},
    })
    return details


def _connect_details(store: ResourceStore, item: Dict[str, Any]) -> Dict[str, Any]:
    spec = item.get("spec") or {}
    status = item.get("status") or {}
    build = spec.get("build") or {}
    details = _connect_extra(item)
    details.update({
        "version": spec.get("version"),
        "image": spec.get("image"),
        "build": {
            "outputType": (build.get("output") or {}).get("type"),
            "plugins": [p.get("name") for p in build.get("plugins") or []],
        } if build else None,
        "config": spec.get("config") or {},
        "authentication": (spec.get("authentication") or {}).get("type"),
        "tls": spec.get("tls") is not None,
        "resources": spec.get("resources") or {},
        "jvmOptions": spec.get("jvmOptions") or {},
        "connectorPlugins": [
            {"class": p.get("class"), "type": p.get("type"), "version": p.get("version")}
            for p in status.get("connectorPlugins") or []
        ],
    })
    return details


def register_resource_tools(server, non_destructive: bool):
    """Register Strimzi list/describe tools and the restart actions."""

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Clusters",
            readOnlyHint=True,
        ),
    )
    def list_kafkas(
        namespace: str = "",
        kafka_cluster: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List Strimzi Kafka clusters with their state and listeners.

        Args:
            namespace: Namespace (empty = all namespaces)
            kafka_cluster: Only show the Kafka cluster with this name
            context: Kubernetes context (uses current if not specified)
        """
        return _list(KAFKA, namespace, kafka_cluster, context, _kafka_extra, filter_by_name=True)

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Topics",
            readOnlyHint=True,
        ),
    )
    def list_topics(
        namespace: str = "",
        kafka_cluster: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List KafkaTopic resources with partitions, replicas and state.

        Args:
            namespace: Namespace (empty = all namespaces)
            kafka_cluster: Filter by Kafka cluster (strimzi.io/cluster label)
            context: Kubernetes context (uses current if not specified)
        """
        return _list(KAFKA_TOPIC, namespace, kafka_cluster, context, _topic_extra)

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Users",
            readOnlyHint=True,
        ),
    )
    def list_users(
        namespace: str = "",
        kafka_cluster: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List KafkaUser resources with authentication type and state.

        Args:
            namespace: Namespace (empty = all namespaces)
            kafka_cluster: Filter by Kafka cluster (strimzi.io/cluster label)
            context: Kubernetes context (uses current if not specified)
        """
        return _list(KAFKA_USER, namespace, kafka_cluster, context, _user_extra)

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Connectors",
            readOnlyHint=True,
        ),
    )
    def list_connectors(
        namespace: str = "",
        connect_cluster: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List KafkaConnector resources with connector and task states.

        Args:
            namespace: Namespace (empty = all namespaces)
            connect_cluster: Filter by KafkaConnect cluster (strimzi.io/cluster label)
            context: Kubernetes context (uses current if not specified)
        """
        return _list(KAFKA_CONNECTOR, namespace, connect_cluster, context, _connector_extra)

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Bridges",
            readOnlyHint=True,
        ),
    )
    def list_bridges(
        namespace: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List KafkaBridge resources with replicas, URL and state.

        Args:
            namespace: Namespace (empty = all namespaces)
            context: Kubernetes context (uses current if not specified)
        """
        return _list(KAFKA_BRIDGE, namespace, "", context, _bridge_extra)

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Connect Clusters",
            readOnlyHint=True,
        ),
    )
    def list_kafka_connects(
        namespace: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List KafkaConnect clusters with replicas, REST API URL and plugin count.

        Args:
            namespace: Namespace (empty = all namespaces)
            context: Kubernetes context (uses current if not specified)
        """
        return _list(KAFKA_CONNECT, namespace, "", context, _connect_extra)

    @server.tool(
        annotations=ToolAnnotations(
            title="Get Kafka Cluster Status",
            readOnlyHint=True,
        ),
    )
    def get_kafka_status(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Get the detailed status of a Kafka cluster.

        Includes replicas, version, listeners, cluster ID, conditions and
        the KafkaNodePools that belong to the cluster.

        Args:
            name: Kafka cluster name
            namespace: Namespace of the Kafka cluster
            context: Kubernetes context (uses current if not specified)
        """
        return _describe(KAFKA, name, namespace, context, _kafka_details)

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Kafka Topic",
            readOnlyHint=True,
        ),
    )
    def describe_topic(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Show a KafkaTopic's spec, topic configuration and status.

        Args:
            name: KafkaTopic resource name
            namespace: Namespace of the topic
            context: Kubernetes context (uses current if not specified)
        """
        return _describe(KAFKA_TOPIC, name, namespace, context, _topic_details)

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Kafka User",
            readOnlyHint=True,
        ),
    )
    def describe_user(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Show a KafkaUser's authentication, ACLs, quotas and status.

        Args:
            name: KafkaUser resource name
            namespace: Namespace of the user
            context: Kubernetes context (uses current if not specified)
        """
        return _describe(KAFKA_USER, name, namespace, context, _user_details)

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Kafka Bridge",
            readOnlyHint=True,
        ),
    )
    def describe_bridge(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Show a KafkaBridge's HTTP, producer and consumer configuration and status.

        Args:
            name: KafkaBridge resource name
            namespace: Namespace of the bridge
            context: Kubernetes context (uses current if not specified)
        """
        return _describe(KAFKA_BRIDGE, name, namespace, context, _bridge_details)

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Kafka Connect Cluster",
            readOnlyHint=True,
        ),
    )
    def describe_kafka_connect(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Show a KafkaConnect cluster's build, configuration, plugins and status.

        Args:
            name: KafkaConnect resource name
            namespace: Namespace of the Connect cluster
            context: Kubernetes context (uses current if not specified)
        """
        return _describe(KAFKA_CONNECT, name, namespace, context, _connect_details)

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Kafka Connector",
            readOnlyHint=True,
        ),
    )
    def describe_connector(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Show the spec and full status of a KafkaConnector, including task error traces.

        Args:
            name: KafkaConnector name
            namespace: Namespace of the connector
            context: Kubernetes context (uses current if not specified)
        """
        try:
            connector = ResourceStore.for_context(context).get(KAFKA_CONNECTOR, namespace, name)
            spec = connector.get("spec") or {}
            status = connector.get("status") or {}
            connector_status = status.get("connectorStatus") or {}

            tasks = [
                {
                    "id": t.get("id"),
                    "state": t.get("state"),
                    "workerId": t.get("worker_id"),
                    "error": first_line(t["trace"]) if t.get("trace") else None,
                }
                for t in connector_status.get("tasks") or []
            ]

            result = _entry(connector)
            result.update({
                "success": True,
                "context": context or "current",
                "connectCluster": resource_labels(connector).get(LABEL_CLUSTER),
                "class": spec.get("class"),
                "tasksMax": spec.get("tasksMax"),
                "paused": bool(spec.get("pause")) or spec.get("state") in ("paused", "stopped"),
                "config": spec.get("config") or {},
                "connectorState": (connector_status.get("connector") or {}).get("state"),
                "workerId": (connector_status.get("connector") or {}).get("worker_id"),
                "tasks": tasks,
                "failedTasks": failed_tasks(connector),
                "autoRestart": status.get("autoRestart"),
                "conditions": format_conditions(conditions_of(connector)),
                "observedGeneration": status.get("observedGeneration"),
            })
            return result
        except StrimziToolError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error describing connector: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Get Unready Kafka Topics",
            readOnlyHint=True,
        ),
    )
    def get_unready_topics(
        namespace: str = "",
        kafka_cluster: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List only the KafkaTopics that are not Ready, with their conditions.

        Args:
            namespace: Namespace (empty = all namespaces)
            kafka_cluster: Filter by Kafka cluster (strimzi.io/cluster label)
            context: Kubernetes context (uses current if not specified)
        """
        try:
            store = ResourceStore.for_context(context)
            selector = cluster_label_selector(kafka_cluster) if kafka_cluster else None
            items = store.list(KAFKA_TOPIC, namespace=namespace or None, label_selector=selector)

            unready: List[Dict[str, Any]] = []
            for item in items:
                entry = _entry(item)
                if entry["ready"]:
                    continue
                entry["conditions"] = format_conditions(conditions_of(item))
                if not item.get("status"):
                    entry["detail"] = "No status available"
                unready.append(entry)

            return {
                "success": True,
                "context": context or "current",
                "namespace": namespace or "all",
                "total": len(items),
                "count": len(unready),
                "items": unready,
            }
        except Exception as e:
            logger.error(f"Error getting unready topics: {e}")
            return {"success": False, "error": str(e)}

    if non_destructive:
        return

    @server.tool(
        annotations=ToolAnnotations(
            title="Restart Kafka Connector",
            readOnlyHint=False,
            destructiveHint=True,
        ),
    )
    def restart_connector(
        name: str,
        namespace: str,
        task_id: Optional[int] = None,
        context: str = ""
    ) -> Dict[str, Any]:
        """Restart a KafkaConnector and all its tasks, or only one task.

        Args:
            name: KafkaConnector name
            namespace: Namespace of the connector
            task_id: Restart only this task (omit to restart the whole connector)
            context: Kubernetes context (uses current if not specified)
        """
        try:
            write = request_connector_restart(ResourceStore.for_context(context), namespace, name, task_id)
            response = {
                "success": True,
                "context": context or "current",
                "message": f"Restart requested for {write.target}. Use describe_connector to check the status.",
            }
            response.update(write.to_dict())
            return response
        except StrimziToolError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error restarting connector: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Restart Kafka Brokers",
            readOnlyHint=False,
            destructiveHint=True,
        ),
    )
    def restart_kafka_broker(
        name: str,
        namespace: str,
        node_pool: str = "",
        pod_name: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """Trigger a rolling update of Kafka brokers through the Cluster Operator.

        Restarts the whole cluster, one node pool, or a single pod.

        Args:
            name: Kafka cluster name
            namespace: Namespace of the Kafka cluster
            node_pool: Only restart this node pool
            pod_name: Only restart this pod
            context: Kubernetes context (uses current if not specified)
        """
        try:
            write = rolling_update_kafka(
                ResourceStore.for_context(context), namespace, name,
                node_pool=node_pool or None, pod_name=pod_name or None,
            )
            response = {
                "success": True,
                "context": context or "current",
                "message": f"Rolling update requested for {write.target}. "
                           "Use list_kafkas or health_check to monitor progress.",
            }
            response.update(write.to_dict())
            return response
        except StrimziToolError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error triggering rolling update: {e}")
            return {"success": False, "error": str(e)}
