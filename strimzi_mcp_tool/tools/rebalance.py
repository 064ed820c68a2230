"""KafkaRebalance tools backed by Cruise Control.

Tools:
    list_rebalances    - List KafkaRebalances with their current state
    describe_rebalance - Show a rebalance's state, spec and optimization proposal
    create_rebalance   - Ask Cruise Control for an optimization proposal
    approve_rebalance  - Execute a proposal (only from ProposalReady)
    refresh_rebalance  - Recompute the proposal
    stop_rebalance     - Stop an ongoing rebalance
"""

import logging
from typing import Any, Dict, List, Optional

from mcp.types import ToolAnnotations

from strimzi_mcp_tool.conditions import conditions_of, format_conditions
from strimzi_mcp_tool.errors import (
    AlreadyExistsError,
    NotFoundError,
    PreconditionFailedError,
    StrimziToolError,
)
from strimzi_mcp_tool.rebalance import (
    CreateRebalance,
    RebalanceAction,
    RebalanceStateMachine,
    RebalanceTransition,
    rebalance_state,
)
from strimzi_mcp_tool.store import ResourceStore, resource_labels, resource_name, resource_namespace
from strimzi_mcp_tool.strimzi import KAFKA_REBALANCE, LABEL_CLUSTER, cluster_label_selector

logger = logging.getLogger("mcp-server")

PROPOSAL_FIELDS = (
    "numIntraBrokerReplicaMovements",
    "numReplicaMovements",
    "numLeaderMovements",
    "dataToMoveMB",
    "excludedTopics",
    "excludedBrokersForReplicaMove",
    "monitoredPartitionsPercentage",
    "provisionStatus",
)

NEXT_STEPS = {
    RebalanceAction.APPROVE: "Cruise Control will now execute the optimization proposal. "
                             "Use describe_rebalance to monitor progress.",
    RebalanceAction.REFRESH: "Cruise Control will generate a new optimization proposal. "
                             "Use describe_rebalance to check the new proposal.",
    RebalanceAction.STOP: "Cruise Control will stop the rebalance. Partition movements "
                          "already in progress will complete.",
}


def _error(e: Exception) -> Dict[str, Any]:
    result: Dict[str, Any] = {"success": False, "error": str(e)}
    if isinstance(e, PreconditionFailedError):
        result["currentState"] = e.current_state
        result["hint"] = "Use describe_rebalance to check the proposal before approving"
    elif isinstance(e, NotFoundError):
        result["hint"] = "Use list_rebalances to find existing rebalances"
    elif isinstance(e, AlreadyExistsError):
        result["hint"] = "Use refresh_rebalance to recompute an existing proposal"
    return result


def _transition_response(transition: RebalanceTransition, context: str) -> Dict[str, Any]:
    action = RebalanceAction(transition.request)
    key, value = transition.annotation
    return {
        "success": True,
        "context": context or "current",
        "rebalance": f"{transition.namespace}/{transition.name}",
        "action": action.value,
        "previousState": transition.previous_state,
        "annotation": {key: value},
        "message": NEXT_STEPS[action],
    }


def register_rebalance_tools(server, non_destructive: bool):
    """Register KafkaRebalance tools. Mutating tools are skipped when non-destructive."""

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Rebalances",
            readOnlyHint=True,
        ),
    )
    def list_rebalances(
        namespace: str = "",
        kafka_cluster: str = "",
        context: str = ""
    ) -> Dict[str, Any]:
        """List KafkaRebalance resources and their current state.

        Args:
            namespace: Namespace (empty = all namespaces)
            kafka_cluster: Filter by Kafka cluster (strimzi.io/cluster label)
            context: Kubernetes context (uses current if not specified)
        """
        try:
            store = ResourceStore.for_context(context)
            selector = cluster_label_selector(kafka_cluster) if kafka_cluster else None
            items = store.list(KAFKA_REBALANCE, namespace=namespace or None, label_selector=selector)

            rebalances: List[Dict[str, Any]] = []
            for item in items:
                state = rebalance_state(item)
                spec = item.get("spec") or {}
                rebalances.append({
                    "name": resource_name(item),
                    "namespace": resource_namespace(item),
                    "kafkaCluster": resource_labels(item).get(LABEL_CLUSTER),
                    "mode": spec.get("mode", "full"),
                    "state": state.label,
                    "sessionId": (item.get("status") or {}).get("sessionId"),
                })

            return {
                "success": True,
                "context": context or "current",
                "namespace": namespace or "all",
                "count": len(rebalances),
                "items": rebalances,
            }
        except Exception as e:
            logger.error(f"Error listing rebalances: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Describe Kafka Rebalance",
            readOnlyHint=True,
        ),
    )
    def describe_rebalance(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Show a KafkaRebalance's state, spec and optimization proposal.

        States: New (absent), PendingProposal, ProposalReady, Rebalancing,
        Ready, Stopped, NotReady.

        Args:
            name: KafkaRebalance name
            namespace: Namespace of the rebalance
            context: Kubernetes context (uses current if not specified)
        """
        try:
            observation = RebalanceStateMachine(ResourceStore.for_context(context)).observe(namespace, name)
            if not observation.exists:
                raise NotFoundError(KAFKA_REBALANCE.kind, namespace, name)

            resource = observation.resource
            proposal = {
                k: v for k, v in observation.optimization_result.items()
                if k in PROPOSAL_FIELDS
            }
            return {
                "success": True,
                "context": context or "current",
                "rebalance": f"{namespace}/{name}",
                "kafkaCluster": observation.kafka_cluster,
                "state": observation.state,
                "stateDetail": observation.detail,
                "pendingAnnotation": observation.pending_annotation,
                "spec": resource.get("spec") or {},
                "conditions": format_conditions(conditions_of(resource)),
                "sessionId": observation.session_id,
                "optimizationProposal": proposal,
                "observedGeneration": (resource.get("status") or {}).get("observedGeneration"),
            }
        except StrimziToolError as e:
            return _error(e)
        except Exception as e:
            logger.error(f"Error describing rebalance: {e}")
            return {"success": False, "error": str(e)}

    if non_destructive:
        return

    @server.tool(
        annotations=ToolAnnotations(
            title="Create Kafka Rebalance",
            readOnlyHint=False,
            destructiveHint=False,
        ),
    )
    def create_rebalance(
        name: str,
        namespace: str,
        kafka_cluster: str,
        mode: str = "full",
        brokers: Optional[List[int]] = None,
        goals: Optional[List[str]] = None,
        skip_hard_goal_check: bool = False,
        rebalance_disk: bool = False,
        concurrent_partition_movements_per_broker: Optional[int] = None,
        concurrent_intra_broker_partition_movements: Optional[int] = None,
        concurrent_leader_movements: Optional[int] = None,
        context: str = ""
    ) -> Dict[str, Any]:
        """Create a KafkaRebalance so Cruise Control computes an optimization proposal.

        Nothing moves until the proposal is approved with approve_rebalance.

        Args:
            name: Name of the KafkaRebalance to create
            namespace: Namespace to create it in
            kafka_cluster: Kafka cluster to rebalance (strimzi.io/cluster label)
            mode: "full", "add-brokers" or "remove-brokers"
            brokers: Broker IDs for add-brokers/remove-brokers
            goals: Optional list of optimization goals
            skip_hard_goal_check: Skip the hard goal check
            rebalance_disk: Rebalance disk usage between JBOD volumes
            concurrent_partition_movements_per_broker: Movement limit per broker
            concurrent_intra_broker_partition_movements: Intra-broker movement limit
            concurrent_leader_movements: Leader movement limit
            context: Kubernetes context (uses current if not specified)
        """
        try:
            spec = CreateRebalance(
                name=name,
                namespace=namespace,
                kafka_cluster=kafka_cluster,
                mode=(mode or "full").lower(),
                brokers=list(brokers or []),
                goals=list(goals or []),
                skip_hard_goal_check=skip_hard_goal_check,
                rebalance_disk=rebalance_disk,
                concurrent_partition_movements_per_broker=concurrent_partition_movements_per_broker,
                concurrent_intra_broker_partition_movements=concurrent_intra_broker_partition_movements,
                concurrent_leader_movements=concurrent_leader_movements,
            )
            RebalanceStateMachine(ResourceStore.for_context(context)).create(spec)
            return {
                "success": True,
                "context": context or "current",
                "rebalance": f"{namespace}/{name}",
                "kafkaCluster": kafka_cluster,
                "mode": spec.mode,
                "message": "Cruise Control will generate an optimization proposal. "
                           "Use describe_rebalance to check it and approve_rebalance to execute it.",
            }
        except (StrimziToolError, ValueError) as e:
            return _error(e)
        except Exception as e:
            logger.error(f"Error creating rebalance: {e}")
            return {"success": False, "error": str(e)}

    def _request(action: RebalanceAction, name: str, namespace: str, context: str) -> Dict[str, Any]:
        try:
            transition = RebalanceStateMachine(ResourceStore.for_context(context)).request(action, namespace, name)
            return _transition_response(transition, context)
        except StrimziToolError as e:
            return _error(e)
        except Exception as e:
            logger.error(f"Error requesting {action.value} for rebalance: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="Approve Kafka Rebalance",
            readOnlyHint=False,
            destructiveHint=True,
        ),
    )
    def approve_rebalance(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Approve a KafkaRebalance proposal so Cruise Control executes it.

        Only allowed while the rebalance is in the ProposalReady state.

        Args:
            name: KafkaRebalance name
            namespace: Namespace of the rebalance
            context: Kubernetes context (uses current if not specified)
        """
        return _request(RebalanceAction.APPROVE, name, namespace, context)

    @server.tool(
        annotations=ToolAnnotations(
            title="Refresh Kafka Rebalance",
            readOnlyHint=False,
            destructiveHint=False,
        ),
    )
    def refresh_rebalance(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Ask Cruise Control to recompute a KafkaRebalance proposal.

        Args:
            name: KafkaRebalance name
            namespace: Namespace of the rebalance
            context: Kubernetes context (uses current if not specified)
        """
        return _request(RebalanceAction.REFRESH, name, namespace, context)

    @server.tool(
        annotations=ToolAnnotations(
            title="Stop Kafka Rebalance",
            readOnlyHint=False,
            destructiveHint=True,
        ),
    )
    def stop_rebalance(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Stop an ongoing rebalance. In-flight partition movements still complete.

        Args:
            name: KafkaRebalance name
            namespace: Namespace of the rebalance
            context: Kubernetes context (uses current if not specified)
        """
        return _request(RebalanceAction.STOP, name, namespace, context)
