"""KafkaRebalance lifecycle.

The Cluster Operator and Cruise Control own a KafkaRebalance's state. This
module only observes it (through the shared condition resolver) and requests
transitions by writing the ``strimzi.io/rebalance`` annotation:

    New -> PendingProposal -> ProposalReady -> Rebalancing -> Ready | Stopped

``New`` means the resource does not exist; ``PendingProposal`` means it
exists but has no true condition yet. Only ``approve`` is checked locally
(the proposal must be ``ProposalReady``). ``refresh`` and ``stop`` are safe
from any state and are validated by the operator.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from strimzi_mcp_tool.conditions import (
    STATE_READY,
    STATUS_TRUE,
    ResolvedState,
    conditions_of,
    resolve_state,
)
from strimzi_mcp_tool.errors import AlreadyExistsError, PreconditionFailedError
from strimzi_mcp_tool.store import ResourceStore, resource_annotations, resource_labels
from strimzi_mcp_tool.strimzi import (
    ANNOTATION_REBALANCE,
    KAFKA_REBALANCE,
    LABEL_CLUSTER,
)

logger = logging.getLogger("mcp-server")


class RebalanceState(str, enum.Enum):
    # Condition types outside this set (NotReady, for example) are reported verbatim.
    NEW = "New"
    PENDING_PROPOSAL = "PendingProposal"
    PROPOSAL_READY = "ProposalReady"
    REBALANCING = "Rebalancing"
    READY = STATE_READY
    STOPPED = "Stopped"


class RebalanceAction(str, enum.Enum):
    APPROVE = "approve"
    REFRESH = "refresh"
    STOP = "stop"


# The only place an action is translated to its annotation.
REBALANCE_ANNOTATIONS: Dict[RebalanceAction, Tuple[str, str]] = {
    RebalanceAction.APPROVE: (ANNOTATION_REBALANCE, "approve"),
    RebalanceAction.REFRESH: (ANNOTATION_REBALANCE, "refresh"),
    RebalanceAction.STOP: (ANNOTATION_REBALANCE, "stop"),
}

# States an action requires; actions absent here have no local precondition.
REQUIRED_STATES: Dict[RebalanceAction, RebalanceState] = {
    RebalanceAction.APPROVE: RebalanceState.PROPOSAL_READY,
}

REBALANCE_MODES = ("full", "add-brokers", "remove-brokers")


@dataclass(frozen=True)
class CreateRebalance:
    """Request to create a KafkaRebalance for a Kafka cluster."""

    name: str
    namespace: str
    kafka_cluster: str
    mode: str = "full"
    brokers: List[int] = field(default_factory=list)
    goals: List[str] = field(default_factory=list)
    skip_hard_goal_check: bool = False
    rebalance_disk: bool = False
    concurrent_partition_movements_per_broker: Optional[int] = None
    concurrent_intra_broker_partition_movements: Optional[int] = None
    concurrent_leader_movements: Optional[int] = None

    def __post_init__(self):
        if self.mode not in REBALANCE_MODES:
            raise ValueError(
                f"Invalid rebalance mode '{self.mode}'. Expected one of: {', '.join(REBALANCE_MODES)}"
            )
        if self.mode != "full" and not self.brokers:
            raise ValueError(f"Mode '{self.mode}' requires at least one broker ID")

    def to_body(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {}
        if self.mode != "full":
            spec["mode"] = self.mode
        if self.brokers:
            spec["brokers"] = list(self.brokers)
        if self.goals:
            spec["goals"] = list(self.goals)
        if self.skip_hard_goal_check:
            spec["skipHardGoalCheck"] = True
        if self.rebalance_disk:
            spec["rebalanceDisk"] = True
        if self.concurrent_partition_movements_per_broker is not None:
            spec["concurrentPartitionMovementsPerBroker"] = self.concurrent_partition_movements_per_broker
        if self.concurrent_intra_broker_partition_movements is not None:
            spec["concurrentIntraBrokerPartitionMovements"] = self.concurrent_intra_broker_partition_movements
        if self.concurrent_leader_movements is not None:
            spec["concurrentLeaderMovements"] = self.concurrent_leader_movements

        return {
            "apiVersion": f"{KAFKA_REBALANCE.group}/{KAFKA_REBALANCE.version}",
            "kind": KAFKA_REBALANCE.kind,
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": {LABEL_CLUSTER: self.kafka_cluster},
            },
            "spec": spec,
        }


RebalanceRequest = Union[CreateRebalance, RebalanceAction]


@dataclass(frozen=True)
class RebalanceObservation:
    namespace: str
    name: str
    state: str
    detail: Optional[str] = None
    resource: Optional[Dict[str, Any]] = None

    @property
    def exists(self) -> bool:
        return self.resource is not None

    @property
    def kafka_cluster(self) -> Optional[str]:
        return resource_labels(self.resource or {}).get(LABEL_CLUSTER)

    @property
    def pending_annotation(self) -> Optional[str]:
        return resource_annotations(self.resource or {}).get(ANNOTATION_REBALANCE)

    @property
    def session_id(self) -> Optional[str]:
        return ((self.resource or {}).get("status") or {}).get("sessionId")

    @property
    def optimization_result(self) -> Dict[str, Any]:
        return ((self.resource or {}).get("status") or {}).get("optimizationResult") or {}


@dataclass(frozen=True)
class RebalanceTransition:
    """Outcome of a request. ``previous_state`` is the state read before writing."""

    request: str
    namespace: str
    name: str
    previous_state: str
    annotation: Optional[Tuple[str, str]] = None


def rebalance_state(resource: Optional[Dict[str, Any]]) -> ResolvedState:
    """Resolve a KafkaRebalance's phase. ``None`` means the resource is absent."""
    if resource is None:
        return ResolvedState(RebalanceState.NEW.value)
    conditions = conditions_of(resource)
    state = resolve_state(conditions)
    if not any(c.status == STATUS_TRUE for c in conditions):
        return ResolvedState(RebalanceState.PENDING_PROPOSAL.value, state.detail)
    return state


class RebalanceStateMachine:
    """Observe and drive KafkaRebalance resources.

    Holds no state of its own; every call reads the resource again.
    """

    def __init__(self, store: ResourceStore):
        self.store = store

    def observe(self, namespace: str, name: str) -> RebalanceObservation:
        resource = self.store.find(KAFKA_REBALANCE, namespace, name)
        state = rebalance_state(resource)
        return RebalanceObservation(namespace, name, state.label, state.detail, resource)

    def request(self, request: RebalanceRequest, namespace: str = "", name: str = "") -> RebalanceTransition:
        if isinstance(request, CreateRebalance):
            return self.create(request)
        return self._annotate(RebalanceAction(request), namespace, name)

    def create(self, spec: CreateRebalance) -> RebalanceTransition:
        if self.store.find(KAFKA_REBALANCE, spec.namespace, spec.name) is not None:
            raise AlreadyExistsError(KAFKA_REBALANCE.kind, spec.namespace, spec.name)
        self.store.create(KAFKA_REBALANCE, spec.namespace, spec.to_body())
        logger.info(f"Created KafkaRebalance {spec.namespace}/{spec.name} for cluster {spec.kafka_cluster}")
        return RebalanceTransition("create", spec.namespace, spec.name, RebalanceState.NEW.value)

    def approve(self, namespace: str, name: str) -> RebalanceTransition:
        return self._annotate(RebalanceAction.APPROVE, namespace, name)

    def refresh(self, namespace: str, name: str) -> RebalanceTransition:
        return self._annotate(RebalanceAction.REFRESH, namespace, name)

    def stop(self, namespace: str, name: str) -> RebalanceTransition:
        return self._annotate(RebalanceAction.STOP, namespace, name)

    def _annotate(self, action: RebalanceAction, namespace: str, name: str) -> RebalanceTransition:
        # get() raises NotFoundError for a rebalance that does not exist yet
        resource = self.store.get(KAFKA_REBALANCE, namespace, name)
        current = rebalance_state(resource).label

        required = REQUIRED_STATES.get(action)
        if required is not None and current != required.value:
            raise PreconditionFailedError(
                f"KafkaRebalance {namespace}/{name} is not ready to {action.value}",
                current_state=current,
                expected_state=required.value,
            )

        key, value = REBALANCE_ANNOTATIONS[action]
        self.store.patch_annotations(KAFKA_REBALANCE, namespace, name, {key: value})
        logger.info(f"Requested {action.value} for KafkaRebalance {namespace}/{name} (was {current})")
        return RebalanceTransition(action.value, namespace, name, current, (key, value))
