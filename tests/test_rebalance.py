"""Unit tests for the KafkaRebalance state machine."""

import pytest
from unittest.mock import MagicMock
from kubernetes.client.rest import ApiException


def _rebalance(conditions=None, annotations=None):
    resource = {
        "metadata": {
            "name": "my-rebalance",
            "namespace": "kafka",
            "labels": {"strimzi.io/cluster": "my-cluster"},
            "annotations": annotations or {},
        },
        "spec": {},
    }
    if conditions is not None:
        resource["status"] = {"conditions": conditions, "sessionId": "abc-123"}
    return resource


def _in_state(state):
    return _rebalance([{"type": state, "status": "True"}])


def _machine(resource=None):
    from strimzi_mcp_tool.rebalance import RebalanceStateMachine
    from strimzi_mcp_tool.store import ResourceStore

    custom_api = MagicMock()
    if resource is None:
        custom_api.get_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")
    else:
        custom_api.get_namespaced_custom_object.return_value = resource
    return RebalanceStateMachine(ResourceStore(custom_api, MagicMock())), custom_api


class TestRebalanceState:

    @pytest.mark.unit
    def test_absent_is_new(self):
        from strimzi_mcp_tool.rebalance import rebalance_state

        assert rebalance_state(None).label == "New"

    @pytest.mark.unit
    def test_no_conditions_is_pending_proposal(self):
        from strimzi_mcp_tool.rebalance import rebalance_state

        assert rebalance_state(_rebalance()).label == "PendingProposal"
        assert rebalance_state(_rebalance([{"type": "Ready", "status": "False"}])).label == "PendingProposal"

    @pytest.mark.unit
    @pytest.mark.parametrize("state", ["PendingProposal", "ProposalReady", "Rebalancing", "Ready", "Stopped", "NotReady"])
    def test_true_condition_names_the_state(self, state):
        from strimzi_mcp_tool.rebalance import rebalance_state

        assert rebalance_state(_in_state(state)).label == state

    @pytest.mark.unit
    def test_observe(self):
        machine, _ = _machine(_rebalance(
            [{"type": "ProposalReady", "status": "True"}],
            annotations={"strimzi.io/rebalance": "refresh"},
        ))
        observation = machine.observe("kafka", "my-rebalance")

        assert observation.exists
        assert observation.state == "ProposalReady"
        assert observation.kafka_cluster == "my-cluster"
        assert observation.pending_annotation == "refresh"
        assert observation.session_id == "abc-123"

    @pytest.mark.unit
    def test_observe_absent(self):
        machine, _ = _machine(None)
        observation = machine.observe("kafka", "my-rebalance")

        assert not observation.exists
        assert observation.state == "New"


class TestApprove:

    @pytest.mark.unit
    def test_approve_from_proposal_ready(self):
        machine, custom_api = _machine(_in_state("ProposalReady"))
        transition = machine.approve("kafka", "my-rebalance")

        assert transition.previous_state == "ProposalReady"
        assert transition.annotation == ("strimzi.io/rebalance", "approve")
        kwargs = custom_api.patch_namespaced_custom_object.call_args.kwargs
        assert kwargs["plural"] == "kafkarebalances"
        assert kwargs["name"] == "my-rebalance"
        assert kwargs["body"] == {"metadata": {"annotations": {"strimzi.io/rebalance": "approve"}}}

    @pytest.mark.unit
    @pytest.mark.parametrize("state", ["PendingProposal", "Rebalancing", "Ready", "Stopped", "NotReady"])
    def test_approve_outside_proposal_ready_writes_nothing(self, state):
        from strimzi_mcp_tool.errors import PreconditionFailedError

        machine, custom_api = _machine(_in_state(state))
        with pytest.raises(PreconditionFailedError) as exc_info:
            machine.approve("kafka", "my-rebalance")

        assert exc_info.value.current_state == state
        assert "ProposalReady" in str(exc_info.value)
        custom_api.patch_namespaced_custom_object.assert_not_called()

    @pytest.mark.unit
    def test_approve_without_status_writes_nothing(self):
        from strimzi_mcp_tool.errors import PreconditionFailedError

        machine, custom_api = _machine(_rebalance())
        with pytest.raises(PreconditionFailedError) as exc_info:
            machine.approve("kafka", "my-rebalance")

        assert exc_info.value.current_state == "PendingProposal"
        custom_api.patch_namespaced_custom_object.assert_not_called()

    @pytest.mark.unit
    def test_approve_absent_is_not_found(self):
        from strimzi_mcp_tool.errors import NotFoundError

        machine, custom_api = _machine(None)
        with pytest.raises(NotFoundError):
            machine.approve("kafka", "my-rebalance")
        custom_api.patch_namespaced_custom_object.assert_not_called()


class TestRefreshAndStop:

    @pytest.mark.unit
    @pytest.mark.parametrize("action", ["refresh", "stop"])
    @pytest.mark.parametrize("state", ["PendingProposal", "ProposalReady", "Rebalancing", "Ready", "Stopped", "NotReady"])
    def test_allowed_from_any_state(self, action, state):
        machine, custom_api = _machine(_in_state(state))
        transition = getattr(machine, action)("kafka", "my-rebalance")

        assert transition.previous_state == state
        body = custom_api.patch_namespaced_custom_object.call_args.kwargs["body"]
        assert body == {"metadata": {"annotations": {"strimzi.io/rebalance": action}}}

    @pytest.mark.unit
    @pytest.mark.parametrize("action", ["refresh", "stop"])
    def test_absent_is_not_found(self, action):
        from strimzi_mcp_tool.errors import NotFoundError

        machine, custom_api = _machine(None)
        with pytest.raises(NotFoundError) as exc_info:
            getattr(machine, action)("kafka", "my-rebalance")

        assert "KafkaRebalance not found: kafka/my-rebalance" in str(exc_info.value)
        custom_api.patch_namespaced_custom_object.assert_not_called()

    @pytest.mark.unit
    def test_request_dispatches_actions(self):
        from strimzi_mcp_tool.rebalance import RebalanceAction

        machine, custom_api = _machine(_in_state("Rebalancing"))
        transition = machine.request(RebalanceAction.STOP, "kafka", "my-rebalance")

        assert transition.request == "stop"
        custom_api.patch_namespaced_custom_object.assert_called_once()


class TestCreate:

    @pytest.mark.unit
    def test_create_when_absent(self):
        from strimzi_mcp_tool.rebalance import CreateRebalance

        machine, custom_api = _machine(None)
        transition = machine.create(CreateRebalance(
            name="my-rebalance", namespace="kafka", kafka_cluster="my-cluster",
            mode="add-brokers", brokers=[3, 4], concurrent_leader_movements=100,
        ))

        assert transition.previous_state == "New"
        body = custom_api.create_namespaced_custom_object.call_args.kwargs["body"]
        assert body["kind"] == "KafkaRebalance"
        assert body["apiVersion"] == "kafka.strimzi.io/v1beta2"
        assert body["metadata"]["labels"] == {"strimzi.io/cluster": "my-cluster"}
        assert body["spec"] == {"mode": "add-brokers", "brokers": [3, 4], "concurrentLeaderMovements": 100}

    @pytest.mark.unit
    def test_full_mode_has_empty_spec(self):
        from strimzi_mcp_tool.rebalance import CreateRebalance

        body = CreateRebalance(name="r", namespace="kafka", kafka_cluster="c").to_body()
        assert body["spec"] == {}

    @pytest.mark.unit
    def test_create_when_present_is_already_exists(self):
        from strimzi_mcp_tool.errors import AlreadyExistsError
        from strimzi_mcp_tool.rebalance import CreateRebalance

        machine, custom_api = _machine(_in_state("Ready"))
        with pytest.raises(AlreadyExistsError):
            machine.request(CreateRebalance(name="my-rebalance", namespace="kafka", kafka_cluster="my-cluster"))
        custom_api.create_namespaced_custom_object.assert_not_called()

    @pytest.mark.unit
    def test_create_conflict_is_already_exists(self):
        from strimzi_mcp_tool.errors import AlreadyExistsError
        from strimzi_mcp_tool.rebalance import CreateRebalance

        machine, custom_api = _machine(None)
        custom_api.create_namespaced_custom_object.side_effect = ApiException(status=409, reason="Conflict")
        with pytest.raises(AlreadyExistsError):
            machine.create(CreateRebalance(name="my-rebalance", namespace="kafka", kafka_cluster="my-cluster"))

    @pytest.mark.unit
    def test_invalid_mode(self):
        from strimzi_mcp_tool.rebalance import CreateRebalance

        with pytest.raises(ValueError, match="Invalid rebalance mode"):
            CreateRebalance(name="r", namespace="kafka", kafka_cluster="c", mode="sideways")

    @pytest.mark.unit
    def test_broker_modes_need_brokers(self):
        from strimzi_mcp_tool.rebalance import CreateRebalance

        with pytest.raises(ValueError, match="requires at least one broker"):
            CreateRebalance(name="r", namespace="kafka", kafka_cluster="c", mode="remove-brokers")


class TestAnnotationTable:

    @pytest.mark.unit
    def test_every_action_has_an_annotation(self):
        from strimzi_mcp_tool.rebalance import REBALANCE_ANNOTATIONS, RebalanceAction

        assert set(REBALANCE_ANNOTATIONS) == set(RebalanceAction)
        for action, (key, value) in REBALANCE_ANNOTATIONS.items():
            assert key == "strimzi.io/rebalance"
            assert value == action.value
