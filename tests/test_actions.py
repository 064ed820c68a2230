"""Unit tests for annotation-driven operator actions."""

import pytest
from unittest.mock import MagicMock
from kubernetes.client.rest import ApiException


def _store(resources=None):
    """Store whose get() returns ``resources[(plural, name)]`` or a 404."""
    from strimzi_mcp_tool.store import ResourceStore

    resources = resources or {}
    custom_api = MagicMock()

    def get(group, version, namespace, plural, name):
        if (plural, name) not in resources:
            raise ApiException(status=404, reason="Not Found")
        return resources[(plural, name)]

    custom_api.get_namespaced_custom_object.side_effect = get
    return ResourceStore(custom_api, MagicMock())


def _annotations_written(store):
    return store.custom_api.patch_namespaced_custom_object.call_args.kwargs["body"]["metadata"]["annotations"]


class TestRestartConnector:

    @pytest.mark.unit
    def test_restart_connector(self):
        from strimzi_mcp_tool.actions import restart_connector

        store = _store({("kafkaconnectors", "sink"): {}})
        write = restart_connector(store, "kafka", "sink")

        assert _annotations_written(store) == {"strimzi.io/restart": "true"}
        assert write.target == "KafkaConnector kafka/sink"

    @pytest.mark.unit
    def test_restart_single_task(self):
        from strimzi_mcp_tool.actions import restart_connector

        store = _store({("kafkaconnectors", "sink"): {}})
        write = restart_connector(store, "kafka", "sink", task_id=0)

        assert _annotations_written(store) == {"strimzi.io/restart-task": "0"}
        assert write.to_dict()["annotation"] == {"strimzi.io/restart-task": "0"}

    @pytest.mark.unit
    def test_missing_connector(self):
        from strimzi_mcp_tool.actions import restart_connector
        from strimzi_mcp_tool.errors import NotFoundError

        store = _store()
        with pytest.raises(NotFoundError, match="KafkaConnector not found"):
            restart_connector(store, "kafka", "sink")
        store.custom_api.patch_namespaced_custom_object.assert_not_called()


class TestRenewUserCredentials:

    @pytest.mark.unit
    def test_renew_scram_user(self):
        from strimzi_mcp_tool.actions import renew_user_credentials

        user = {"spec": {"authentication": {"type": "scram-sha-512"}}}
        store = _store({("kafkausers", "app"): user})
        outcome = renew_user_credentials(store, "kafka", "app")

        assert outcome["authentication"] == "scram-sha-512"
        written = _annotations_written(store)
        assert list(written) == ["strimzi.io/force-password-renewal"]
        assert written["strimzi.io/force-password-renewal"] == outcome["write"].value

    @pytest.mark.unit
    def test_user_without_authentication(self):
        from strimzi_mcp_tool.actions import user_authentication_type

        assert user_authentication_type({"spec": {}}) == "none"
        assert user_authentication_type({}) == "none"


class TestRollingUpdate:

    @pytest.mark.unit
    def test_whole_cluster(self):
        from strimzi_mcp_tool.actions import rolling_update_kafka

        store = _store({("kafkas", "my-cluster"): {}})
        write = rolling_update_kafka(store, "kafka", "my-cluster")

        assert write.kind == "Kafka"
        assert "strimzi.io/manual-rolling-update" in _annotations_written(store)

    @pytest.mark.unit
    def test_node_pool(self):
        from strimzi_mcp_tool.actions import rolling_update_kafka

        store = _store({("kafkas", "my-cluster"): {}, ("strimzipodsets", "my-cluster-brokers"): {}})
        write = rolling_update_kafka(store, "kafka", "my-cluster", node_pool="brokers")

        kwargs = store.custom_api.patch_namespaced_custom_object.call_args.kwargs
        assert kwargs["group"] == "core.strimzi.io"
        assert kwargs["name"] == "my-cluster-brokers"
        assert write.to_dict()["annotation"] == {"strimzi.io/manual-rolling-update": "true"}

    @pytest.mark.unit
    def test_missing_node_pool(self):
        from strimzi_mcp_tool.actions import rolling_update_kafka
        from strimzi_mcp_tool.errors import NotFoundError

        store = _store({("kafkas", "my-cluster"): {}})
        with pytest.raises(NotFoundError, match="node pool 'brokers'"):
            rolling_update_kafka(store, "kafka", "my-cluster", node_pool="brokers")

    @pytest.mark.unit
    def test_single_pod(self):
        from strimzi_mcp_tool.actions import rolling_update_kafka

        store = _store({("kafkas", "my-cluster"): {}})
        write = rolling_update_kafka(store, "kafka", "my-cluster", pod_name="my-cluster-brokers-0")

        kwargs = store.core_api.patch_namespaced_pod.call_args.kwargs
        assert kwargs["name"] == "my-cluster-brokers-0"
        assert kwargs["body"] == {"metadata": {"annotations": {"strimzi.io/manual-rolling-update": "true"}}}
        assert write.kind == "Pod"
        store.custom_api.patch_namespaced_custom_object.assert_not_called()

    @pytest.mark.unit
    def test_missing_kafka(self):
        from strimzi_mcp_tool.actions import rolling_update_kafka
        from strimzi_mcp_tool.errors import NotFoundError

        with pytest.raises(NotFoundError, match="Kafka not found: kafka/my-cluster"):
            rolling_update_kafka(_store(), "kafka", "my-cluster")
