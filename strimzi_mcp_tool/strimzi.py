"""Strimzi resource kinds, labels and annotation keys.

These are the wire contract with the Strimzi operators. Nothing here is owned
by this package: the names must match what the Cluster, Topic and User
Operators read and write.
"""

from dataclasses import dataclass


STRIMZI_GROUP = "kafka.strimzi.io"
STRIMZI_CORE_GROUP = "core.strimzi.io"
STRIMZI_VERSION = "v1beta2"


@dataclass(frozen=True)
class ResourceKind:
    kind: str
    plural: str
    group: str = STRIMZI_GROUP
    version: str = STRIMZI_VERSION

    def __str__(self) -> str:
        return self.kind


KAFKA = ResourceKind("Kafka", "kafkas")
KAFKA_TOPIC = ResourceKind("KafkaTopic", "kafkatopics")
KAFKA_USER = ResourceKind("KafkaUser", "kafkausers")
KAFKA_CONNECT = ResourceKind("KafkaConnect", "kafkaconnects")
KAFKA_CONNECTOR = ResourceKind("KafkaConnector", "kafkaconnectors")
KAFKA_REBALANCE = ResourceKind("KafkaRebalance", "kafkarebalances")
KAFKA_BRIDGE = ResourceKind("KafkaBridge", "kafkabridges")
KAFKA_NODE_POOL = ResourceKind("KafkaNodePool", "kafkanodepools")
STRIMZI_POD_SET = ResourceKind("StrimziPodSet", "strimzipodsets", group=STRIMZI_CORE_GROUP)


# Labels
LABEL_CLUSTER = "strimzi.io/cluster"
LABEL_KIND = "strimzi.io/kind"

# Annotations
ANNOTATION_REBALANCE = "strimzi.io/rebalance"
ANNOTATION_RESTART = "strimzi.io/restart"
ANNOTATION_RESTART_TASK = "strimzi.io/restart-task"
ANNOTATION_FORCE_PASSWORD_RENEWAL = "strimzi.io/force-password-renewal"
ANNOTATION_MANUAL_ROLLING_UPDATE = "strimzi.io/manual-rolling-update"
ANNOTATION_CA_CERT_GENERATION = "strimzi.io/ca-cert-generation"

# Secrets written by the Cluster Operator for each Kafka cluster
CA_CERT_KEY = "ca.crt"


def cluster_ca_secret_name(cluster: str) -> str:
    return f"{cluster}-cluster-ca-cert"


def clients_ca_secret_name(cluster: str) -> str:
    return f"{cluster}-clients-ca-cert"


def cluster_label_selector(cluster: str) -> str:
    return f"{LABEL_CLUSTER}={cluster}"
