"""Health checkers for Strimzi resources.

Each checker scans one resource kind within the context's scope and appends
one finding per resource to the shared result. Checkers never look at each
other's findings, so the order in ``DEFAULT_CHECKERS`` only changes the order
of the rendered report. To add a checker, subclass ``HealthChecker`` and add
an instance to ``DEFAULT_CHECKERS``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from kubernetes.client.rest import ApiException

from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate
from strimzi_mcp_tool.conditions import (
    ResolvedState,
    is_failure,
    is_ready,
    resource_state,
)
from strimzi_mcp_tool.errors import NotFoundError
from strimzi_mcp_tool.health.models import (
    HealthCheckContext,
    HealthCheckResult,
    Severity,
)
from strimzi_mcp_tool.strimzi import (
    CA_CERT_KEY,
    KAFKA,
    KAFKA_CONNECT,
    KAFKA_CONNECTOR,
    KAFKA_TOPIC,
    KAFKA_USER,
    LABEL_CLUSTER,
    LABEL_KIND,
    ResourceKind,
    clients_ca_secret_name,
    cluster_ca_secret_name,
    cluster_label_selector,
)

logger = logging.getLogger("mcp-server")

# Raised while reading a single resource; these become an ERROR finding for
# that resource and the scan moves on.
RESOURCE_ERRORS = (ApiException, AttributeError, KeyError, TypeError, ValueError)

CONNECT_FAILED_STATE = "FAILED"


def classify_state(state: ResolvedState) -> Severity:
    if is_ready(state):
        return Severity.OK
    if is_failure(state):
        return Severity.ERROR
    return Severity.WARNING


def describe_state(state: ResolvedState) -> str:
    if is_ready(state):
        return "Ready"
    if state.detail:
        return f"{state.label} - {state.detail}"
    return state.label


def _identity(resource: Any) -> Tuple[str, str]:
    if isinstance(resource, dict):
        metadata = resource.get("metadata")
        if isinstance(metadata, dict):
            return metadata.get("namespace") or "", metadata.get("name") or "<unnamed>"
    return "", "<unreadable>"


class HealthChecker(ABC):
    """One kind of health check. Subclasses implement :meth:`check`."""

    name: str = ""

    @abstractmethod
    def check(self, context: HealthCheckContext, result: HealthCheckResult) -> None:
        """Scan resources within ``context`` and append findings to ``result``.

        Must not raise for a single bad resource. Listing failures propagate
        and are recorded by :func:`run_health_check`.
        """

    def list_scoped(
        self,
        context: HealthCheckContext,
        kind: ResourceKind,
        by_cluster_label: bool = True,
    ) -> List[Dict[str, Any]]:
        selector = None
        if by_cluster_label and context.has_cluster_filter:
            selector = cluster_label_selector(context.cluster_filter)
        return context.store.list(kind, namespace=context.namespace_filter, label_selector=selector)

    def scan(
        self,
        context: HealthCheckContext,
        result: HealthCheckResult,
        kind: ResourceKind,
        resources: Sequence[Any],
        evaluate: Optional[Callable[[HealthCheckContext, Dict[str, Any]], Tuple[Severity, str]]] = None,
    ) -> None:
        evaluate = evaluate or self.evaluate
        for resource in resources:
            namespace, name = _identity(resource)
            try:
                severity, summary = evaluate(context, resource)
            except RESOURCE_ERRORS as e:
                logger.warning(f"Unreadable {kind.kind} {namespace}/{name}: {e}")
                severity, summary = Severity.ERROR, f"unreadable resource: {e}"
            result.add(kind.kind, namespace, name, severity, summary)

    def evaluate(self, context: HealthCheckContext, resource: Dict[str, Any]) -> Tuple[Severity, str]:
        if not resource.get("status"):
            return Severity.WARNING, "Unknown - no status reported"
        state = resource_state(resource)
        return classify_state(state), describe_state(state)


def list_kafkas(context: HealthCheckContext) -> List[Dict[str, Any]]:
    kafkas = context.store.list(KAFKA, namespace=context.namespace_filter)
    if context.has_cluster_filter:
        kafkas = [k for k in kafkas if _identity(k)[1] == context.cluster_filter]
    return kafkas


class KafkaHealthChecker(HealthChecker):
    name = "kafka"

    def check(self, context: HealthCheckContext, result: HealthCheckResult) -> None:
        self.scan(context, result, KAFKA, list_kafkas(context))

    def evaluate(self, context: HealthCheckContext, resource: Dict[str, Any]) -> Tuple[Severity, str]:
        severity, summary = super().evaluate(context, resource)
        namespace, name = _identity(resource)
        try:
            pods = context.store.list_pods(
                namespace, label_selector=f"{LABEL_CLUSTER}={name},{LABEL_KIND}=Kafka",
            )
        except ApiException as e:
            logger.warning(f"Could not list broker pods for {namespace}/{name}: {e}")
            return max_severity(severity, Severity.WARNING), f"{summary}; broker pods unavailable"

        running = sum(1 for p in pods if p.status and p.status.phase == "Running")
        summary = f"{summary}; brokers {running}/{len(pods)} running"
        if running < len(pods):
            severity = max_severity(severity, Severity.WARNING)
        return severity, summary


class TopicHealthChecker(HealthChecker):
    name = "topics"

    def check(self, context: HealthCheckContext, result: HealthCheckResult) -> None:
        self.scan(context, result, KAFKA_TOPIC, self.list_scoped(context, KAFKA_TOPIC))


class UserHealthChecker(HealthChecker):
    name = "users"

    def check(self, context: HealthCheckContext, result: HealthCheckResult) -> None:
        self.scan(context, result, KAFKA_USER, self.list_scoped(context, KAFKA_USER))


def first_line(text: Any) -> str:
    lines = str(text).strip().splitlines()
    return lines[0] if lines else ""


def failed_tasks(connector: Dict[str, Any]) -> List[str]:
    """Describe connector tasks that report an error trace or FAILED state."""
    connector_status = (connector.get("status") or {}).get("connectorStatus") or {}
    failures: List[str] = []
    for task in connector_status.get("tasks") or []:
        trace = task.get("trace")
        state = task.get("state")
        if trace:
            failures.append(f"task {task.get('id')} failed: {first_line(trace)}")
        elif state == CONNECT_FAILED_STATE:
            failures.append(f"task {task.get('id')} {state}")
    return failures


class ConnectorHealthChecker(HealthChecker):
    """Checks Kafka Connect clusters and their connectors.

    The ``strimzi.io/cluster`` label on these resources names a KafkaConnect,
    not a Kafka cluster, so they are only scoped by namespace.
    """

    name = "connect"

    def check(self, context: HealthCheckContext, result: HealthCheckResult) -> None:
        connects = self.list_scoped(context, KAFKA_CONNECT, by_cluster_label=False)
        self.scan(context, result, KAFKA_CONNECT, connects)
        connectors = self.list_scoped(context, KAFKA_CONNECTOR, by_cluster_label=False)
        self.scan(context, result, KAFKA_CONNECTOR, connectors, evaluate=self.evaluate_connector)

    def evaluate_connector(self, context: HealthCheckContext, resource: Dict[str, Any]) -> Tuple[Severity, str]:
        severity, summary = self.evaluate(context, resource)
        connector_status = (resource.get("status") or {}).get("connectorStatus") or {}
        connector_state = (connector_status.get("connector") or {}).get("state")
        problems = failed_tasks(resource)
        if connector_state == CONNECT_FAILED_STATE:
            problems.insert(0, "connector FAILED")
        if problems:
            return Severity.ERROR, f"{summary}; " + "; ".join(problems)
        return severity, summary


class CertificateHealthChecker(HealthChecker):
    """Checks the cluster CA and clients CA certificates of each Kafka cluster."""

    name = "certificates"

    def check(self, context: HealthCheckContext, result: HealthCheckResult) -> None:
        for kafka in list_kafkas(context):
            namespace, cluster = _identity(kafka)
            for label, secret_name in (
                ("cluster CA", cluster_ca_secret_name(cluster)),
                ("clients CA", clients_ca_secret_name(cluster)),
            ):
                try:
                    severity, summary = self._check_secret(context, namespace, secret_name)
                except RESOURCE_ERRORS as e:
                    logger.warning(f"Unreadable secret {namespace}/{secret_name}: {e}")
                    severity, summary = Severity.ERROR, f"unreadable secret: {e}"
                result.add("Secret", namespace, secret_name, severity, f"{label}: {summary}")

    def _check_secret(self, context: HealthCheckContext, namespace: str, secret_name: str) -> Tuple[Severity, str]:
        try:
            data = context.store.get_secret(namespace, secret_name)
        except NotFoundError:
            return Severity.WARNING, "secret not found"
        except ApiException as e:
            logger.warning(f"Could not read secret {namespace}/{secret_name}: {e}")
            return Severity.ERROR, f"secret unreadable: {e.reason or e.status}"

        raw = data.get(CA_CERT_KEY)
        if raw is None:
            return Severity.WARNING, f"{CA_CERT_KEY} not found in secret"

        evaluation = evaluate_certificate(raw, warning_days=context.warning_days)
        severity = {
            ExpiryStatus.OK: Severity.OK,
            ExpiryStatus.WARNING: Severity.WARNING,
            ExpiryStatus.EXPIRED: Severity.ERROR,
            ExpiryStatus.UNREADABLE: Severity.WARNING,
        }[evaluation.status]
        return severity, evaluation.summary


def max_severity(a: Severity, b: Severity) -> Severity:
    return a if a.sort_order <= b.sort_order else b


DEFAULT_CHECKERS: List[HealthChecker] = [
    KafkaHealthChecker(),
    TopicHealthChecker(),
    UserHealthChecker(),
    ConnectorHealthChecker(),
    CertificateHealthChecker(),
]


def run_health_check(
    context: HealthCheckContext,
    checkers: Optional[Sequence[HealthChecker]] = None,
) -> HealthCheckResult:
    """Run every checker against ``context`` and return the combined result.

    A checker that fails outright (for example, no permission to list its
    kind) is recorded as an incomplete check; the others still run.
    """
    result = HealthCheckResult()
    for checker in DEFAULT_CHECKERS if checkers is None else checkers:
        try:
            checker.check(context, result)
        except Exception as e:
            logger.error(f"Health checker '{checker.name}' failed: {e}")
            result.record_failure(checker.name, str(e))
    return result
