from strimzi_mcp_tool.health.checkers import (
    DEFAULT_CHECKERS,
    CertificateHealthChecker,
    ConnectorHealthChecker,
    HealthChecker,
    KafkaHealthChecker,
    TopicHealthChecker,
    UserHealthChecker,
    run_health_check,
)
from strimzi_mcp_tool.health.models import (
    HealthCheckContext,
    HealthCheckResult,
    HealthFinding,
    Severity,
)

__all__ = [
    "DEFAULT_CHECKERS",
    "CertificateHealthChecker",
    "ConnectorHealthChecker",
    "HealthChecker",
    "KafkaHealthChecker",
    "TopicHealthChecker",
    "UserHealthChecker",
    "run_health_check",
    "HealthCheckContext",
    "HealthCheckResult",
    "HealthFinding",
    "Severity",
]
