"""Aggregated health check across Strimzi resources.

Tools:
    health_check - Scan clusters, topics, users, connectors and CA certificates
"""

import logging
from typing import Any, Dict

from mcp.types import ToolAnnotations

from strimzi_mcp_tool.certificates import DEFAULT_WARNING_DAYS
from strimzi_mcp_tool.health import HealthCheckContext, run_health_check
from strimzi_mcp_tool.store import ResourceStore

logger = logging.getLogger("mcp-server")


def register_health_tools(server, non_destructive: bool, cert_warning_days: int = DEFAULT_WARNING_DAYS):
    """Register the health check tool."""

    @server.tool(
        annotations=ToolAnnotations(
            title="Strimzi Health Check",
            readOnlyHint=True,
        ),
    )
    def health_check(
        namespace: str = "",
        kafka_cluster: str = "",
        warning_days: int = 0,
        context: str = ""
    ) -> Dict[str, Any]:
        """Run a health check of Strimzi resources and report any issues.

        Checks Kafka clusters and their broker pods, KafkaTopics, KafkaUsers,
        KafkaConnect clusters and connectors (including failed tasks), and the
        expiry of the cluster CA and clients CA certificates. Every resource
        gets one finding with severity OK, WARNING or ERROR.

        Args:
            namespace: Namespace to check (empty = all namespaces)
            kafka_cluster: Only check resources of this Kafka cluster
            warning_days: Certificate expiry warning threshold in days (0 = server default)
            context: Kubernetes context (uses current if not specified)
        """
        try:
            check_context = HealthCheckContext(
                store=ResourceStore.for_context(context),
                namespace_filter=namespace or None,
                cluster_filter=kafka_cluster or None,
                warning_days=warning_days if warning_days > 0 else cert_warning_days,
            )
            result = run_health_check(check_context)

            response: Dict[str, Any] = {
                "success": True,
                "context": context or "current",
                "namespace": namespace or "all",
                "report": result.format(),
            }
            response.update(result.to_dict())
            return response
        except Exception as e:
            logger.error(f"Error running health check: {e}")
            return {"success": False, "error": str(e)}
