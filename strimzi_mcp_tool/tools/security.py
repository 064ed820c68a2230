"""Certificate and credential tools.

Tools:
    get_certificate_expiry  - Check cluster CA and clients CA expiry
    list_certificates       - List the certificate Secrets of a Kafka cluster
    rotate_user_credentials - Force renewal of a KafkaUser's credentials
"""

import logging
from typing import Any, Dict, List

from kubernetes.client.rest import ApiException
from mcp.types import ToolAnnotations

from strimzi_mcp_tool.actions import renew_user_credentials
from strimzi_mcp_tool.certificates import (
    DEFAULT_WARNING_DAYS,
    ExpiryStatus,
    evaluate_certificate,
)
from strimzi_mcp_tool.errors import NotFoundError, StrimziToolError
from strimzi_mcp_tool.store import ResourceStore
from strimzi_mcp_tool.strimzi import (
    ANNOTATION_CA_CERT_GENERATION,
    CA_CERT_KEY,
    KAFKA,
    clients_ca_secret_name,
    cluster_ca_secret_name,
    cluster_label_selector,
)

logger = logging.getLogger("mcp-server")

CERT_SECRET_MARKERS = ("-cert", "-crt", "-ca")


def _check_ca(store: ResourceStore, namespace: str, secret_name: str, warning_days: int) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"secret": secret_name}
    try:
        data = store.get_secret(namespace, secret_name)
    except NotFoundError:
        entry.update({"status": "missing", "summary": "secret not found"})
        return entry
    except ApiException as e:
        logger.warning(f"Could not read secret {namespace}/{secret_name}: {e}")
        entry.update({"status": ExpiryStatus.UNREADABLE.value, "summary": f"secret unreadable: {e.reason or e.status}"})
        return entry

    raw = data.get(CA_CERT_KEY)
    if raw is None:
        entry.update({"status": "missing", "summary": f"{CA_CERT_KEY} not found in secret"})
        return entry

    entry.update(evaluate_certificate(raw, warning_days=warning_days).to_dict())
    return entry


def register_security_tools(server, non_destructive: bool, cert_warning_days: int = DEFAULT_WARNING_DAYS):
    """Register certificate and credential tools."""

    @server.tool(
        annotations=ToolAnnotations(
            title="Get Certificate Expiry",
            readOnlyHint=True,
        ),
    )
    def get_certificate_expiry(
        kafka_cluster: str,
        namespace: str,
        warning_days: int = 0,
        context: str = ""
    ) -> Dict[str, Any]:
        """Check when the cluster CA and clients CA certificates of a Kafka cluster expire.

        Each certificate is classified as ok, warning (expires within
        warning_days), expired, unreadable or missing.

        Args:
            kafka_cluster: Kafka cluster name
            namespace: Namespace of the Kafka cluster
            warning_days: Warn about certificates expiring within this many days (0 = server default)
            context: Kubernetes context (uses current if not specified)
        """
        try:
            store = ResourceStore.for_context(context)
            store.get(KAFKA, namespace, kafka_cluster)
            days = warning_days if warning_days > 0 else cert_warning_days

            certificates = {
                "clusterCa": _check_ca(store, namespace, cluster_ca_secret_name(kafka_cluster), days),
                "clientsCa": _check_ca(store, namespace, clients_ca_secret_name(kafka_cluster), days),
            }
            needs_attention = any(
                c["status"] != ExpiryStatus.OK.value for c in certificates.values()
            )
            return {
                "success": True,
                "context": context or "current",
                "kafkaCluster": f"{namespace}/{kafka_cluster}",
                "warningDays": days,
                "certificates": certificates,
                "needsAttention": needs_attention,
            }
        except StrimziToolError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error checking certificate expiry: {e}")
            return {"success": False, "error": str(e)}

    @server.tool(
        annotations=ToolAnnotations(
            title="List Kafka Certificates",
            readOnlyHint=True,
        ),
    )
    def list_certificates(
        kafka_cluster: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """List the certificate Secrets that belong to a Kafka cluster.

        Args:
            kafka_cluster: Kafka cluster name
            namespace: Namespace of the Kafka cluster
            context: Kubernetes context (uses current if not specified)
        """
        try:
            store = ResourceStore.for_context(context)
            store.get(KAFKA, namespace, kafka_cluster)

            secrets = store.list_secrets(namespace, label_selector=cluster_label_selector(kafka_cluster))
            ca_names = {cluster_ca_secret_name(kafka_cluster), clients_ca_secret_name(kafka_cluster)}

            entries: List[Dict[str, Any]] = []
            for secret in secrets:
                secret_name = secret.metadata.name
                if secret_name not in ca_names and not any(m in secret_name for m in CERT_SECRET_MARKERS):
                    continue
                annotations = secret.metadata.annotations or {}
                entries.append({
                    "name": secret_name,
                    "keys": sorted((secret.data or {}).keys()),
                    "caCertGeneration": annotations.get(ANNOTATION_CA_CERT_GENERATION),
                    "isCa": secret_name in ca_names,
                })

            return {
                "success": True,
                "context": context or "current",
                "kafkaCluster": f"{namespace}/{kafka_cluster}",
                "count": len(entries),
                "secrets": entries,
            }
        except StrimziToolError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error listing certificates: {e}")
            return {"success": False, "error": str(e)}

    if non_destructive:
        return

    @server.tool(
        annotations=ToolAnnotations(
            title="Rotate KafkaUser Credentials",
            readOnlyHint=False,
            destructiveHint=True,
        ),
    )
    def rotate_user_credentials(
        name: str,
        namespace: str,
        context: str = ""
    ) -> Dict[str, Any]:
        """Force the User Operator to regenerate a KafkaUser's password or certificate.

        Clients using the old credentials must be updated afterwards.

        Args:
            name: KafkaUser name
            namespace: Namespace of the user
            context: Kubernetes context (uses current if not specified)
        """
        try:
            outcome = renew_user_credentials(ResourceStore.for_context(context), namespace, name)
            response = {
                "success": True,
                "context": context or "current",
                "authentication": outcome["authentication"],
                "secret": name,
                "message": "Credential renewal requested. Update any clients using the old credentials.",
            }
            response.update(outcome["write"].to_dict())
            return response
        except StrimziToolError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error rotating credentials: {e}")
            return {"success": False, "error": str(e)}
