"""Kubernetes API client construction.

Every tool takes a ``context`` argument. An empty context means the current
kubeconfig context; when no kubeconfig is available the in-cluster service
account is used instead.
"""

import logging
from typing import Optional, Tuple

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger("mcp-server")


def get_api_client(context: Optional[str] = "") -> client.ApiClient:
    try:
        return config.new_client_from_config(context=context or None)
    except ConfigException:
        if context:
            raise
        logger.debug("No kubeconfig found, falling back to in-cluster config")
        config.load_incluster_config()
        return client.ApiClient()


def get_clients(context: Optional[str] = "") -> Tuple[client.CustomObjectsApi, client.CoreV1Api]:
    """Custom resource and core API handles sharing one ``ApiClient``."""
    api_client = get_api_client(context)
    return client.CustomObjectsApi(api_client), client.CoreV1Api(api_client)
