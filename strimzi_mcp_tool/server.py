"""Strimzi MCP server entry point."""

import logging
from typing import Optional

from fastmcp import FastMCP

from strimzi_mcp_tool.config import Settings
from strimzi_mcp_tool.tools import (
    register_health_tools,
    register_rebalance_tools,
    register_resource_tools,
    register_security_tools,
)

logger = logging.getLogger("mcp-server")

INSTRUCTIONS = """
Operate and inspect Strimzi Kafka clusters on Kubernetes.

- Start with health_check for an overview of clusters, topics, users,
  connectors and CA certificates.
- Rebalances follow create_rebalance -> describe_rebalance (wait for
  ProposalReady) -> approve_rebalance. Use refresh_rebalance for a new
  proposal and stop_rebalance to halt one.
- All tools accept an optional `context` to target a kubeconfig context.
"""


def create_server(settings: Optional[Settings] = None) -> FastMCP:
    settings = settings or Settings()
    server = FastMCP(name="strimzi-mcp-server", instructions=INSTRUCTIONS)

    register_health_tools(server, settings.non_destructive, settings.cert_warning_days)
    register_resource_tools(server, settings.non_destructive)
    register_rebalance_tools(server, settings.non_destructive)
    register_security_tools(server, settings.non_destructive, settings.cert_warning_days)
    return server


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if settings.non_destructive:
        logger.info("Running in non-destructive mode: mutating tools are disabled")
    create_server(settings).run(transport=settings.transport)


if __name__ == "__main__":
    main()
