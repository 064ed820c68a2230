"""MCP tools for operating Strimzi Kafka clusters on Kubernetes."""

__version__ = "0.1.0"
