from strimzi_mcp_tool.tools.health import register_health_tools
from strimzi_mcp_tool.tools.rebalance import register_rebalance_tools
from strimzi_mcp_tool.tools.resources import register_resource_tools
from strimzi_mcp_tool.tools.security import register_security_tools

__all__ = [
    "register_health_tools",
    "register_rebalance_tools",
    "register_resource_tools",
    "register_security_tools",
]
