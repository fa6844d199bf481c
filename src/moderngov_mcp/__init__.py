"""ModernGov MCP - uniform access to UK council ModernGov web services."""

from moderngov_mcp.client.modgov_client import ModGovClient
from moderngov_mcp.matching.matcher import CouncilMatcher

__all__ = ["ModGovClient", "CouncilMatcher"]
