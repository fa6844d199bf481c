"""ModernGov web service client."""

from moderngov_mcp.client.endpoints import EndpointResolver, origin_of
from moderngov_mcp.client.modgov_client import ModGovClient
from moderngov_mcp.client.rate_limiter import RateLimiter

__all__ = ["EndpointResolver", "ModGovClient", "RateLimiter", "origin_of"]
