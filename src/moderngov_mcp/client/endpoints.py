"""Resolve loosely specified council URLs to ModernGov service endpoints.

Councils publish their web service under different paths, and users paste
anything from the WSDL link to the bare democracy site. Resolution is
best-effort: the service script name and the known sub-path segments are
configurable, and falling back to the bare host is logged since that is
where unseen deployments usually go wrong.
"""

from collections.abc import Iterable
from urllib.parse import urlsplit

from moderngov_mcp.core.logging import get_logger
from moderngov_mcp.errors import InvalidURLError

logger = get_logger(__name__)

DEFAULT_SERVICE_SCRIPT = "mgWebService.asmx"
DEFAULT_SUB_PATHS = ("democracy",)


def validate_url(url: str) -> None:
    """Raise InvalidURLError unless url has a scheme and a host."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(f"Invalid URL format: {url!r}", site_url=str(url))
    try:
        parts = urlsplit(url.strip())
        parts.port  # raises ValueError for a malformed port
    except ValueError as e:
        raise InvalidURLError(f"Invalid URL format: {url}", site_url=url) from e
    if not parts.scheme or not parts.hostname:
        raise InvalidURLError(f"Invalid URL format: {url}", site_url=url)


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for url, lower-cased."""
    validate_url(url)
    parts = urlsplit(url.strip())
    return f"{parts.scheme}://{parts.netloc}".lower()


class EndpointResolver:
    """Build `{service base}/{Operation}` URLs from a council site URL."""

    def __init__(
        self,
        service_script: str = DEFAULT_SERVICE_SCRIPT,
        sub_paths: Iterable[str] = DEFAULT_SUB_PATHS,
    ):
        self.service_script = service_script
        self.sub_paths = tuple(p.strip("/").lower() for p in sub_paths if p.strip("/"))

    def service_base(self, site_url: str) -> str:
        """Return the web service base URL for site_url.

        Raises:
            InvalidURLError: If site_url is not a valid URL
        """
        validate_url(site_url)
        # Query (typically ?WSDL) and fragment are never part of the base
        parts = urlsplit(site_url.strip())
        root = f"{parts.scheme}://{parts.netloc}"
        path = parts.path.rstrip("/")

        script_at = path.lower().find(self.service_script.lower())
        if script_at != -1:
            return root + path[: script_at + len(self.service_script)]

        last_segment = path.rsplit("/", 1)[-1].lower()
        if last_segment and last_segment in self.sub_paths:
            return f"{root}{path}/{self.service_script}"

        if path:
            logger.warning(
                "service path not recognised, falling back to host root",
                site_url=site_url,
                discarded_path=path,
            )
        else:
            logger.info("no service path given, using host root", site_url=site_url)
        return f"{root}/{self.service_script}"

    def resolve(self, site_url: str, operation: str) -> str:
        """Return the full endpoint URL for operation on site_url."""
        return f"{self.service_base(site_url)}/{operation}"
