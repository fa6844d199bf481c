"""Exception hierarchy for ModernGov client failures."""

EXCERPT_LENGTH = 200


def excerpt(body: str | None, length: int = EXCERPT_LENGTH) -> str:
    """Return a single-line, truncated preview of a response body."""
    if not body:
        return ""
    flat = " ".join(body.split())
    if len(flat) <= length:
        return flat
    return flat[:length] + "..."


class ModGovError(Exception):
    """Base class for all ModernGov client errors.

    Carries the logical operation and site URL so a failure can be
    diagnosed without re-running the call.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        site_url: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.site_url = site_url

    def __str__(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.site_url:
            context.append(f"site_url={self.site_url}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class InvalidURLError(ModGovError):
    """Raised when a site URL is not a syntactically valid URL."""

    pass


class MissingParameterError(ModGovError):
    """Raised when a required operation parameter is absent."""

    def __init__(self, parameter: str, **kwargs):
        super().__init__(f"Missing required parameter: {parameter}", **kwargs)
        self.parameter = parameter


class TransportError(ModGovError):
    """Raised on connection failure, non-2xx status or an empty body.

    Never retried here; callers should retry with backoff if they want to.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body_excerpt: str = "",
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body_excerpt = body_excerpt


class NormalizationError(ModGovError):
    """Raised when a response body cannot be turned into canonical records."""

    def __init__(self, message: str, *, body_excerpt: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.body_excerpt = body_excerpt

    def __str__(self) -> str:
        text = super().__str__()
        if self.body_excerpt:
            text = f"{text}. Response preview: {self.body_excerpt}"
        return text


class MalformedResponseError(NormalizationError):
    """Body is empty, not XML, unparseable, or an HTML error page."""

    pass
