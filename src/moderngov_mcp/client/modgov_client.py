"""Async client for ModernGov (mgWebService.asmx) council web services."""

from collections.abc import Callable
from datetime import date
from typing import Any, TypeVar

import httpx

from moderngov_mcp.client import normalizer
from moderngov_mcp.client.endpoints import EndpointResolver, origin_of, validate_url
from moderngov_mcp.client.rate_limiter import RateLimiter
from moderngov_mcp.config import Settings, settings
from moderngov_mcp.core.logging import bind_context, get_logger, unbind_context
from moderngov_mcp.errors import (
    MissingParameterError,
    ModGovError,
    NormalizationError,
    TransportError,
    excerpt,
)
from moderngov_mcp.models.schemas import (
    CalendarEvent,
    Committee,
    ElectionResult,
    Meeting,
    ParishCouncil,
    RepresentativeInfo,
    Ward,
    WebcastMeeting,
)

logger = get_logger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Server-bug workarounds
#
# The WSDL marks several parameters optional, but live servers fault or
# return an HTML error page without them. These are workarounds, not
# real API defaults.
# ---------------------------------------------------------------------------

# GetAllMeetingsByDate faults without lCommitteeId. 138 is the Cabinet
# committee on the deployment the workaround was written against; servers
# that lack it answer with an empty meeting list.
DEFAULT_COMMITTEE_ID = 138

# GetCalendarEvents faults unless the calendar scope and user are sent
DEFAULT_GLOBAL_CALENDAR = True
DEFAULT_USER_ID = 0

# GetAllMeetingsByDate faults unless the sort order is sent
DEFAULT_ASCENDING_ORDER = True

# GetMpOrMep* faults unless MPs vs MEPs is sent
DEFAULT_IS_MPS = True


def current_year_range(today: date) -> tuple[str, str]:
    """Whole calendar year containing today, as (YYYY-01-01, YYYY-12-31).

    GetMeetings, GetAllMeetingsByDate, GetCalendarEvents and
    GetWebCastMeetings all fault without a date range.
    """
    return f"{today.year}-01-01", f"{today.year}-12-31"


class ModGovClient:
    """Client for the ModernGov web service API.

    One method per upstream operation. Each call validates its inputs, waits
    its turn for the council's origin, applies the workarounds above and
    normalizes the XML answer into canonical records. Failures are raised
    straight away; nothing is retried here.
    """

    def __init__(
        self,
        config: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        resolver: EndpointResolver | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.config = config or settings
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=self.config.request_timeout,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/xml, text/xml",
            },
            follow_redirects=True,
        )
        self.rate_limiter = rate_limiter or RateLimiter(self.config.rate_limit_interval)
        self.resolver = resolver or EndpointResolver(
            service_script=self.config.service_script,
            sub_paths=self.config.sub_path_list(),
        )
        self._today = today

    async def __aenter__(self) -> "ModGovClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    def _date_range(
        self, operation: str, start: str | None, end: str | None
    ) -> tuple[str, str]:
        if start and end:
            return start, end
        if start or end:
            logger.warning(
                "partial date range ignored, using current year",
                operation=operation,
                start=start,
                end=end,
            )
        return current_year_range(self._today())

    async def _request(
        self,
        operation: str,
        site_url: str,
        parser: Callable[[str], T],
        params: dict[str, Any] | None = None,
        required: dict[str, Any] | None = None,
    ) -> T:
        try:
            validate_url(site_url)
            for name, value in (required or {}).items():
                if value is None or (isinstance(value, str) and not value.strip()):
                    raise MissingParameterError(name, site_url=site_url)
        except ModGovError as e:
            e.operation = operation
            raise

        bind_context(operation=operation, site_url=site_url)
        try:
            await self.rate_limiter.wait(origin_of(site_url))
            endpoint = self.resolver.resolve(site_url, operation)
            query = {k: v for k, v in (params or {}).items() if v is not None}

            logger.info("modgov request", endpoint=endpoint, params=query)
            body = await self._get(operation, site_url, endpoint, query)

            try:
                return parser(body)
            except NormalizationError as e:
                e.operation = operation
                e.site_url = site_url
                e.body_excerpt = e.body_excerpt or excerpt(body)
                logger.error(
                    "modgov response rejected",
                    endpoint=endpoint,
                    error=e.message,
                    preview=e.body_excerpt,
                )
                raise
        finally:
            unbind_context("operation", "site_url")

    async def _get(
        self, operation: str, site_url: str, endpoint: str, params: dict[str, Any]
    ) -> str:
        try:
            response = await self.client.get(endpoint, params=params)
        except httpx.HTTPError as e:
            raise TransportError(
                f"Request to {endpoint} failed: {e}",
                operation=operation,
                site_url=site_url,
            ) from e

        if not response.is_success:
            raise TransportError(
                f"API request failed with status code {response.status_code}",
                status_code=response.status_code,
                body_excerpt=excerpt(response.text),
                operation=operation,
                site_url=site_url,
            )
        if not response.content:
            raise TransportError(
                "No data received from API",
                status_code=response.status_code,
                operation=operation,
                site_url=site_url,
            )
        return response.text

    # ------------------------------------------------------------------
    # Councillors
    # ------------------------------------------------------------------

    async def get_councillors_by_ward(self, site_url: str) -> list[Ward]:
        """Get all councillors, grouped by ward."""
        return await self._request(
            "GetCouncillorsByWard", site_url, normalizer.parse_councillors
        )

    async def get_councillors_by_ward_id(self, site_url: str, ward_id: int) -> list[Ward]:
        """Get the councillors for a single ward."""
        return await self._request(
            "GetCouncillorsByWardId",
            site_url,
            normalizer.parse_councillors,
            params={"lWardId": ward_id},
            required={"ward_id": ward_id},
        )

    async def get_councillors_by_postcode(self, site_url: str, postcode: str) -> list[Ward]:
        """Get the councillors for the ward containing a postcode."""
        return await self._request(
            "GetCouncillorsByPostcode",
            site_url,
            normalizer.parse_councillors,
            params={"sPostcode": postcode},
            required={"postcode": postcode},
        )

    # ------------------------------------------------------------------
    # Committees and meetings
    # ------------------------------------------------------------------

    async def get_committees(self, site_url: str) -> list[Committee]:
        return await self._request("GetCommittees", site_url, normalizer.parse_committees)

    async def get_meetings(
        self,
        site_url: str,
        committee_id: int,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> list[Meeting]:
        """Get a committee's meetings between two YYYY-MM-DD dates.

        Without both dates the current calendar year is requested.
        """
        operation = "GetMeetings"
        start, end = self._date_range(operation, from_date, to_date)
        return await self._request(
            operation,
            site_url,
            normalizer.parse_meetings,
            params={"lCommitteeId": committee_id, "sFromDate": start, "sToDate": end},
            required={"committee_id": committee_id},
        )

    async def get_meeting(self, site_url: str, meeting_id: int) -> Meeting | None:
        """Get a single meeting, or None if the server returns none."""
        meetings = await self._request(
            "GetMeeting",
            site_url,
            normalizer.parse_meetings,
            params={"lMeetingId": meeting_id},
            required={"meeting_id": meeting_id},
        )
        return meetings[0] if meetings else None

    async def get_meetings_by_date(
        self,
        site_url: str,
        date: str | None = None,
        committee_id: int | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        ascending: bool = DEFAULT_ASCENDING_ORDER,
    ) -> list[Meeting]:
        """Get meetings across committees for a date or date range.

        An explicit range wins over a single date; with neither, the current
        calendar year is requested. Without a committee the fallback
        committee is sent, since servers reject the call otherwise.
        """
        operation = "GetAllMeetingsByDate"
        if from_date and to_date:
            start, end = from_date, to_date
        elif date:
            start = end = date
        else:
            start, end = self._date_range(operation, from_date, to_date)

        if committee_id is None:
            committee_id = self.config.default_committee_id or DEFAULT_COMMITTEE_ID
            logger.debug(
                "no committee given, using fallback", operation=operation, committee_id=committee_id
            )

        return await self._request(
            operation,
            site_url,
            normalizer.parse_meetings,
            params={
                "bIsAscendingDateOrder": ascending,
                "lCommitteeId": committee_id,
                "sFromDate": start,
                "sToDate": end,
            },
        )

    # ------------------------------------------------------------------
    # Calendar, parishes, elections, webcasts
    # ------------------------------------------------------------------

    async def get_calendar_events(
        self,
        site_url: str,
        global_calendar: bool = DEFAULT_GLOBAL_CALENDAR,
        user_id: int = DEFAULT_USER_ID,
        date_start: str | None = None,
        date_end: str | None = None,
    ) -> list[CalendarEvent]:
        operation = "GetCalendarEvents"
        start, end = self._date_range(operation, date_start, date_end)
        return await self._request(
            operation,
            site_url,
            normalizer.parse_calendar_events,
            params={
                "bGlobalCalendar": global_calendar,
                "lUserId": user_id,
                "sDateStart": start,
                "sDateEnd": end,
            },
        )

    async def get_parish_councils(self, site_url: str) -> list[ParishCouncil]:
        return await self._request(
            "GetParishCouncils", site_url, normalizer.parse_parish_councils
        )

    async def get_election_results(self, site_url: str, election_id: int) -> list[ElectionResult]:
        return await self._request(
            "GetElectionResults",
            site_url,
            normalizer.parse_election_results,
            params={"lElectionId": election_id},
            required={"election_id": election_id},
        )

    async def get_webcast_meetings(
        self,
        site_url: str,
        committee_id: int,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> list[WebcastMeeting]:
        """Get webcast meetings for a committee.

        The committee is required in practice even though the WSDL marks
        it optional.
        """
        operation = "GetWebCastMeetings"
        start, end = self._date_range(operation, from_date, to_date)
        return await self._request(
            operation,
            site_url,
            normalizer.parse_webcast_meetings,
            params={"lCommitteeId": committee_id, "sFromDate": start, "sToDate": end},
            required={"committee_id": committee_id},
        )

    # ------------------------------------------------------------------
    # MPs / MEPs
    # ------------------------------------------------------------------

    async def get_representatives_and_wards(
        self, site_url: str, is_mps: bool = DEFAULT_IS_MPS
    ) -> list[RepresentativeInfo]:
        """Get MPs (or MEPs) and the wards in their constituencies."""
        return await self._request(
            "GetMpOrMepsAndWards",
            site_url,
            normalizer.parse_representatives,
            params={"bIsMPs": is_mps},
        )

    async def get_representatives_by_postcode(
        self, site_url: str, postcode: str, is_mps: bool = DEFAULT_IS_MPS
    ) -> list[RepresentativeInfo]:
        return await self._request(
            "GetMpOrMepAndWardsByPostcode",
            site_url,
            normalizer.parse_representatives,
            params={"sPostcode": postcode, "bIsMPs": is_mps},
            required={"postcode": postcode},
        )
