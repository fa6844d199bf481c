"""Tests for ModGovClient against a mocked ModernGov server."""

from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import structlog

from moderngov_mcp.client.modgov_client import (
    DEFAULT_COMMITTEE_ID,
    ModGovClient,
    current_year_range,
)
from moderngov_mcp.client.rate_limiter import RateLimiter
from moderngov_mcp.config import Settings
from moderngov_mcp.errors import (
    InvalidURLError,
    MalformedResponseError,
    MissingParameterError,
    TransportError,
)

SITE_URL = "https://democracy.lichfielddc.gov.uk/mgWebService.asmx?WSDL"
BASE = "https://democracy.lichfielddc.gov.uk/mgWebService.asmx"

COMMITTEES_XML = """<?xml version="1.0" encoding="utf-8"?>
<committees>
  <committee>
    <committeeid>138</committeeid>
    <committeetitle>Cabinet</committeetitle>
  </committee>
</committees>"""

WARDS_XML = """<councillorsbyward><wards><ward>
  <wardtitle>Boley Park</wardtitle>
  <councillors>
    <councillorcount>1</councillorcount>
    <councillor><councillorid>1</councillorid><fullusername>Jane Smith</fullusername></councillor>
  </councillors>
</ward></wards></councillorsbyward>"""

MEETINGS_XML = """<getmeetings><committee>
  <committeeid>138</committeeid>
  <committeetitle>Cabinet</committeetitle>
  <committeemeetings>
    <meeting><meetingid>5001</meetingid><meetingdate>2024-02-06</meetingdate></meeting>
  </committeemeetings>
</committee></getmeetings>"""

COUNT_ONLY_XML = "<getmeetings><meetingscount>0</meetingscount></getmeetings>"

HTML_ERROR = """<!DOCTYPE html>
<html><head><title>Runtime Error</title></head><body>Server Error in '/' Application.</body></html>"""


class Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, body: str = COMMITTEES_XML, status_code: int = 200):
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def _make_client(handler, config: Settings | None = None, rate_limiter=None) -> ModGovClient:
    return ModGovClient(
        config=config or Settings(_env_file=None),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        rate_limiter=rate_limiter or RateLimiter(0),
        today=lambda: date(2024, 6, 1),
    )


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
async def client(recorder):
    modgov = _make_client(recorder)
    yield modgov
    await modgov.client.aclose()


def test_current_year_range():
    assert current_year_range(date(2024, 6, 1)) == ("2024-01-01", "2024-12-31")
    assert current_year_range(date(2025, 12, 31)) == ("2025-01-01", "2025-12-31")


class TestRequests:
    """Outbound URL and parameter shaping."""

    async def test_committees(self, client, recorder):
        committees = await client.get_committees(SITE_URL)

        assert [c.title for c in committees] == ["Cabinet"]
        assert str(recorder.last.url) == f"{BASE}/GetCommittees"
        assert recorder.last.method == "GET"

    async def test_committees_with_byte_order_mark(self):
        def handler(request):
            body = b"\xef\xbb\xbf" + COMMITTEES_XML.encode("utf-8")
            return httpx.Response(
                200, content=body, headers={"Content-Type": "text/xml; charset=utf-8"}
            )

        modgov = _make_client(handler)
        committees = await modgov.get_committees(SITE_URL)

        assert [c.title for c in committees] == ["Cabinet"]
        await modgov.client.aclose()

    async def test_councillors_by_ward(self, client, recorder):
        recorder.body = WARDS_XML
        wards = await client.get_councillors_by_ward(SITE_URL)

        assert wards[0].title == "Boley Park"
        assert wards[0].councillors[0].display_name == "Jane Smith"
        assert recorder.last.url.path.endswith("/GetCouncillorsByWard")

    async def test_councillors_by_ward_id(self, client, recorder):
        recorder.body = WARDS_XML
        await client.get_councillors_by_ward_id(SITE_URL, 42)

        assert recorder.last.url.params["lWardId"] == "42"

    async def test_councillors_by_postcode(self, client, recorder):
        recorder.body = WARDS_XML
        await client.get_councillors_by_postcode(SITE_URL, "WS13 6YY")

        assert recorder.last.url.path.endswith("/GetCouncillorsByPostcode")
        assert recorder.last.url.params["sPostcode"] == "WS13 6YY"

    async def test_meetings_default_to_current_year(self, client, recorder):
        recorder.body = MEETINGS_XML
        meetings = await client.get_meetings(SITE_URL, 138)

        params = recorder.last.url.params
        assert params["lCommitteeId"] == "138"
        assert params["sFromDate"] == "2024-01-01"
        assert params["sToDate"] == "2024-12-31"
        assert meetings[0].committee_title == "Cabinet"

    async def test_meetings_explicit_range(self, client, recorder):
        recorder.body = MEETINGS_XML
        await client.get_meetings(SITE_URL, 138, "2023-03-01", "2023-04-30")

        params = recorder.last.url.params
        assert params["sFromDate"] == "2023-03-01"
        assert params["sToDate"] == "2023-04-30"

    async def test_meetings_partial_range_uses_current_year(self, client, recorder):
        recorder.body = MEETINGS_XML
        await client.get_meetings(SITE_URL, 138, from_date="2023-03-01")

        params = recorder.last.url.params
        assert params["sFromDate"] == "2024-01-01"
        assert params["sToDate"] == "2024-12-31"

    async def test_meetings_count_only_is_empty(self, client, recorder):
        recorder.body = COUNT_ONLY_XML
        assert await client.get_meetings(SITE_URL, 138) == []

    async def test_get_meeting(self, client, recorder):
        recorder.body = MEETINGS_XML
        meeting = await client.get_meeting(SITE_URL, 5001)

        assert meeting.id == "5001"
        assert recorder.last.url.params["lMeetingId"] == "5001"

    async def test_get_meeting_none_when_empty(self, client, recorder):
        recorder.body = "<getmeeting/>"
        assert await client.get_meeting(SITE_URL, 1) is None

    async def test_meetings_by_date_defaults(self, client, recorder):
        recorder.body = "<getmeetingsbydate><meetings/></getmeetingsbydate>"
        await client.get_meetings_by_date(SITE_URL)

        params = recorder.last.url.params
        assert recorder.last.url.path.endswith("/GetAllMeetingsByDate")
        assert params["bIsAscendingDateOrder"] == "true"
        assert params["lCommitteeId"] == str(DEFAULT_COMMITTEE_ID)
        assert params["sFromDate"] == "2024-01-01"
        assert params["sToDate"] == "2024-12-31"

    async def test_meetings_by_single_date(self, client, recorder):
        recorder.body = "<getmeetingsbydate><meetings/></getmeetingsbydate>"
        await client.get_meetings_by_date(SITE_URL, date="2024-03-05", committee_id=140, ascending=False)

        params = recorder.last.url.params
        assert params["sFromDate"] == "2024-03-05"
        assert params["sToDate"] == "2024-03-05"
        assert params["lCommitteeId"] == "140"
        assert params["bIsAscendingDateOrder"] == "false"

    async def test_meetings_by_date_range_wins_over_date(self, client, recorder):
        recorder.body = "<getmeetingsbydate><meetings/></getmeetingsbydate>"
        await client.get_meetings_by_date(
            SITE_URL, date="2024-03-05", from_date="2024-01-01", to_date="2024-02-01"
        )

        params = recorder.last.url.params
        assert params["sFromDate"] == "2024-01-01"
        assert params["sToDate"] == "2024-02-01"

    async def test_meetings_by_date_configured_committee(self, recorder):
        modgov = _make_client(recorder, config=Settings(_env_file=None, default_committee_id=7))
        recorder.body = "<getmeetingsbydate><meetings/></getmeetingsbydate>"

        await modgov.get_meetings_by_date(SITE_URL)

        assert recorder.last.url.params["lCommitteeId"] == "7"
        await modgov.client.aclose()

    async def test_calendar_events_defaults(self, client, recorder):
        recorder.body = "<calendarevents/>"
        assert await client.get_calendar_events(SITE_URL) == []

        params = recorder.last.url.params
        assert params["bGlobalCalendar"] == "true"
        assert params["lUserId"] == "0"
        assert params["sDateStart"] == "2024-01-01"
        assert params["sDateEnd"] == "2024-12-31"

    async def test_parish_councils(self, client, recorder):
        recorder.body = "<parishcouncils/>"
        assert await client.get_parish_councils(SITE_URL) == []
        assert recorder.last.url.path.endswith("/GetParishCouncils")

    async def test_election_results(self, client, recorder):
        recorder.body = "<electionresults/>"
        await client.get_election_results(SITE_URL, 12)
        assert recorder.last.url.params["lElectionId"] == "12"

    async def test_webcast_meetings(self, client, recorder):
        recorder.body = "<webcastmeetings/>"
        await client.get_webcast_meetings(SITE_URL, 138)

        params = recorder.last.url.params
        assert recorder.last.url.path.endswith("/GetWebCastMeetings")
        assert params["lCommitteeId"] == "138"
        assert params["sFromDate"] == "2024-01-01"

    async def test_representatives(self, client, recorder):
        recorder.body = "<mpswards><mps/></mpswards>"
        await client.get_representatives_and_wards(SITE_URL)

        assert recorder.last.url.path.endswith("/GetMpOrMepsAndWards")
        assert recorder.last.url.params["bIsMPs"] == "true"

    async def test_representatives_by_postcode(self, client, recorder):
        recorder.body = "<mpswards><mps/></mpswards>"
        await client.get_representatives_by_postcode(SITE_URL, "WS13 6YY", is_mps=False)

        params = recorder.last.url.params
        assert params["sPostcode"] == "WS13 6YY"
        assert params["bIsMPs"] == "false"

    async def test_rate_limiter_keyed_by_origin(self, recorder):
        limiter = AsyncMock(spec=RateLimiter)
        modgov = _make_client(recorder, rate_limiter=limiter)

        await modgov.get_committees(SITE_URL)

        limiter.wait.assert_awaited_once_with("https://democracy.lichfielddc.gov.uk")
        await modgov.client.aclose()

    async def test_request_binds_log_context(self, client, recorder):
        seen = {}

        def capture(event, **kwargs):
            seen.update(structlog.contextvars.get_contextvars())

        with patch("moderngov_mcp.client.modgov_client.logger") as mock_logger:
            mock_logger.info.side_effect = capture
            await client.get_committees(SITE_URL)

        assert seen["operation"] == "GetCommittees"
        assert seen["site_url"] == SITE_URL
        assert "operation" not in structlog.contextvars.get_contextvars()
        assert "site_url" not in structlog.contextvars.get_contextvars()

    async def test_log_context_released_on_failure(self, client, recorder):
        recorder.status_code = 503

        with pytest.raises(TransportError):
            await client.get_committees(SITE_URL)

        assert "operation" not in structlog.contextvars.get_contextvars()


class TestValidation:
    """Input errors are raised before any request is made."""

    async def test_invalid_url(self, client, recorder):
        with pytest.raises(InvalidURLError) as exc_info:
            await client.get_committees("not a url")

        assert exc_info.value.operation == "GetCommittees"
        assert recorder.requests == []

    @pytest.mark.parametrize("postcode", [None, "", "   "])
    async def test_missing_postcode(self, client, recorder, postcode):
        with pytest.raises(MissingParameterError) as exc_info:
            await client.get_councillors_by_postcode(SITE_URL, postcode)

        assert exc_info.value.parameter == "postcode"
        assert exc_info.value.operation == "GetCouncillorsByPostcode"
        assert exc_info.value.site_url == SITE_URL
        assert recorder.requests == []

    async def test_missing_committee(self, client, recorder):
        with pytest.raises(MissingParameterError, match="committee_id"):
            await client.get_meetings(SITE_URL, None)
        assert recorder.requests == []


class TestFailures:
    """Transport and normalization failures."""

    async def test_non_success_status(self, recorder, client):
        recorder.status_code = 500
        recorder.body = "Internal Server Error"

        with pytest.raises(TransportError, match="status code 500") as exc_info:
            await client.get_committees(SITE_URL)

        assert exc_info.value.status_code == 500
        assert exc_info.value.operation == "GetCommittees"
        assert exc_info.value.body_excerpt == "Internal Server Error"

    async def test_empty_body(self, recorder, client):
        recorder.body = ""

        with pytest.raises(TransportError, match="No data received"):
            await client.get_committees(SITE_URL)

    async def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        modgov = _make_client(refuse)
        with pytest.raises(TransportError) as exc_info:
            await modgov.get_committees(SITE_URL)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.site_url == SITE_URL
        await modgov.client.aclose()

    async def test_html_error_page(self, recorder, client):
        recorder.body = HTML_ERROR

        with pytest.raises(MalformedResponseError) as exc_info:
            await client.get_meetings(SITE_URL, 138)

        error = exc_info.value
        assert error.operation == "GetMeetings"
        assert error.site_url == SITE_URL
        assert "Runtime Error" in error.body_excerpt
        assert "Response preview" in str(error)


class TestLifecycle:
    async def test_owned_client_is_closed(self):
        modgov = ModGovClient(config=Settings(_env_file=None))
        async with modgov:
            assert not modgov.client.is_closed
        assert modgov.client.is_closed

    async def test_injected_client_is_left_open(self, recorder):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        modgov = ModGovClient(config=Settings(_env_file=None), http_client=http_client)

        await modgov.close()

        assert not http_client.is_closed
        await http_client.aclose()

    def test_builds_from_settings(self):
        modgov = ModGovClient(config=Settings(_env_file=None, rate_limit_interval=2.5, user_agent="test-agent"))

        assert modgov.rate_limiter.min_interval == 2.5
        assert modgov.client.headers["User-Agent"] == "test-agent"
