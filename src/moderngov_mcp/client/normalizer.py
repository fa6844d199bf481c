"""Normalize ModernGov XML responses into canonical records.

ModernGov installations answer the same operation with different XML
layouts. Every response is first classified into a ResponseShape, then
each operation family maps the shapes it understands onto an extractor.
A well-formed document in a shape the family does not know yields an
empty list, since it means "no data" rather than a broken transport.

Bodies that are empty, not XML, HTML error pages or unparseable raise
MalformedResponseError.
"""

import xml.etree.ElementTree as ET
from collections.abc import Callable
from enum import Enum

from moderngov_mcp.core.logging import get_logger
from moderngov_mcp.errors import MalformedResponseError, excerpt
from moderngov_mcp.models.schemas import (
    CalendarEvent,
    Committee,
    Councillor,
    ElectionResult,
    Meeting,
    ParishCouncil,
    RepresentativeInfo,
    Ward,
    WebcastMeeting,
)

logger = get_logger(__name__)

Extractor = Callable[[ET.Element], list]

# Some servers report only a meeting status, never a title
DEFAULT_MEETING_TITLE = "Council Meeting"


class ResponseShape(str, Enum):
    """Known layouts of ModernGov response documents."""

    WARDS = "wards"
    COMMITTEES = "committees"
    MEETINGS_BY_COMMITTEE = "meetings_by_committee"
    MEETINGS_COUNT_ONLY = "meetings_count_only"
    MEETINGS_BY_DATE = "meetings_by_date"
    SINGLE_MEETING = "single_meeting"
    CALENDAR_EVENTS = "calendar_events"
    PARISH_COUNCILS = "parish_councils"
    ELECTION_RESULTS = "election_results"
    WEBCAST_MEETINGS = "webcast_meetings"
    REPRESENTATIVES = "representatives"
    UNRECOGNIZED = "unrecognized"


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------

def _local(tag: str) -> str:
    """Tag name without namespace, lower-cased."""
    return tag.rsplit("}", 1)[-1].lower()


def _children(elem: ET.Element | None, name: str) -> list[ET.Element]:
    """Direct children called name; always a list, even for one child."""
    if elem is None:
        return []
    return [child for child in elem if _local(child.tag) == name]


def _descend(elem: ET.Element | None, *path: str) -> list[ET.Element]:
    """All elements reached by following path one level at a time."""
    current = [elem] if elem is not None else []
    for name in path:
        current = [child for parent in current for child in _children(parent, name)]
    return current


def _first(elem: ET.Element | None, *path: str) -> ET.Element | None:
    found = _descend(elem, *path)
    return found[0] if found else None


def _flatten(elem: ET.Element) -> str:
    return " ".join(part.strip() for part in elem.itertext() if part.strip())


def _text(elem: ET.Element | None, *names: str) -> str:
    """Text of the first named child that has any, else ""."""
    for name in names:
        child = _first(elem, name)
        if child is not None:
            value = _flatten(child)
            if value:
                return value
    return ""


def _int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


# ---------------------------------------------------------------------------
# Document checks and shape detection
# ---------------------------------------------------------------------------

def check_body(body: str | None) -> str:
    """Reject bodies that cannot be a ModernGov XML document.

    Returns:
        The stripped body

    Raises:
        MalformedResponseError: If the body is empty, not XML or an HTML error page
    """
    # httpx keeps a UTF-8 byte-order mark as \ufeff
    text = (body or "").lstrip("\ufeff").strip()
    if not text:
        raise MalformedResponseError(
            "Server returned empty response. This usually indicates a server-side "
            "bug or missing parameters"
        )
    if not text.startswith("<"):
        raise MalformedResponseError(
            "Server returned non-XML response", body_excerpt=excerpt(text)
        )

    lowered = text.lower()
    if (
        lowered.startswith("<!doctype")
        or lowered.startswith("<html")
        or ("<title" in lowered and "Error" in text)
    ):
        raise MalformedResponseError(
            "Server returned HTML error page instead of XML data",
            body_excerpt=excerpt(text),
        )
    return text


def parse_document(body: str | None) -> ET.Element:
    """Check and parse a response body into its root element."""
    text = check_body(body)
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedResponseError(
            f"Server returned invalid XML: {e}", body_excerpt=excerpt(text)
        ) from e


_WARD_ROOTS = {"councillorsbyward", "councillorsbywardid", "councillorsbypostcode"}

_SIMPLE_ROOTS = {
    "committees": ResponseShape.COMMITTEES,
    "calendarevents": ResponseShape.CALENDAR_EVENTS,
    "parishcouncils": ResponseShape.PARISH_COUNCILS,
    "electionresults": ResponseShape.ELECTION_RESULTS,
    "webcastmeetings": ResponseShape.WEBCAST_MEETINGS,
    "mpswards": ResponseShape.REPRESENTATIVES,
    "getmeetingsbydate": ResponseShape.MEETINGS_BY_DATE,
    "getmeeting": ResponseShape.SINGLE_MEETING,
}


def detect_shape(root: ET.Element) -> ResponseShape:
    """Classify a parsed response document."""
    name = _local(root.tag)
    if name in _WARD_ROOTS:
        return ResponseShape.WARDS
    if name == "getmeetings":
        if _children(root, "committee"):
            return ResponseShape.MEETINGS_BY_COMMITTEE
        if _children(root, "meetingscount"):
            return ResponseShape.MEETINGS_COUNT_ONLY
        return ResponseShape.UNRECOGNIZED
    return _SIMPLE_ROOTS.get(name, ResponseShape.UNRECOGNIZED)


def _dispatch(
    family: str, body: str | None, table: dict[ResponseShape, Extractor]
) -> list:
    root = parse_document(body)
    shape = detect_shape(root)
    extractor = table.get(shape)
    if extractor is None:
        logger.debug(
            "response shape not handled, treating as empty",
            family=family,
            shape=shape.value,
            root=_local(root.tag),
        )
        return []
    return extractor(root)


def _empty(root: ET.Element) -> list:
    return []


# ---------------------------------------------------------------------------
# Councillors
# ---------------------------------------------------------------------------

def _councillor(elem: ET.Element) -> Councillor:
    return Councillor(
        id=_text(elem, "councillorid"),
        display_name=_text(elem, "fullusername"),
        party=_text(elem, "politicalpartytitle"),
        group=_text(elem, "politicalgrouptitle"),
        district=_text(elem, "districttitle"),
        representing=_text(elem, "representing"),
        small_photo_url=_text(elem, "photosmallurl"),
        large_photo_url=_text(elem, "photobigurl"),
        additional_info=_text(elem, "additionalcontactinfo"),
        key_posts=_text(elem, "keyposts"),
    )


def _wards(root: ET.Element) -> list[Ward]:
    wards = []
    for ward in _descend(root, "wards", "ward"):
        councillors = _first(ward, "councillors")
        wards.append(
            Ward(
                title=_text(ward, "wardtitle"),
                councillor_count=_int(_text(councillors, "councillorcount")),
                councillors=[_councillor(c) for c in _children(councillors, "councillor")],
            )
        )
    return wards


def parse_councillors(body: str | None) -> list[Ward]:
    """Parse GetCouncillorsByWard / ByWardId / ByPostcode responses."""
    return _dispatch("councillors", body, {ResponseShape.WARDS: _wards})


# ---------------------------------------------------------------------------
# Committees
# ---------------------------------------------------------------------------

def _committees(root: ET.Element) -> list[Committee]:
    return [
        Committee(
            id=_text(c, "committeeid"),
            title=_text(c, "committeetitle"),
            description=_text(c, "committeedescription"),
            type=_text(c, "committeetype"),
        )
        for c in _children(root, "committee")
    ]


def parse_committees(body: str | None) -> list[Committee]:
    return _dispatch("committees", body, {ResponseShape.COMMITTEES: _committees})


# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------

def _meeting(elem: ET.Element, committee_id: str = "", committee_title: str = "") -> Meeting:
    return Meeting(
        id=_text(elem, "meetingid"),
        title=_text(elem, "meetingtitle", "meetingstatus") or DEFAULT_MEETING_TITLE,
        date=_text(elem, "meetingdate"),
        time=_text(elem, "meetingtime"),
        location=_text(elem, "meetinglocation"),
        committee_id=_text(elem, "committeeid") or committee_id,
        committee_title=_text(elem, "committeetitle") or committee_title,
    )


def _committee_meeting_elements(committee: ET.Element) -> list[ET.Element]:
    # Lichfield-style servers nest meetings in <committeemeetings>, others do not
    return _descend(committee, "committeemeetings", "meeting") + _children(committee, "meeting")


def _meetings_by_committee(root: ET.Element) -> list[Meeting]:
    meetings = []
    for committee in _children(root, "committee"):
        committee_id = _text(committee, "committeeid")
        committee_title = _text(committee, "committeetitle")
        meetings.extend(
            _meeting(m, committee_id, committee_title)
            for m in _committee_meeting_elements(committee)
        )
    return meetings


def _meetings_by_date(root: ET.Element) -> list[Meeting]:
    return [_meeting(m) for m in _descend(root, "meetings", "meeting")]


def _single_meeting(root: ET.Element) -> list[Meeting]:
    nested = _children(root, "meeting")
    if nested:
        return [_meeting(m) for m in nested]
    if _first(root, "meetingid") is None:
        return []
    return [_meeting(root)]


def parse_meetings(body: str | None) -> list[Meeting]:
    """Parse GetMeetings, GetMeeting and GetAllMeetingsByDate responses.

    A count-only GetMeetings document carries no meetings and yields [].
    """
    return _dispatch(
        "meetings",
        body,
        {
            ResponseShape.MEETINGS_BY_COMMITTEE: _meetings_by_committee,
            ResponseShape.MEETINGS_COUNT_ONLY: _empty,
            ResponseShape.MEETINGS_BY_DATE: _meetings_by_date,
            ResponseShape.SINGLE_MEETING: _single_meeting,
        },
    )


# ---------------------------------------------------------------------------
# Calendar, parish councils, elections
# ---------------------------------------------------------------------------

def _calendar_events(root: ET.Element) -> list[CalendarEvent]:
    return [
        CalendarEvent(
            id=_text(e, "eventid"),
            title=_text(e, "eventtitle"),
            date=_text(e, "eventdate"),
            description=_text(e, "eventdescription"),
            location=_text(e, "eventlocation"),
        )
        for e in _children(root, "event")
    ]


def parse_calendar_events(body: str | None) -> list[CalendarEvent]:
    return _dispatch(
        "calendar_events", body, {ResponseShape.CALENDAR_EVENTS: _calendar_events}
    )


def _parish_councils(root: ET.Element) -> list[ParishCouncil]:
    return [
        ParishCouncil(
            id=_text(p, "parishcouncilid"),
            title=_text(p, "parishcounciltitle"),
            website=_text(p, "parishcouncilwebsite"),
            contact=_text(p, "parishcouncilcontact"),
        )
        for p in _children(root, "parishcouncil")
    ]


def parse_parish_councils(body: str | None) -> list[ParishCouncil]:
    return _dispatch(
        "parish_councils", body, {ResponseShape.PARISH_COUNCILS: _parish_councils}
    )


def _result_row(elem: ET.Element) -> dict[str, str]:
    fields = list(elem)
    if not fields:
        return {_local(elem.tag): _flatten(elem)}
    return {_local(field.tag): _flatten(field) for field in fields}


def _election_results(root: ET.Element) -> list[ElectionResult]:
    elections = []
    for election in _children(root, "electionresult"):
        rows = [row for results in _children(election, "results") for row in results]
        elections.append(
            ElectionResult(
                id=_text(election, "electionid"),
                title=_text(election, "electiontitle"),
                date=_text(election, "electiondate"),
                results=[_result_row(row) for row in rows],
            )
        )
    return elections


def parse_election_results(body: str | None) -> list[ElectionResult]:
    return _dispatch(
        "election_results", body, {ResponseShape.ELECTION_RESULTS: _election_results}
    )


# ---------------------------------------------------------------------------
# Webcasts
# ---------------------------------------------------------------------------

def _webcast(elem: ET.Element) -> WebcastMeeting:
    return WebcastMeeting(
        id=_text(elem, "meetingid", "id"),
        title=_text(elem, "meetingtitle", "title"),
        webcast_url=_text(elem, "webcasturl"),
        date=_text(elem, "meetingdate", "date"),
    )


def _webcast_meetings(root: ET.Element) -> list[WebcastMeeting]:
    return [_webcast(m) for m in _children(root, "webcastmeeting")]


def _webcasts_from_committees(root: ET.Element) -> list[WebcastMeeting]:
    # Servers without webcasting answer with the plain GetMeetings layout
    return [
        _webcast(m)
        for committee in _children(root, "committee")
        for m in _committee_meeting_elements(committee)
    ]


def parse_webcast_meetings(body: str | None) -> list[WebcastMeeting]:
    return _dispatch(
        "webcast_meetings",
        body,
        {
            ResponseShape.WEBCAST_MEETINGS: _webcast_meetings,
            ResponseShape.MEETINGS_BY_COMMITTEE: _webcasts_from_committees,
            ResponseShape.MEETINGS_COUNT_ONLY: _empty,
        },
    )


# ---------------------------------------------------------------------------
# MPs / MEPs
# ---------------------------------------------------------------------------

def _ward_names(mp: ET.Element) -> list[str]:
    names = []
    for ward in _descend(mp, "wards", "ward"):
        name = _text(ward, "wardtitle") or _flatten(ward)
        if name:
            names.append(name)
    return names


def _representatives(root: ET.Element) -> list[RepresentativeInfo]:
    return [
        RepresentativeInfo(
            id=_text(mp, "mpid"),
            name=_text(mp, "fullusername", "mpname"),
            constituency=_text(mp, "constituency"),
            party=_text(mp, "politicalpartytitle", "party"),
            wards=_ward_names(mp),
        )
        for mp in _descend(root, "mps", "mp")
    ]


def parse_representatives(body: str | None) -> list[RepresentativeInfo]:
    """Parse GetMpOrMepsAndWards and GetMpOrMepAndWardsByPostcode responses."""
    return _dispatch(
        "representatives", body, {ResponseShape.REPRESENTATIVES: _representatives}
    )
