#!/usr/bin/env python3
"""ModernGov MCP server: exposes council ModernGov web services as MCP tools.

Uses the official FastMCP SDK for standard MCP protocol handling
(initialize handshake, tool schema generation, JSON-RPC transport).

Tools:
    get_councillors_by_ward          Councillors grouped by ward
    get_councillors_by_ward_id       Councillors for one ward
    get_councillors_by_postcode      Councillors for a postcode
    get_committees                   All committees
    get_meetings                     Meetings of one committee
    get_meeting                      A single meeting
    get_meetings_by_date             Meetings across committees by date
    get_calendar_events              Council calendar events
    get_parish_councils              Parish councils in the area
    get_election_results             Results for an election
    get_webcast_meetings             Webcast meetings of a committee
    get_representatives_and_wards    MPs / MEPs and their wards
    get_representatives_by_postcode  MPs / MEPs for a postcode
    find_council                     Best fuzzy match for a council name
    search_councils                  All fuzzy matches above a confidence level
    get_councils_by_region           Councils in a region
    get_councils_by_type             Councils of a type (District, Unitary, ...)
"""

import json
from typing import Any

from mcp.server.fastmcp import FastMCP

from moderngov_mcp.client.modgov_client import ModGovClient
from moderngov_mcp.config import settings
from moderngov_mcp.core.logging import get_logger, setup_logging
from moderngov_mcp.matching.matcher import (
    DEFAULT_MIN_CONFIDENCE,
    CouncilMatcher,
    load_councils,
    min_score_for,
)
from moderngov_mcp.models.schemas import (
    ConfidenceTier,
    CouncilRecord,
    MatchResult,
    Meeting,
    Ward,
)

logger = get_logger(__name__)

UNKNOWN = "Unknown"
COUNCILLOR_NOTE = (
    "This provides basic councillor information only. For detailed profiles "
    "including surgery times, contact details and email addresses, visit the "
    "council website directly."
)
CONFIDENCE_MESSAGES = {
    ConfidenceTier.EXACT: "Exact match found!",
    ConfidenceTier.HIGH: "High confidence match found.",
    ConfidenceTier.MEDIUM: "Medium confidence match found.",
    ConfidenceTier.LOW: "Low confidence match found. You may want to try a more specific search term.",
}

mcp = FastMCP("moderngov")

_client: ModGovClient | None = None
_matcher: CouncilMatcher | None = None


def _get_client() -> ModGovClient:
    global _client
    if _client is None:
        _client = ModGovClient(settings)
    return _client


def _get_matcher() -> CouncilMatcher:
    global _matcher
    if _matcher is None:
        _matcher = CouncilMatcher(load_councils(settings.councils_path or None))
        logger.info(
            "council dataset loaded",
            councils=_matcher.council_count(),
            regions=len(_matcher.regions()),
        )
    return _matcher


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2)


def _or_unknown(value: str) -> str:
    return value or UNKNOWN


def _format_wards(site_url: str, wards: list[Ward]) -> dict[str, Any]:
    return {
        "site_url": site_url,
        "total_wards": len(wards),
        "total_councillors": sum(ward.councillor_count for ward in wards),
        "wards": [
            {
                "ward_name": ward.title,
                "councillor_count": ward.councillor_count,
                "councillors": [
                    {
                        "id": c.id,
                        "name": c.display_name,
                        "party": _or_unknown(c.party),
                        "group": _or_unknown(c.group),
                        "district": _or_unknown(c.district),
                        "representing": _or_unknown(c.representing),
                        "photos": {"small": c.small_photo_url, "large": c.large_photo_url},
                        "additional_info": c.additional_info,
                        "key_posts": c.key_posts,
                    }
                    for c in ward.councillors
                ],
            }
            for ward in wards
        ],
        "additional_information_note": COUNCILLOR_NOTE,
    }


def _format_meeting(meeting: Meeting) -> dict[str, str]:
    return {
        "id": meeting.id,
        "title": meeting.title,
        "date": meeting.date,
        "time": meeting.time,
        "location": meeting.location,
        "committee_id": meeting.committee_id,
        "committee_title": meeting.committee_title,
    }


def _format_match(match: MatchResult) -> dict[str, Any]:
    return {
        "council": match.council.name,
        "url": match.council.service_url,
        "region": match.council.region,
        "type": match.council.type,
        "confidence": match.confidence.value,
        "score": round(match.score, 2),
    }


def _format_council(council: CouncilRecord) -> dict[str, str]:
    return {
        "council": council.name,
        "url": council.service_url,
        "region": council.region,
        "type": council.type,
    }


# ---------------------------------------------------------------------------
# MCP Tools: councillors
# ---------------------------------------------------------------------------

@mcp.tool()
async def get_councillors_by_ward(site_url: str) -> str:
    """Get basic councillor information (name, party, photos) organised by ward.

    Args:
        site_url: The council's ModernGov URL (e.g. https://democracy.lichfielddc.gov.uk/mgWebService.asmx?WSDL)
    """
    wards = await _get_client().get_councillors_by_ward(site_url)
    return _dump(_format_wards(site_url, wards))


@mcp.tool()
async def get_councillors_by_ward_id(site_url: str, ward_id: int) -> str:
    """Get basic councillor information for a specific ward ID.

    Args:
        site_url: The council's ModernGov URL
        ward_id: The ward ID to query
    """
    wards = await _get_client().get_councillors_by_ward_id(site_url, ward_id)
    return _dump(_format_wards(site_url, wards))


@mcp.tool()
async def get_councillors_by_postcode(site_url: str, postcode: str) -> str:
    """Get basic councillor information for the ward covering a postcode.

    Args:
        site_url: The council's ModernGov URL
        postcode: The postcode to query
    """
    wards = await _get_client().get_councillors_by_postcode(site_url, postcode)
    return _dump(_format_wards(site_url, wards))


# ---------------------------------------------------------------------------
# MCP Tools: committees and meetings
# ---------------------------------------------------------------------------

@mcp.tool()
async def get_committees(site_url: str) -> str:
    """Get all committees of a council.

    Args:
        site_url: The council's ModernGov URL
    """
    committees = await _get_client().get_committees(site_url)
    return _dump({
        "site_url": site_url,
        "total_committees": len(committees),
        "committees": [c.model_dump() for c in committees],
    })


@mcp.tool()
async def get_meetings(
    site_url: str,
    committee_id: int,
    from_date: str | None = None,
    to_date: str | None = None,
) -> str:
    """Get meetings for a specific committee.

    Args:
        site_url: The council's ModernGov URL
        committee_id: The committee ID to get meetings for
        from_date: Start date in YYYY-MM-DD format (defaults to start of current year)
        to_date: End date in YYYY-MM-DD format (defaults to end of current year)
    """
    meetings = await _get_client().get_meetings(site_url, committee_id, from_date, to_date)
    return _dump({
        "site_url": site_url,
        "committee_id": committee_id,
        "total_meetings": len(meetings),
        "meetings": [_format_meeting(m) for m in meetings],
    })


@mcp.tool()
async def get_meeting(site_url: str, meeting_id: int) -> str:
    """Get a single meeting by its ID.

    Args:
        site_url: The council's ModernGov URL
        meeting_id: The meeting ID
    """
    meeting = await _get_client().get_meeting(site_url, meeting_id)
    if meeting is None:
        raise RuntimeError(f"Meeting {meeting_id} not found at {site_url}")
    return _dump({"site_url": site_url, "meeting": _format_meeting(meeting)})


@mcp.tool()
async def get_meetings_by_date(
    site_url: str,
    date: str | None = None,
    committee_id: int | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    ascending: bool = True,
) -> str:
    """Get meetings across committees for a date or date range.

    Args:
        site_url: The council's ModernGov URL
        date: A single day in YYYY-MM-DD format
        committee_id: Committee to restrict to (a default committee is used if omitted)
        from_date: Start date in YYYY-MM-DD format (overrides date)
        to_date: End date in YYYY-MM-DD format (overrides date)
        ascending: Sort meetings oldest first (default: true)
    """
    meetings = await _get_client().get_meetings_by_date(
        site_url, date, committee_id, from_date, to_date, ascending
    )
    return _dump({
        "site_url": site_url,
        "total_meetings": len(meetings),
        "meetings": [_format_meeting(m) for m in meetings],
    })


# ---------------------------------------------------------------------------
# MCP Tools: calendar, parishes, elections, webcasts, MPs
# ---------------------------------------------------------------------------

@mcp.tool()
async def get_calendar_events(
    site_url: str,
    global_calendar: bool = True,
    user_id: int = 0,
    date_start: str | None = None,
    date_end: str | None = None,
) -> str:
    """Get calendar events from a council's democracy calendar.

    Args:
        site_url: The council's ModernGov URL
        global_calendar: Use the council-wide calendar (default: true)
        user_id: Calendar owner's user ID (default: 0)
        date_start: Start date in YYYY-MM-DD format (defaults to current year)
        date_end: End date in YYYY-MM-DD format (defaults to current year)
    """
    events = await _get_client().get_calendar_events(
        site_url, global_calendar, user_id, date_start, date_end
    )
    return _dump({
        "site_url": site_url,
        "total_events": len(events),
        "events": [e.model_dump() for e in events],
    })


@mcp.tool()
async def get_parish_councils(site_url: str) -> str:
    """Get the parish councils within a council's area.

    Args:
        site_url: The council's ModernGov URL
    """
    parishes = await _get_client().get_parish_councils(site_url)
    return _dump({
        "site_url": site_url,
        "total_parish_councils": len(parishes),
        "parish_councils": [p.model_dump() for p in parishes],
    })


@mcp.tool()
async def get_election_results(site_url: str, election_id: int) -> str:
    """Get results for an election.

    Args:
        site_url: The council's ModernGov URL
        election_id: The election ID
    """
    results = await _get_client().get_election_results(site_url, election_id)
    return _dump({
        "site_url": site_url,
        "election_id": election_id,
        "elections": [r.model_dump() for r in results],
    })


@mcp.tool()
async def get_webcast_meetings(
    site_url: str,
    committee_id: int,
    from_date: str | None = None,
    to_date: str | None = None,
) -> str:
    """Get webcast meetings for a committee.

    Args:
        site_url: The council's ModernGov URL
        committee_id: The committee ID
        from_date: Start date in YYYY-MM-DD format (defaults to current year)
        to_date: End date in YYYY-MM-DD format (defaults to current year)
    """
    webcasts = await _get_client().get_webcast_meetings(site_url, committee_id, from_date, to_date)
    return _dump({
        "site_url": site_url,
        "committee_id": committee_id,
        "total_webcasts": len(webcasts),
        "webcasts": [w.model_dump() for w in webcasts],
    })


@mcp.tool()
async def get_representatives_and_wards(site_url: str, is_mps: bool = True) -> str:
    """Get the MPs (or MEPs) covering a council and the wards they represent.

    Args:
        site_url: The council's ModernGov URL
        is_mps: true for MPs, false for MEPs (default: true)
    """
    reps = await _get_client().get_representatives_and_wards(site_url, is_mps)
    return _dump({
        "site_url": site_url,
        "total_representatives": len(reps),
        "representatives": [r.model_dump() for r in reps],
    })


@mcp.tool()
async def get_representatives_by_postcode(site_url: str, postcode: str, is_mps: bool = True) -> str:
    """Get the MP (or MEP) and wards for a postcode.

    Args:
        site_url: The council's ModernGov URL
        postcode: The postcode to query
        is_mps: true for MPs, false for MEPs (default: true)
    """
    reps = await _get_client().get_representatives_by_postcode(site_url, postcode, is_mps)
    return _dump({
        "site_url": site_url,
        "postcode": postcode,
        "total_representatives": len(reps),
        "representatives": [r.model_dump() for r in reps],
    })


# ---------------------------------------------------------------------------
# MCP Tools: council lookup
# ---------------------------------------------------------------------------

@mcp.tool()
async def find_council(council_name: str) -> str:
    """Find a ModernGov council by name using fuzzy matching.

    Returns the best matching council with its web service URL and details.

    Args:
        council_name: The council name to search for (e.g. 'Leeds', 'Lichfield District Council')
    """
    match = _get_matcher().find_best_match(council_name)
    if match is None:
        raise RuntimeError(
            f'No council found matching "{council_name}". '
            "Try using a different name or search term."
        )
    return _dump({
        "query": council_name,
        "match": _format_match(match),
        "message": CONFIDENCE_MESSAGES[match.confidence],
    })


@mcp.tool()
async def search_councils(query: str, min_confidence: str | None = None) -> str:
    """Search for councils using fuzzy matching.

    Returns all councils above a minimum confidence level.

    Args:
        query: Search query for council names
        min_confidence: 'exact', 'high', 'medium' or 'low' (default: 'medium')
    """
    level = min_confidence or DEFAULT_MIN_CONFIDENCE.value
    matches = _get_matcher().find_matches(query, min_score_for(level))
    if not matches:
        raise RuntimeError(
            f'No councils found matching "{query}" with confidence level "{level}". '
            "Try using a different search term or lowering the confidence threshold."
        )
    return _dump({
        "query": query,
        "min_confidence": level,
        "total_matches": len(matches),
        "matches": [_format_match(m) for m in matches],
    })


@mcp.tool()
async def get_councils_by_region(region: str) -> str:
    """Get all councils in a region.

    Args:
        region: Region name (e.g. 'London', 'West Midlands', 'Scotland')
    """
    matcher = _get_matcher()
    councils = matcher.find_by_region(region)
    if not councils:
        raise RuntimeError(
            f'No councils found in region "{region}". '
            f"Available regions include: {', '.join(matcher.regions())}."
        )
    return _dump({
        "region": region,
        "total_councils": len(councils),
        "councils": [_format_council(c) for c in councils],
    })


@mcp.tool()
async def get_councils_by_type(council_type: str) -> str:
    """Get all councils of a type.

    Args:
        council_type: Council type (e.g. 'District', 'Metropolitan', 'London Borough', 'Unitary', 'County')
    """
    councils = _get_matcher().find_by_type(council_type)
    if not councils:
        raise RuntimeError(f'No councils found of type "{council_type}".')
    return _dump({
        "type": council_type,
        "total_councils": len(councils),
        "councils": [_format_council(c) for c in councils],
    })


def main() -> None:
    """Run the server over stdio."""
    setup_logging(
        service_name=settings.service_name,
        service_version=settings.service_version,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )
    logger.info("starting moderngov MCP server", transport="stdio")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
