"""Pydantic models for councils, match results and normalized ModernGov records."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CouncilRecord(BaseModel):
    """A council entry from the static reference dataset."""

    model_config = ConfigDict(frozen=True)

    name: str
    service_url: str
    region: str
    type: str


class ConfidenceTier(str, Enum):
    """Confidence bands derived from a similarity score."""

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchResult(BaseModel):
    """A council paired with its similarity to a query."""

    council: CouncilRecord
    score: float = Field(..., ge=0.0, le=1.0)
    confidence: ConfidenceTier


class Councillor(BaseModel):
    """A councillor as listed by the GetCouncillorsBy* operations."""

    id: str = ""
    display_name: str = ""
    party: str = ""
    group: str = ""
    district: str = ""
    representing: str = ""
    small_photo_url: str = ""
    large_photo_url: str = ""
    additional_info: str = ""
    key_posts: str = ""


class Ward(BaseModel):
    """A ward and the councillors representing it."""

    title: str = ""
    councillor_count: int = 0
    councillors: list[Councillor] = Field(default_factory=list)


class Committee(BaseModel):
    id: str = ""
    title: str = ""
    description: str = ""
    type: str = ""


class Meeting(BaseModel):
    id: str = ""
    title: str = ""
    date: str = ""
    time: str = ""
    location: str = ""
    committee_id: str = ""
    committee_title: str = ""


class CalendarEvent(BaseModel):
    id: str = ""
    title: str = ""
    date: str = ""
    description: str = ""
    location: str = ""


class ParishCouncil(BaseModel):
    id: str = ""
    title: str = ""
    website: str = ""
    contact: str = ""


class ElectionResult(BaseModel):
    """An election and its per-candidate result rows (tag -> text)."""

    id: str = ""
    title: str = ""
    date: str = ""
    results: list[dict[str, str]] = Field(default_factory=list)


class WebcastMeeting(BaseModel):
    id: str = ""
    title: str = ""
    webcast_url: str = ""
    date: str = ""


class RepresentativeInfo(BaseModel):
    """An MP or MEP and the wards within their constituency."""

    id: str = ""
    name: str = ""
    constituency: str = ""
    party: str = ""
    wards: list[str] = Field(default_factory=list)
