"""Fuzzy council lookup over the static ModernGov reference dataset."""

import json
from collections.abc import Sequence
from pathlib import Path

from moderngov_mcp.core.logging import get_logger
from moderngov_mcp.matching.similarity import score
from moderngov_mcp.models.schemas import ConfidenceTier, CouncilRecord, MatchResult

logger = get_logger(__name__)

BUNDLED_COUNCILS_PATH = Path(__file__).resolve().parent.parent / "data" / "councils.json"

# Minimum score for each confidence tier, also offered as search floors
CONFIDENCE_THRESHOLDS: dict[ConfidenceTier, float] = {
    ConfidenceTier.EXACT: 0.95,
    ConfidenceTier.HIGH: 0.8,
    ConfidenceTier.MEDIUM: 0.6,
    ConfidenceTier.LOW: 0.3,
}
DEFAULT_MIN_CONFIDENCE = ConfidenceTier.MEDIUM


def confidence_for(value: float) -> ConfidenceTier:
    """Map a similarity score onto its confidence tier."""
    if value >= CONFIDENCE_THRESHOLDS[ConfidenceTier.EXACT]:
        return ConfidenceTier.EXACT
    if value >= CONFIDENCE_THRESHOLDS[ConfidenceTier.HIGH]:
        return ConfidenceTier.HIGH
    if value >= CONFIDENCE_THRESHOLDS[ConfidenceTier.MEDIUM]:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def min_score_for(level: str | None) -> float:
    """Score floor for a named confidence level; unknown names mean medium."""
    try:
        tier = ConfidenceTier((level or "").strip().lower())
    except ValueError:
        tier = DEFAULT_MIN_CONFIDENCE
    return CONFIDENCE_THRESHOLDS[tier]


def load_councils(path: str | Path | None = None) -> list[CouncilRecord]:
    """Load council records from a reference JSON file.

    Args:
        path: Dataset location; defaults to the bundled councils.json

    Returns:
        Council records in file order

    Raises:
        FileNotFoundError: If the dataset file does not exist
    """
    dataset_path = Path(path) if path else BUNDLED_COUNCILS_PATH
    if not dataset_path.exists():
        raise FileNotFoundError(f"Council dataset not found: {dataset_path}")

    with open(dataset_path, encoding="utf-8") as f:
        data = json.load(f)

    councils = [CouncilRecord(**entry) for entry in data.get("councils", [])]
    logger.debug(
        "council dataset loaded",
        path=str(dataset_path),
        version=data.get("version", ""),
        count=len(councils),
    )
    return councils


def _contains_either_way(stored: str, query: str) -> bool:
    stored = stored.lower()
    return query in stored or stored in query


class CouncilMatcher:
    """Resolve free-text council names, regions and types against the dataset.

    The council list is fixed at construction and never mutated, so one
    matcher can be shared freely between concurrent callers.
    """

    def __init__(self, councils: Sequence[CouncilRecord] | None = None):
        if councils is None:
            councils = load_councils()
        self._councils: tuple[CouncilRecord, ...] = tuple(councils)

    def _match(self, query: str, council: CouncilRecord) -> MatchResult:
        value = score(query, council.name)
        return MatchResult(council=council, score=value, confidence=confidence_for(value))

    def find_best_match(self, query: str) -> MatchResult | None:
        """Return the highest scoring council, or None for a blank query.

        On equal scores the council listed first wins.
        """
        query = (query or "").strip()
        if not query:
            return None

        best: MatchResult | None = None
        for council in self._councils:
            candidate = self._match(query, council)
            if best is None or candidate.score > best.score:
                best = candidate
        return best

    def find_matches(self, query: str, min_score: float = 0.3) -> list[MatchResult]:
        """Return every council scoring at least min_score, best first."""
        query = (query or "").strip()
        if not query:
            return []

        matches = [self._match(query, council) for council in self._councils]
        matches = [match for match in matches if match.score >= min_score]
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches

    def find_by_region(self, region: str) -> list[CouncilRecord]:
        """Councils whose region contains, or is contained in, the query."""
        query = region.lower()
        return [c for c in self._councils if _contains_either_way(c.region, query)]

    def find_by_type(self, council_type: str) -> list[CouncilRecord]:
        """Councils whose type contains, or is contained in, the query."""
        query = council_type.lower()
        return [c for c in self._councils if _contains_either_way(c.type, query)]

    def council_count(self) -> int:
        return len(self._councils)

    def regions(self) -> list[str]:
        """Distinct regions in dataset order."""
        return list(dict.fromkeys(c.region for c in self._councils))
