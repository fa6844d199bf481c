"""Council name resolution."""

from moderngov_mcp.matching.matcher import (
    CONFIDENCE_THRESHOLDS,
    CouncilMatcher,
    confidence_for,
    load_councils,
    min_score_for,
)
from moderngov_mcp.matching.similarity import score

__all__ = [
    "CONFIDENCE_THRESHOLDS",
    "CouncilMatcher",
    "confidence_for",
    "load_councils",
    "min_score_for",
    "score",
]
