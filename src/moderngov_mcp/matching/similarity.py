"""Name similarity scoring for council lookup."""

from rapidfuzz.distance import Levenshtein

EXACT_SCORE = 1.0
SUBSTRING_SCORE = 0.9


def word_overlap(query: str, candidate: str) -> float:
    """Fraction of query words found (whole or partial) among candidate words."""
    query_words = query.split()
    candidate_words = candidate.split()
    longest = max(len(query_words), len(candidate_words))
    if longest == 0:
        return 0.0

    matched = 0
    for query_word in query_words:
        for candidate_word in candidate_words:
            if query_word in candidate_word or candidate_word in query_word:
                matched += 1
                break
    return matched / longest


def edit_similarity(query: str, candidate: str) -> float:
    """Levenshtein distance normalised by the longer string, in [0, 1].

    Two empty strings are identical, so they score 1.0.
    """
    longest = max(len(query), len(candidate))
    if longest == 0:
        return 1.0
    distance = Levenshtein.distance(query, candidate)
    return min(1.0, max(0.0, 1.0 - distance / longest))


def score(query: str, candidate: str) -> float:
    """Case-insensitive similarity between a query and a council name.

    Tiers, first match wins:
        1.0  exact match
        0.9  either string contains the other
        else the better of word overlap and edit similarity
    """
    query = query.lower()
    candidate = candidate.lower()

    if query == candidate:
        return EXACT_SCORE
    if query in candidate or candidate in query:
        return SUBSTRING_SCORE

    return max(word_overlap(query, candidate), edit_similarity(query, candidate))
