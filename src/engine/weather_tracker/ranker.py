"""Place search ranking - prefix relevance first, then proximity."""

import math

from src.tools.api_tools.openweather.models import Coordinate, GeoCandidate, SearchSuggestion
from src.tools.shared_libraries.geo import haversine

MAX_SUGGESTIONS = 15


def rank_candidates(
    query: str,
    candidates: list[GeoCandidate],
    current_location: Coordinate | None = None,
    limit: int = MAX_SUGGESTIONS,
) -> list[SearchSuggestion]:
    """Rank geocode candidates for a search query.

    Only candidates whose name starts with the query (case-insensitively)
    are kept. They are ordered by prefix match, then by great-circle
    distance from `current_location`. Without a location every candidate
    is equally far away, so the input order is preserved.

    Args:
        query: Text typed by the user.
        candidates: Candidates returned by the geocode source.
        current_location: The user's last known position, if any.
        limit: Maximum number of suggestions.

    Returns:
        At most `limit` suggestions with their rank positions set.
    """
    if not query.strip():
        return []

    prefix = query.lower()
    matches = [c for c in candidates if c.name.lower().startswith(prefix)]

    def sort_key(candidate: GeoCandidate) -> tuple[bool, float]:
        if current_location is None:
            distance = math.inf
        else:
            distance = haversine(
                current_location.latitude,
                current_location.longitude,
                candidate.latitude,
                candidate.longitude,
            )
        return (not candidate.name.lower().startswith(prefix), distance)

    ranked = sorted(matches, key=sort_key)[:limit]
    return [
        SearchSuggestion(**candidate.model_dump(exclude={'rank'}), rank=position)
        for position, candidate in enumerate(ranked)
    ]
