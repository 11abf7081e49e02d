"""
Gallery filtering and search suggestions.

Active filters combine with AND semantics. A tag filter matches photos
carrying a tag with the same name (ignoring case); a location filter matches
photos whose location contains the value (ignoring case). Photos without a
location never match a location filter.

Suggestions are produced for the search box from tag names, country tokens
(the part of a location after its last comma) and full location strings, in
that order.
"""

from ..models.filter import Filter, FilterType
from ..models.photo import Photo, Tag

MIN_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 8


def _matches(photo: Photo, criterion: Filter) -> bool:
    if criterion.type == FilterType.TAG:
        return photo.has_tag(criterion.value)
    if not photo.location:
        return False
    return criterion.value.lower() in photo.location.lower()


def apply_filters(photos: list[Photo], filters: list[Filter]) -> list[Photo]:
    """
    Keep the photos that satisfy every filter.

    Args:
        photos: Photo collection, order is preserved
        filters: Active filters; an empty list keeps everything

    Returns:
        New list of matching photos
    """
    return [photo for photo in photos if all(_matches(photo, criterion) for criterion in filters)]


def add_filter(filters: list[Filter], criterion: Filter) -> list[Filter]:
    """Append a filter. Callers are responsible for avoiding duplicates."""
    return [*filters, criterion]


def remove_filter(filters: list[Filter], criterion: Filter) -> list[Filter]:
    """Remove every filter with the same type and value."""
    return [existing for existing in filters if not existing.same_criterion(criterion)]


def clear_filters() -> list[Filter]:
    return []


def is_active(filters: list[Filter], filter_type: FilterType, value: str) -> bool:
    wanted = value.lower()
    return any(f.type == filter_type and f.value.lower() == wanted for f in filters)


def collect_tags(photos: list[Photo]) -> list[Tag]:
    """Distinct tags in use, by id, in first-seen order."""
    seen: dict[str, Tag] = {}
    for photo in photos:
        for tag in photo.tags:
            seen.setdefault(tag.id, tag)
    return list(seen.values())


def collect_locations(photos: list[Photo]) -> list[str]:
    """Distinct non-empty locations (case-insensitive) in first-seen order."""
    seen: dict[str, str] = {}
    for photo in photos:
        if photo.location and photo.location.strip():
            location = photo.location.strip()
            seen.setdefault(location.lower(), location)
    return list(seen.values())


def country_of(location: str | None) -> str | None:
    """
    Country token of a "place, country" location.

    Returns:
        The trimmed text after the last comma, or None without a comma
    """
    if not location or "," not in location:
        return None
    country = location.rsplit(",", 1)[1].strip()
    return country or None


def tag_counts(photos: list[Photo], tags: list[Tag]) -> list[tuple[Tag, int]]:
    """Number of photos carrying each tag, for the filter bar."""
    return [(tag, sum(1 for photo in photos if photo.has_tag(tag.name))) for tag in tags]


def build_suggestions(
    photos: list[Photo],
    query: str,
    active_filters: list[Filter],
    tags: list[Tag] | None = None,
    limit: int = MAX_SUGGESTIONS,
) -> list[Filter]:
    """
    Autocomplete suggestions for a search query.

    Tags come first, then countries, then specific locations. Values already
    among the active filters are skipped, and so are candidates that would
    leave no photos. ``count`` is how many photos the active filters plus the
    candidate would match. A location is left out when a suggested country
    already covers it: the location is the country itself, or the query only
    matches its country part.

    Args:
        photos: Full photo collection
        query: Search box text
        active_filters: Filters currently applied
        tags: Distinct tags, derived from ``photos`` when omitted
        limit: Maximum number of suggestions

    Returns:
        At most ``limit`` suggestions; empty for queries shorter than two characters
    """
    needle = query.strip().lower()
    if len(needle) < MIN_QUERY_LENGTH:
        return []

    if tags is None:
        tags = collect_tags(photos)
    base = apply_filters(photos, active_filters)

    def count_for(candidate: Filter) -> int:
        return sum(1 for photo in base if _matches(photo, candidate))

    suggestions: list[Filter] = []

    def offer(candidate: Filter) -> None:
        if is_active(active_filters, candidate.type, candidate.value):
            return
        if any(existing.same_criterion(candidate) for existing in suggestions):
            return
        count = count_for(candidate)
        if count > 0:
            suggestions.append(Filter(candidate.type, candidate.value, candidate.label, count))

    for tag in tags:
        if needle in tag.name.lower():
            offer(Filter(FilterType.TAG, tag.name, tag.display_name))

    locations = collect_locations(photos)

    countries: dict[str, str] = {}
    for location in locations:
        country = country_of(location)
        if country:
            countries.setdefault(country.lower(), country)

    for country in countries.values():
        if needle in country.lower():
            offer(Filter(FilterType.LOCATION, country, country))

    covered = {s.value.lower() for s in suggestions if s.type == FilterType.LOCATION}
    covered |= {f.value.lower() for f in active_filters if f.type == FilterType.LOCATION}

    for location in locations:
        lowered = location.lower()
        if needle not in lowered or lowered in covered:
            continue
        country = country_of(location)
        if country and country.lower() in covered:
            place = location.rsplit(",", 1)[0].lower()
            if needle not in place:
                continue
        offer(Filter(FilterType.LOCATION, location, location))

    return suggestions[:limit]
