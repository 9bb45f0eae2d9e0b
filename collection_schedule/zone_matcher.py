"""
This module handles matching user-provided zone names against the cached cities.
"""
from typing import Dict, List, Sequence, Tuple

from thefuzz import process

from .models import City, Zone


def zone_label(city: City, zone: Zone) -> str:
    """Returns the "City - Zone" label used for choices and matching."""
    return f"{city.name} - {zone.name}"


def find_zone_matches(
    query: str, cities: Sequence[City], limit: int = 5, score_cutoff: int = 80
) -> List[Tuple[City, Zone]]:
    """
    Finds zones for a free-text query, first trying an exact match on the zone
    name or the "City - Zone" label, then falling back to fuzzy matching.
    """
    normalized = query.lower().strip()
    if not normalized:
        return []

    by_label: Dict[str, Tuple[City, Zone]] = {}
    exact = []
    for city in cities:
        for zone in city.zones:
            label = zone_label(city, zone)
            by_label[label] = (city, zone)
            if normalized in (zone.name.lower(), label.lower()):
                exact.append((city, zone))

    if exact:
        return exact

    matches = process.extractBests(
        query, list(by_label), limit=limit, score_cutoff=score_cutoff
    )
    return [by_label[match] for match, score in matches]


def find_city_matches(
    query: str, cities: Sequence[City], limit: int = 5, score_cutoff: int = 80
) -> List[City]:
    """Finds cities by exact (case-insensitive) name, then by fuzzy matching."""
    normalized = query.lower().strip()
    if not normalized:
        return []
    exact = [city for city in cities if city.name.lower() == normalized]
    if exact:
        return exact

    by_name = {city.name: city for city in cities}
    matches = process.extractBests(
        query, list(by_name), limit=limit, score_cutoff=score_cutoff
    )
    return [by_name[match] for match, score in matches]
