"""Address-text distance estimation used when no live distance service is configured.

Addresses are reduced to coarse geographic tokens (state, city, county and the
remaining significant words). The pair is classified into a distance bucket,
a distance is drawn from the bucket, adjusted for road indirection and
geographic barriers, and converted to a drive time for the territory.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Literal, Optional

from ...config import settings
from ...models.domain import LegEstimate, LocationRef, TerritoryType
from ..geospatial import haversine_miles, parse_coordinate
from .provider import DistanceProvider, same_location

SamplingMode = Literal["seeded", "midpoint", "random"]

DIFFERENT_STATE_RANGE = (120.0, 300.0)
SAME_CITY_RANGE = (3.0, 15.0)
SAME_COUNTY_RANGE = (10.0, 30.0)
# (minimum similarity, bucket range), checked top to bottom
SIMILARITY_RANGES = (
    (0.5, (5.0, 20.0)),
    (0.3, (15.0, 40.0)),
    (0.1, (30.0, 70.0)),
    (0.0, (50.0, 120.0)),
)

MIN_DISTANCE_MILES = 2.0
INDIRECTION_THRESHOLD_MILES = 30.0
INDIRECTION_FACTOR = 1.10
BARRIER_FACTOR = 1.25
WELL_CONNECTED_BAND = (20.0, 80.0)
WELL_CONNECTED_FACTOR = 0.95
ROAD_CIRCUITY_FACTOR = 1.3

MINUTES_PER_MILE = {
    TerritoryType.URBAN: 2.8,
    TerritoryType.RURAL: 1.2,
    TerritoryType.MIXED: 2.0,
}
LONG_DRIVE_THRESHOLD_MILES = 50.0
LONG_DRIVE_FACTOR = 1.10

US_STATES = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN", "IA",
        "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
        "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT",
        "VA", "WA", "WV", "WI", "WY", "DC",
    }
)

STREET_WORDS = frozenset(
    {
        "st", "street", "ave", "avenue", "rd", "road", "blvd", "boulevard", "dr", "drive", "ln",
        "lane", "ct", "court", "way", "pl", "place", "hwy", "highway", "pkwy", "parkway", "cir",
        "circle", "ter", "terrace", "trl", "trail", "apt", "suite", "ste", "unit", "north",
        "south", "east", "west", "the", "and",
    }
)

# city -> county for places whose addresses rarely spell out the county
COUNTY_GAZETTEER = {
    "springfield": "sangamon",
    "chatham": "sangamon",
    "rochester": "sangamon",
    "evanston": "cook",
    "chicago": "cook",
    "oak park": "cook",
    "skokie": "cook",
    "houston": "harris",
    "pasadena": "harris",
    "katy": "harris",
    "phoenix": "maricopa",
    "mesa": "maricopa",
    "tempe": "maricopa",
    "scottsdale": "maricopa",
    "columbus": "franklin",
    "dublin": "franklin",
    "westerville": "franklin",
    "nashville": "davidson",
    "lexington": "fayette",
    "boise": "ada",
    "meridian": "ada",
    "eagle": "ada",
}

GEOGRAPHIC_BARRIERS = (
    "mississippi river",
    "missouri river",
    "ohio river",
    "columbia river",
    "hudson river",
    "snake river",
    "rocky mountain",
    "appalachian",
    "blue ridge",
    "sierra nevada",
    "cascade",
    "ozark",
    "lake michigan",
    "chesapeake bay",
    "puget sound",
)

_COUNTY_PATTERN = re.compile(r"([a-z][a-z .'-]*?)\s+county\b")
_ZIP_PATTERN = re.compile(r"\b\d{5}(?:-\d{4})?\b")
_WORD_PATTERN = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True, slots=True)
class AddressTokens:
    state: Optional[str]
    city: Optional[str]
    county: Optional[str]
    words: frozenset[str]


def extract_tokens(address: LocationRef) -> AddressTokens:
    segments = [segment.strip() for segment in address.split(",") if segment.strip()]

    state = None
    for segment in reversed(segments[1:] or segments):
        for candidate in re.findall(r"\b[A-Za-z]{2}\b", _ZIP_PATTERN.sub("", segment)):
            if candidate.upper() in US_STATES and candidate.isupper():
                state = candidate.upper()
                break
        if state:
            break

    city = segments[-2].lower() if len(segments) >= 2 else None
    if city and state and city.upper() == state:
        city = None

    lowered = address.lower()
    county_match = _COUNTY_PATTERN.search(lowered)
    if county_match:
        county = county_match.group(1).split(",")[-1].strip()
    else:
        county = COUNTY_GAZETTEER.get(city) if city else None

    words = frozenset(
        word
        for word in _WORD_PATTERN.findall(lowered)
        if len(word) > 1 and not word.isdigit() and word not in STREET_WORDS
    )
    return AddressTokens(state=state, city=city, county=county, words=words)


def token_similarity(first: AddressTokens, second: AddressTokens) -> float:
    largest = max(len(first.words), len(second.words))
    if largest == 0:
        return 0.0
    return len(first.words & second.words) / largest


def select_bucket(first: AddressTokens, second: AddressTokens) -> tuple[float, float]:
    if first.state and second.state and first.state != second.state:
        return DIFFERENT_STATE_RANGE
    if first.city and first.city == second.city:
        return SAME_CITY_RANGE
    if first.county and first.county == second.county:
        return SAME_COUNTY_RANGE
    similarity = token_similarity(first, second)
    for minimum, bucket in SIMILARITY_RANGES:
        if similarity >= minimum:
            return bucket
    return SIMILARITY_RANGES[-1][1]


def crosses_barrier(origin: LocationRef, destination: LocationRef) -> bool:
    origin_text, destination_text = origin.lower(), destination.lower()
    return any((name in origin_text) != (name in destination_text) for name in GEOGRAPHIC_BARRIERS)


def apply_modifiers(miles: float, origin: LocationRef, destination: LocationRef) -> float:
    if miles > INDIRECTION_THRESHOLD_MILES:
        miles *= INDIRECTION_FACTOR
    if crosses_barrier(origin, destination):
        miles *= BARRIER_FACTOR
    low, high = WELL_CONNECTED_BAND
    if low <= miles <= high:
        miles *= WELL_CONNECTED_FACTOR
    return max(miles, MIN_DISTANCE_MILES)


def drive_minutes(miles: float, territory: TerritoryType) -> float:
    minutes = miles * MINUTES_PER_MILE[territory]
    if miles > LONG_DRIVE_THRESHOLD_MILES:
        minutes *= LONG_DRIVE_FACTOR
    return minutes


class HeuristicEstimator(DistanceProvider):
    """Fallback :class:`DistanceProvider` that infers distance from address text."""

    name = "heuristic"
    exact = False

    def __init__(
        self,
        territory: TerritoryType = TerritoryType.MIXED,
        *,
        sampling: SamplingMode | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.territory = TerritoryType(territory)
        self.sampling = sampling or settings.heuristic_sampling
        self.seed = seed if seed is not None else settings.heuristic_seed
        self._rng = rng or random.Random()

    def _sample(self, bucket: tuple[float, float], origin: str, destination: str) -> float:
        low, high = bucket
        if self.sampling == "midpoint":
            return (low + high) / 2.0
        if self.sampling == "random":
            return self._rng.uniform(low, high)
        # one generator per unordered pair keeps A->B and B->A identical across runs
        pair = "|".join(sorted((origin.lower().strip(), destination.lower().strip())))
        return random.Random(f"{self.seed}:{pair}").uniform(low, high)

    def estimate_miles(self, origin: LocationRef, destination: LocationRef) -> float:
        if same_location(origin, destination):
            return 0.0
        origin_point, destination_point = parse_coordinate(origin), parse_coordinate(destination)
        if origin_point and destination_point:
            miles = haversine_miles(*origin_point, *destination_point) * ROAD_CIRCUITY_FACTOR
            return max(miles, MIN_DISTANCE_MILES)
        bucket = select_bucket(extract_tokens(origin), extract_tokens(destination))
        miles = self._sample(bucket, origin, destination)
        return apply_modifiers(miles, origin, destination)

    def estimate(self, origin: LocationRef, destination: LocationRef) -> LegEstimate:
        miles = self.estimate_miles(origin, destination)
        return LegEstimate(
            distance_miles=miles,
            duration_minutes=drive_minutes(miles, self.territory),
            estimated=True,
        )
