"""
Value types passed between the meeting-point pipeline stages.

Everything here lives for a single request; nothing is shared or persisted.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class TransportMode(str, Enum):
    WALKING = "walking"
    BICYCLING = "bicycling"
    TRANSIT = "transit"
    DRIVING = "driving"

    @classmethod
    def parse(cls, value) -> "TransportMode":
        """Case-insensitive lookup by wire value ("walking", "DRIVING", ...)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported transport mode: {value}") from None


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def as_latlng(self) -> str:
        return f"{self.lat},{self.lng}"

    def to_dict(self) -> Dict[str, float]:
        return {'lat': self.lat, 'lng': self.lng}


@dataclass(frozen=True)
class ParticipantInput:
    address: str
    transport: TransportMode = TransportMode.DRIVING


@dataclass(frozen=True)
class ResolvedParticipant:
    """A participant whose address was geocoded successfully."""
    participant: ParticipantInput
    location: Coordinate

    @property
    def address(self) -> str:
        return self.participant.address

    @property
    def transport(self) -> TransportMode:
        return self.participant.transport


@dataclass(frozen=True)
class TravelResult:
    """Duration (seconds) and distance (meters) of one trip; both infinite when the lookup failed."""
    duration: float
    distance: float

    @classmethod
    def failed(cls) -> "TravelResult":
        return cls(duration=math.inf, distance=math.inf)

    @property
    def ok(self) -> bool:
        return math.isfinite(self.duration)


@dataclass(frozen=True)
class TravelMetrics:
    average: float
    max: float
    stddev: float
    fairness_score: float

    @classmethod
    def unreachable(cls) -> "TravelMetrics":
        return cls(average=math.inf, max=math.inf, stddev=math.inf, fairness_score=math.inf)


@dataclass(frozen=True)
class GridCandidate:
    point: Coordinate
    travel: Tuple[TravelResult, ...]
    metrics: TravelMetrics

    @property
    def fairness_score(self) -> float:
        return self.metrics.fairness_score


@dataclass(frozen=True)
class VenueCandidate:
    """A venue returned by place search, optionally enriched with real travel times from every participant."""
    name: str
    address: str
    location: Coordinate
    place_id: Optional[str] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    travel: Tuple[TravelResult, ...] = field(default_factory=tuple)
    metrics: Optional[TravelMetrics] = None

    @property
    def fairness_score(self) -> float:
        return self.metrics.fairness_score if self.metrics else math.inf

    @property
    def average_time(self) -> float:
        return self.metrics.average if self.metrics else math.inf


@dataclass(frozen=True)
class RankedVenues:
    best: VenueCandidate
    alternatives: List[VenueCandidate] = field(default_factory=list)
    fallback: bool = False


@dataclass(frozen=True)
class MeetingPointResult:
    best: VenueCandidate
    alternatives: List[VenueCandidate]
    travel_times: List[float]
    average_time: float
    fallback: bool = False
