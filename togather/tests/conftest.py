"""
Deterministic in-memory stand-ins for the map providers.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Union

import pytest

from togather.config import Settings
from togather.errors import ProviderError
from togather.finder import MeetingPointFinder
from togather.geo import distance_m
from togather.models import Coordinate, ParticipantInput, ResolvedParticipant, TransportMode, TravelResult, VenueCandidate
from togather.providers import Geocoder, PlaceSearchProvider, ReverseGeocoder, TravelTimeProvider

# meters per second
SPEEDS = {
    TransportMode.WALKING: 1.4,
    TransportMode.BICYCLING: 4.5,
    TransportMode.TRANSIT: 7.0,
    TransportMode.DRIVING: 10.0,
}


class FakeGeocoder(Geocoder):
    def __init__(self, known: Dict[str, Union[Coordinate, Exception]], delays: Dict[str, float] = None):
        self.known = known
        self.delays = delays or {}
        self.calls: List[str] = []

    async def geocode(self, address: str) -> Optional[Coordinate]:
        self.calls.append(address)
        await asyncio.sleep(self.delays.get(address, 0))
        found = self.known.get(address)
        if isinstance(found, Exception):
            raise found
        return found


class FakeTravelTimes(TravelTimeProvider):
    """Straight-line distance at a per-mode speed, unless a custom rule is given."""

    def __init__(self, origins: Dict[str, Coordinate], rule: Callable = None):
        self.origins = origins
        self.rule = rule
        self.calls: List[tuple] = []

    async def travel_time(self, origin, destination, mode) -> Optional[TravelResult]:
        self.calls.append((origin, destination, mode))
        if self.rule is not None:
            result = self.rule(origin, destination, mode)
            if isinstance(result, Exception):
                raise result
            return result
        meters = distance_m(self.origins[origin], destination)
        return TravelResult(duration=round(meters / SPEEDS[mode]), distance=meters)


class FakePlaces(PlaceSearchProvider):
    def __init__(self, venues: Union[List[VenueCandidate], Exception] = None):
        self.venues = venues if venues is not None else []
        self.calls: List[dict] = []

    async def search_venues(self, center, keyword, radius_m, min_rating, max_results):
        self.calls.append({
            'center': center,
            'keyword': keyword,
            'radius_m': radius_m,
            'min_rating': min_rating,
            'max_results': max_results,
        })
        if isinstance(self.venues, Exception):
            raise self.venues
        return list(self.venues)


class FakeReverseGeocoder(ReverseGeocoder):
    def __init__(self, address: Union[str, None, Exception] = "1 Rue de Rivoli, Paris"):
        self.address = address
        self.calls: List[Coordinate] = []

    async def reverse_geocode(self, location):
        self.calls.append(location)
        if isinstance(self.address, Exception):
            raise self.address
        return self.address


PARIS_A = Coordinate(48.860, 2.340)
PARIS_B = Coordinate(48.850, 2.360)


def venue(name: str, lat: float, lng: float, rating: float = 4.2, place_id: str = None) -> VenueCandidate:
    return VenueCandidate(
        name=name,
        address=f"{name} street",
        location=Coordinate(lat, lng),
        place_id=place_id or f"place-{name}",
        rating=rating,
        user_ratings_total=120,
    )


def resolved(address: str, location: Coordinate, transport=TransportMode.DRIVING) -> ResolvedParticipant:
    return ResolvedParticipant(participant=ParticipantInput(address, transport), location=location)


def provider_error(operation: str = 'travel_time') -> ProviderError:
    return ProviderError(operation, 'OVER_QUERY_LIMIT')


@pytest.fixture
def addresses():
    return {'A': PARIS_A, 'B': PARIS_B}


@pytest.fixture
def geocoder(addresses):
    return FakeGeocoder(dict(addresses))


@pytest.fixture
def travel_times(addresses):
    return FakeTravelTimes(dict(addresses))


@pytest.fixture
def places():
    return FakePlaces([
        venue('Cafe Central', 48.8551, 2.3502, rating=4.5),
        venue('Bistro Nord', 48.8590, 2.3440, rating=4.0),
        venue('Bar Sud', 48.8510, 2.3580, rating=3.9),
    ])


@pytest.fixture
def reverse_geocoder():
    return FakeReverseGeocoder()


@pytest.fixture
def finder(geocoder, travel_times, places, reverse_geocoder):
    return MeetingPointFinder(
        geocoder, travel_times, places, reverse_geocoder,
        settings=Settings(max_concurrent_calls=10),
    )
