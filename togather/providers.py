"""
Capability interfaces for the external map services the pipeline depends on.

The pipeline only ever talks to these, so tests can swap in deterministic fakes
and a different map vendor only needs a new implementation.

Contract shared by all of them: "not found" is a normal return value (None or an
empty list); network, quota and parsing failures raise ProviderError.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Union

from .models import Coordinate, TransportMode, TravelResult, VenueCandidate


class Geocoder(ABC):
    @abstractmethod
    async def geocode(self, address: str) -> Optional[Coordinate]:
        """Resolve an address to a coordinate, or None if the provider has no match."""


class ReverseGeocoder(ABC):
    @abstractmethod
    async def reverse_geocode(self, location: Coordinate) -> Optional[str]:
        """Display address for a coordinate, or None."""


class TravelTimeProvider(ABC):
    @abstractmethod
    async def travel_time(
        self,
        origin: Union[str, Coordinate],
        destination: Union[str, Coordinate],
        mode: TransportMode,
    ) -> Optional[TravelResult]:
        """Duration and distance of the trip, or None when no route exists."""


class PlaceSearchProvider(ABC):
    @abstractmethod
    async def search_venues(
        self,
        center: Coordinate,
        keyword: str,
        radius_m: int,
        min_rating: float,
        max_results: int,
    ) -> List[VenueCandidate]:
        """Venues near center matching keyword, best first, at most max_results."""
