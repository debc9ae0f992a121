import asyncio
import concurrent.futures
import datetime as _dt
import logging
from typing import Dict, List, Optional, Union

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError

from .config import VENUE_DEFAULT_RATING, Settings
from .errors import ProviderError
from .geo import distance_m
from .models import Coordinate, TransportMode, TravelResult, VenueCandidate
from .providers import Geocoder, PlaceSearchProvider, ReverseGeocoder, TravelTimeProvider

logger = logging.getLogger(__name__)

_CLIENT_ERRORS = (ApiError, TransportError, Timeout)
_MALFORMED = (KeyError, IndexError, TypeError, ValueError)


def _as_location(point: Union[str, Coordinate]) -> str:
    return point.as_latlng() if isinstance(point, Coordinate) else point


def _parse_place(place: Dict) -> VenueCandidate:
    location = place['geometry']['location']
    return VenueCandidate(
        name=place['name'],
        address=place.get('vicinity') or place.get('formatted_address') or '',
        location=Coordinate(lat=location['lat'], lng=location['lng']),
        place_id=place.get('place_id'),
        rating=place.get('rating'),
        user_ratings_total=place.get('user_ratings_total'),
        price_level=place.get('price_level'),
    )


def rank_places_by_proximity(
    center: Coordinate,
    venues: List[VenueCandidate],
    min_rating: float,
    max_results: int,
) -> List[VenueCandidate]:
    """
    Drop venues under min_rating (unrated ones too, when a minimum is set), then order
    the rest so a better rating can make up for being further away:
    score = rating * 100 - meters from center, highest first.
    """
    if min_rating > 0:
        venues = [v for v in venues if v.rating is not None and v.rating >= min_rating]

    def score(venue: VenueCandidate) -> float:
        rating = venue.rating if venue.rating is not None else VENUE_DEFAULT_RATING
        return rating * 100 - distance_m(center, venue.location)

    return sorted(venues, key=score, reverse=True)[:max_results]


class GoogleMapsService(Geocoder, ReverseGeocoder, TravelTimeProvider, PlaceSearchProvider):
    """Service for interacting with Google Maps APIs"""

    def __init__(self, settings: Settings, client: Optional[googlemaps.Client] = None):
        if client is None:
            if not settings.has_api_key:
                raise ValueError("Valid Google Maps API key is required")
            client = googlemaps.Client(
                key=settings.google_maps_api_key,
                timeout=settings.request_timeout,
                retry_timeout=settings.retry_timeout,
            )
        self.client = client
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=settings.max_workers)

    def cleanup(self):
        """Clean up resources"""
        self.executor.shutdown(wait=True)

    def geocode_address(self, address: str) -> Optional[Coordinate]:
        try:
            result = self.client.geocode(address)
            if not result:
                return None
            location = result[0]['geometry']['location']
            return Coordinate(lat=location['lat'], lng=location['lng'])
        except _CLIENT_ERRORS as e:
            raise ProviderError('geocode', str(e)) from e
        except _MALFORMED as e:
            raise ProviderError('geocode', f"malformed response: {e!r}") from e

    def reverse_geocode_location(self, location: Coordinate) -> Optional[str]:
        try:
            result = self.client.reverse_geocode((location.lat, location.lng))
            if not result:
                return None
            return result[0]['formatted_address']
        except _CLIENT_ERRORS as e:
            raise ProviderError('reverse_geocode', str(e)) from e
        except _MALFORMED as e:
            raise ProviderError('reverse_geocode', f"malformed response: {e!r}") from e

    def get_travel_time(
        self,
        origin: Union[str, Coordinate],
        destination: Union[str, Coordinate],
        mode: TransportMode,
    ) -> Optional[TravelResult]:
        """
        Single origin/destination Distance Matrix lookup.
        Transit and driving are priced for departure now; driving also uses live traffic.
        """
        params = {
            'origins': [_as_location(origin)],
            'destinations': [_as_location(destination)],
            'mode': mode.value,
        }
        if mode in (TransportMode.TRANSIT, TransportMode.DRIVING):
            params['departure_time'] = _dt.datetime.now()
        if mode == TransportMode.DRIVING:
            params['traffic_model'] = 'best_guess'

        try:
            dm = self.client.distance_matrix(**params)
            element = dm['rows'][0]['elements'][0]
        except _CLIENT_ERRORS as e:
            raise ProviderError('travel_time', str(e)) from e
        except _MALFORMED as e:
            raise ProviderError('travel_time', f"malformed response: {e!r}") from e

        if element.get('status') != 'OK' or 'duration' not in element:
            return None
        return TravelResult(
            duration=element['duration']['value'],
            distance=element.get('distance', {}).get('value', float('inf')),
        )

    def find_venues_nearby(
        self,
        center: Coordinate,
        keyword: str,
        radius_m: int,
        min_rating: float,
        max_results: int,
    ) -> List[VenueCandidate]:
        try:
            places_result = self.client.places_nearby(
                location=(center.lat, center.lng),
                radius=radius_m,
                keyword=keyword,
            )
            venues = [_parse_place(place) for place in places_result.get('results', [])]
        except _CLIENT_ERRORS as e:
            raise ProviderError('search_venues', str(e)) from e
        except _MALFORMED as e:
            raise ProviderError('search_venues', f"malformed response: {e!r}") from e
        return rank_places_by_proximity(center, venues, min_rating, max_results)

    # Async wrappers: the googlemaps client blocks, so calls run on the executor
    async def geocode(self, address: str) -> Optional[Coordinate]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.geocode_address, address)

    async def reverse_geocode(self, location: Coordinate) -> Optional[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.reverse_geocode_location, location)

    async def travel_time(self, origin, destination, mode: TransportMode) -> Optional[TravelResult]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.get_travel_time, origin, destination, mode)

    async def search_venues(self, center, keyword, radius_m, min_rating, max_results) -> List[VenueCandidate]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor, self.find_venues_nearby, center, keyword, radius_m, min_rating, max_results
        )
