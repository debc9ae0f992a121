import asyncio
import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from .config import (
    DEFAULT_VENUE_KEYWORD,
    FALLBACK_VENUE_ADDRESS,
    FALLBACK_VENUE_NAME,
    MAX_ALTERNATIVES,
    VENUE_MAX_RESULTS,
    VENUE_MIN_RATING,
    VENUE_SEARCH_RADIUS_M,
)
from .errors import ProviderError
from .models import Coordinate, RankedVenues, ResolvedParticipant, VenueCandidate
from .providers import PlaceSearchProvider, ReverseGeocoder, TravelTimeProvider
from .scoring import TravelTimeLookup, compute_metrics

logger = logging.getLogger(__name__)


def venue_keyword(venue_type: Optional[str], default: str = DEFAULT_VENUE_KEYWORD) -> str:
    keyword = (venue_type or "").strip()
    return keyword or default


class VenueRanker:
    """
    Finds real venues near the anchor point and ranks them by the fairness score of
    the actual trips to each venue. Without venues, the anchor itself is the result.
    """

    def __init__(
        self,
        places: PlaceSearchProvider,
        travel_times: TravelTimeProvider,
        reverse_geocoder: ReverseGeocoder,
        radius_m: int = VENUE_SEARCH_RADIUS_M,
        min_rating: float = VENUE_MIN_RATING,
        max_results: int = VENUE_MAX_RESULTS,
        max_alternatives: int = MAX_ALTERNATIVES,
        default_keyword: str = DEFAULT_VENUE_KEYWORD,
        max_concurrency: int = 25,
    ):
        self.places = places
        self.travel_times = travel_times
        self.reverse_geocoder = reverse_geocoder
        self.radius_m = radius_m
        self.min_rating = min_rating
        self.max_results = max_results
        self.max_alternatives = max_alternatives
        self.default_keyword = default_keyword
        self.max_concurrency = max_concurrency

    async def _search(self, anchor: Coordinate, keyword: str) -> List[VenueCandidate]:
        try:
            venues = await self.places.search_venues(
                anchor, keyword, self.radius_m, self.min_rating, self.max_results
            )
        except ProviderError as e:
            logger.warning(f"Venue search failed near {anchor.as_latlng()}: {e}")
            return []
        except Exception:
            logger.exception(f"Unexpected venue search error near {anchor.as_latlng()}")
            return []
        return list(venues)[: self.max_results]

    async def _score(
        self,
        lookup: TravelTimeLookup,
        venue: VenueCandidate,
        participants: Sequence[ResolvedParticipant],
    ) -> VenueCandidate:
        travel = await lookup.from_participants(participants, venue.location)
        return replace(venue, travel=tuple(travel), metrics=compute_metrics(t.duration for t in travel))

    async def _display_address(self, anchor: Coordinate) -> str:
        try:
            address = await self.reverse_geocoder.reverse_geocode(anchor)
        except ProviderError as e:
            logger.warning(f"Reverse geocoding failed for {anchor.as_latlng()}: {e}")
            return FALLBACK_VENUE_ADDRESS
        except Exception:
            logger.exception(f"Unexpected reverse geocoding error for {anchor.as_latlng()}")
            return FALLBACK_VENUE_ADDRESS
        return address or FALLBACK_VENUE_ADDRESS

    async def fallback(
        self,
        anchor: Coordinate,
        participants: Sequence[ResolvedParticipant],
        lookup: TravelTimeLookup,
    ) -> RankedVenues:
        """The anchor point itself, with travel times computed directly to it."""
        address, travel = await asyncio.gather(
            self._display_address(anchor),
            lookup.from_participants(participants, anchor),
        )
        venue = VenueCandidate(
            name=FALLBACK_VENUE_NAME,
            address=address,
            location=anchor,
            travel=tuple(travel),
            metrics=compute_metrics(t.duration for t in travel),
        )
        return RankedVenues(best=venue, alternatives=[], fallback=True)

    async def rank(
        self,
        anchor: Coordinate,
        participants: Sequence[ResolvedParticipant],
        venue_type: Optional[str] = None,
        lookup: Optional[TravelTimeLookup] = None,
    ) -> RankedVenues:
        if lookup is None:
            lookup = TravelTimeLookup(self.travel_times, self.max_concurrency)
        keyword = venue_keyword(venue_type, self.default_keyword)

        venues = await self._search(anchor, keyword)
        if not venues:
            logger.info(f"No venues for {keyword!r} within {self.radius_m}m of {anchor.as_latlng()}, using the anchor point")
            return await self.fallback(anchor, participants, lookup)

        scored = await asyncio.gather(*[self._score(lookup, v, participants) for v in venues])
        ranked = sorted(scored, key=lambda v: v.fairness_score)
        logger.info(
            f"Ranked {len(ranked)} venues for {keyword!r}: best {ranked[0].name!r} "
            f"score={ranked[0].fairness_score:.1f}"
        )
        return RankedVenues(best=ranked[0], alternatives=ranked[1: 1 + self.max_alternatives])
