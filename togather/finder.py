import asyncio
import logging
from time import perf_counter
from typing import Optional, Sequence

from .config import Settings
from .epicenter import EpicenterEstimator
from .errors import InsufficientLocations
from .grid_search import GridSearchOptimizer
from .models import MeetingPointResult, ParticipantInput
from .providers import Geocoder, PlaceSearchProvider, ReverseGeocoder, TravelTimeProvider
from .resolver import MIN_PARTICIPANTS, AddressResolver
from .result import ResultAssembler
from .scoring import TravelTimeLookup
from .venues import VenueRanker

logger = logging.getLogger(__name__)


class MeetingPointFinder:
    """
    Finds the fairest meeting venue for a group:
    geocode -> weighted epicenter -> grid refinement -> venue ranking -> result
    """

    def __init__(
        self,
        geocoder: Geocoder,
        travel_times: TravelTimeProvider,
        places: PlaceSearchProvider,
        reverse_geocoder: ReverseGeocoder,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        limit = self.settings.max_concurrent_calls
        self.travel_times = travel_times
        self.resolver = AddressResolver(geocoder, max_concurrency=limit)
        self.estimator = EpicenterEstimator()
        self.optimizer = GridSearchOptimizer(travel_times, max_concurrency=limit)
        self.ranker = VenueRanker(places, travel_times, reverse_geocoder, max_concurrency=limit)
        self.assembler = ResultAssembler()

    @classmethod
    def from_maps_service(cls, maps_service, settings: Optional[Settings] = None) -> "MeetingPointFinder":
        """Use one service object for all four provider roles (e.g. GoogleMapsService)."""
        return cls(maps_service, maps_service, maps_service, maps_service, settings=settings)

    def find_meeting_point(
        self,
        participants: Sequence[ParticipantInput],
        venue_type: Optional[str] = None,
    ) -> MeetingPointResult:
        """Blocking entry point; runs the async pipeline on a fresh event loop."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(self.find_meeting_point_async(participants, venue_type))
        finally:
            loop.close()

    async def find_meeting_point_async(
        self,
        participants: Sequence[ParticipantInput],
        venue_type: Optional[str] = None,
    ) -> MeetingPointResult:
        if len(participants) < MIN_PARTICIPANTS:
            raise InsufficientLocations(len(participants))

        started = perf_counter()
        resolved = await self.resolver.resolve(participants)
        epicenter = self.estimator.estimate(resolved)

        # One lookup per request: grid and venue stages share the memoized travel times
        lookup = TravelTimeLookup(self.travel_times, self.settings.max_concurrent_calls)
        anchor = await self.optimizer.optimize(epicenter, resolved, lookup)
        ranked = await self.ranker.rank(anchor.point, resolved, venue_type, lookup)

        result = self.assembler.assemble(ranked.best, ranked.alternatives, fallback=ranked.fallback)
        logger.info(
            f"Meeting point {result.best.name!r} for {len(resolved)} participants "
            f"({lookup.calls} travel time calls, {(perf_counter() - started) * 1000.0:.1f} ms)"
        )
        return result
