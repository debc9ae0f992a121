import asyncio
import logging
import math
from typing import List, Optional, Sequence

from .config import GRID_OFFSETS
from .errors import NoCandidateFound
from .geo import generate_grid
from .models import Coordinate, GridCandidate, ResolvedParticipant
from .providers import TravelTimeProvider
from .scoring import TravelTimeLookup, compute_metrics

logger = logging.getLogger(__name__)


class GridSearchOptimizer:
    """
    Refines the epicenter by sampling a grid around it and scoring every point with
    real travel times from all participants. Lowest fairness score wins.
    """

    def __init__(
        self,
        travel_times: TravelTimeProvider,
        offsets: Sequence[float] = GRID_OFFSETS,
        max_concurrency: int = 25,
    ):
        self.travel_times = travel_times
        self.offsets = tuple(offsets)
        self.max_concurrency = max_concurrency

    async def _evaluate(
        self,
        lookup: TravelTimeLookup,
        point: Coordinate,
        participants: Sequence[ResolvedParticipant],
    ) -> GridCandidate:
        travel = await lookup.from_participants(participants, point)
        metrics = compute_metrics(t.duration for t in travel)
        return GridCandidate(point=point, travel=tuple(travel), metrics=metrics)

    async def evaluate_grid(
        self,
        epicenter: Coordinate,
        participants: Sequence[ResolvedParticipant],
        lookup: Optional[TravelTimeLookup] = None,
    ) -> List[GridCandidate]:
        """All grid candidates, scored, in generation order."""
        if lookup is None:
            lookup = TravelTimeLookup(self.travel_times, self.max_concurrency)
        points = generate_grid(epicenter, self.offsets)
        return list(await asyncio.gather(*[
            self._evaluate(lookup, point, participants) for point in points
        ]))

    async def optimize(
        self,
        epicenter: Coordinate,
        participants: Sequence[ResolvedParticipant],
        lookup: Optional[TravelTimeLookup] = None,
    ) -> GridCandidate:
        candidates = await self.evaluate_grid(epicenter, participants, lookup)
        # min() keeps the first of equal scores, so grid order breaks ties
        best = min(candidates, key=lambda c: c.fairness_score)
        if math.isinf(best.fairness_score):
            logger.error(f"No travel time data for any of {len(candidates)} grid points around {epicenter.as_latlng()}")
            raise NoCandidateFound("Unable to find suitable meeting points.")

        reachable = sum(1 for c in candidates if not math.isinf(c.fairness_score))
        logger.info(
            f"Grid search: {reachable}/{len(candidates)} points reachable, best {best.point.as_latlng()} "
            f"avg={best.metrics.average:.0f}s max={best.metrics.max:.0f}s score={best.fairness_score:.1f}"
        )
        return best
