"""
Travel-time fan-out and the fairness metric shared by the grid search and venue ranking.
"""

import asyncio
import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import FAIRNESS_MAX_WEIGHT, FAIRNESS_STDDEV_WEIGHT
from .errors import ProviderError
from .models import Coordinate, ResolvedParticipant, TransportMode, TravelMetrics, TravelResult
from .providers import TravelTimeProvider

logger = logging.getLogger(__name__)


def fairness_score(
    average: float,
    maximum: float,
    stddev: float,
    max_weight: float = FAIRNESS_MAX_WEIGHT,
    stddev_weight: float = FAIRNESS_STDDEV_WEIGHT,
) -> float:
    return average + max_weight * maximum + stddev_weight * stddev


def compute_metrics(durations: Iterable[float]) -> TravelMetrics:
    """
    Average, max and population standard deviation over the finite durations.
    Failed lookups (inf) are left out; if nothing is finite every metric is inf.
    """
    valid = [d for d in durations if math.isfinite(d)]
    if not valid:
        return TravelMetrics.unreachable()

    average = sum(valid) / len(valid)
    maximum = max(valid)
    variance = sum((d - average) ** 2 for d in valid) / len(valid)
    stddev = math.sqrt(variance)
    return TravelMetrics(
        average=average,
        max=maximum,
        stddev=stddev,
        fairness_score=fairness_score(average, maximum, stddev),
    )


class TravelTimeLookup:
    """
    Per-request access to the travel-time provider.

    Failures never propagate: they come back as TravelResult.failed(). Identical
    (origin, destination, mode) lookups share a single provider call, and at most
    max_concurrency calls are in flight at once.
    """

    def __init__(self, provider: TravelTimeProvider, max_concurrency: int = 25):
        self.provider = provider
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._pending: Dict[Tuple[str, str, TransportMode], asyncio.Task] = {}
        self.calls = 0

    async def _fetch(self, origin: str, destination: Coordinate, mode: TransportMode) -> TravelResult:
        async with self._semaphore:
            self.calls += 1
            try:
                result: Optional[TravelResult] = await self.provider.travel_time(origin, destination, mode)
            except ProviderError as e:
                logger.warning(f"Travel time failed {origin!r} -> {destination.as_latlng()} ({mode.value}): {e}")
                return TravelResult.failed()
            except Exception:
                logger.exception(f"Unexpected travel time error {origin!r} -> {destination.as_latlng()} ({mode.value})")
                return TravelResult.failed()
        if result is None:
            logger.info(f"No route {origin!r} -> {destination.as_latlng()} ({mode.value})")
            return TravelResult.failed()
        return result

    async def travel_time(self, origin: str, destination: Coordinate, mode: TransportMode) -> TravelResult:
        key = (origin, destination.as_latlng(), mode)
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(origin, destination, mode))
            self._pending[key] = task
        return await task

    async def from_participants(
        self,
        participants: Sequence[ResolvedParticipant],
        destination: Coordinate,
    ) -> List[TravelResult]:
        """One result per participant, in participant order."""
        return list(await asyncio.gather(*[
            self.travel_time(p.address, destination, p.transport) for p in participants
        ]))
