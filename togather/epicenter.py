"""
Fairness-weighted centroid of the participants.

Participants far from everyone else, and participants on slow transport, pull the
epicenter towards themselves: the goal is to cut the worst commute, not the total.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from .config import CENTRALITY_BASE, CENTRALITY_SPREAD, TRANSPORT_FACTORS
from .errors import InsufficientLocations
from .geo import distance_km
from .models import Coordinate, ResolvedParticipant, TransportMode

logger = logging.getLogger(__name__)


class EpicenterEstimator:

    def __init__(
        self,
        centrality_base: float = CENTRALITY_BASE,
        centrality_spread: float = CENTRALITY_SPREAD,
        transport_factors: Optional[Dict[TransportMode, float]] = None,
        distance: Callable[[Coordinate, Coordinate], float] = distance_km,
    ):
        self.centrality_base = centrality_base
        self.centrality_spread = centrality_spread
        self.transport_factors = TRANSPORT_FACTORS if transport_factors is None else transport_factors
        self.distance = distance

    def centrality_weights(self, points: Sequence[Coordinate]) -> List[float]:
        """0.4 + 0.6 * share of the total pairwise distance, per point."""
        dist_sums = [
            sum(self.distance(a, b) for j, b in enumerate(points) if j != i)
            for i, a in enumerate(points)
        ]
        total = sum(dist_sums)
        if total == 0:
            # All points coincide: every share is equal
            return [self.centrality_base + self.centrality_spread / len(points)] * len(points)
        return [self.centrality_base + self.centrality_spread * (d / total) for d in dist_sums]

    def estimate(self, participants: Sequence[ResolvedParticipant]) -> Coordinate:
        if not participants:
            raise InsufficientLocations(0)
        if len(participants) == 1:
            return participants[0].location

        points = [p.location for p in participants]
        if all(pt == points[0] for pt in points):
            return points[0]
        centrality = self.centrality_weights(points)
        weights = [c * self.transport_factors.get(p.transport, 1.0) for c, p in zip(centrality, participants)]
        weight_sum = sum(weights)

        epicenter = Coordinate(
            lat=sum(pt.lat * w for pt, w in zip(points, weights)) / weight_sum,
            lng=sum(pt.lng * w for pt, w in zip(points, weights)) / weight_sum,
        )
        logger.info(f"Weighted epicenter: lat={epicenter.lat:.6f}, lng={epicenter.lng:.6f} (weights={[round(w, 3) for w in weights]})")
        return epicenter
