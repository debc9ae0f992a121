import math
from typing import Any, Dict, List, Optional, Sequence

from .models import MeetingPointResult, VenueCandidate


def _seconds(value: float) -> Optional[float]:
    # inf/nan are not valid JSON numbers
    return value if math.isfinite(value) else None


class ResultAssembler:

    def assemble(
        self,
        best: VenueCandidate,
        alternatives: Sequence[VenueCandidate] = (),
        fallback: bool = False,
    ) -> MeetingPointResult:
        return MeetingPointResult(
            best=best,
            alternatives=list(alternatives),
            travel_times=[t.duration for t in best.travel],
            average_time=best.average_time,
            fallback=fallback,
        )

    @staticmethod
    def alternative_to_dict(venue: VenueCandidate) -> Dict[str, Any]:
        data = {
            'name': venue.name,
            'address': venue.address,
            'location': venue.location.to_dict(),
            'averageTime': _seconds(venue.average_time),
            'placeId': venue.place_id,
        }
        if venue.rating is not None:
            data['rating'] = venue.rating
        return data

    def to_response(self, result: MeetingPointResult) -> Dict[str, Any]:
        """JSON body for a successful compute-location request."""
        best = result.best
        best_location: Dict[str, Any] = {
            'name': best.name,
            'address': best.address,
            'location': best.location.to_dict(),
            'travelTimes': [_seconds(t) for t in result.travel_times],
            'averageTime': _seconds(result.average_time),
            'placeId': best.place_id,
        }
        if best.rating is not None:
            best_location['rating'] = best.rating
        if best.user_ratings_total is not None:
            best_location['userRatingsTotal'] = best.user_ratings_total
        if not result.fallback:
            alternatives: List[Dict[str, Any]] = [self.alternative_to_dict(v) for v in result.alternatives]
            best_location['alternativeVenues'] = alternatives
        return {'bestLocation': best_location}
