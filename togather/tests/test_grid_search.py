import asyncio
import math

import pytest

from togather.errors import NoCandidateFound
from togather.geo import generate_grid
from togather.grid_search import GridSearchOptimizer
from togather.models import Coordinate, TransportMode, TravelResult

from .conftest import PARIS_A, PARIS_B, FakeTravelTimes, provider_error, resolved

EPICENTER = Coordinate(48.855, 2.350)


def _participants():
    return [resolved('A', PARIS_A), resolved('B', PARIS_B, TransportMode.WALKING)]


def test_best_candidate_is_a_grid_point(travel_times):
    best = asyncio.run(GridSearchOptimizer(travel_times).optimize(EPICENTER, _participants()))

    assert best.point in generate_grid(EPICENTER)
    assert abs(best.point.lat - EPICENTER.lat) <= 0.008 + 1e-9
    assert abs(best.point.lng - EPICENTER.lng) <= 0.008 + 1e-9
    assert len(best.travel) == 2
    assert math.isfinite(best.fairness_score)


def test_every_grid_point_is_queried_for_every_participant(travel_times):
    candidates = asyncio.run(GridSearchOptimizer(travel_times).evaluate_grid(EPICENTER, _participants()))

    assert len(candidates) == 25
    assert len(travel_times.calls) == 50
    assert [c.point for c in candidates] == generate_grid(EPICENTER)


def test_best_has_the_lowest_fairness_score(travel_times):
    optimizer = GridSearchOptimizer(travel_times)
    candidates = asyncio.run(optimizer.evaluate_grid(EPICENTER, _participants()))
    best = asyncio.run(optimizer.optimize(EPICENTER, _participants()))
    assert best.fairness_score == min(c.fairness_score for c in candidates)


def test_walker_pulls_the_best_point_towards_them(travel_times):
    best = asyncio.run(GridSearchOptimizer(travel_times).optimize(EPICENTER, _participants()))
    # B walks, A drives: the winning point sits on B's side of the epicenter
    assert best.point.lat < EPICENTER.lat
    assert best.point.lng > EPICENTER.lng


def test_all_travel_times_failing_raises(travel_times):
    failing = FakeTravelTimes({}, rule=lambda origin, destination, mode: provider_error())
    with pytest.raises(NoCandidateFound):
        asyncio.run(GridSearchOptimizer(failing).optimize(EPICENTER, _participants()))


def test_partial_failures_only_affect_their_own_point():
    reachable = Coordinate(EPICENTER.lat + 0.004, EPICENTER.lng - 0.004)

    def rule(origin, destination, mode):
        if destination == reachable:
            return TravelResult(duration=900, distance=5000)
        return None

    best = asyncio.run(GridSearchOptimizer(FakeTravelTimes({}, rule=rule)).optimize(EPICENTER, _participants()))
    assert best.point == reachable
    assert best.metrics.average == 900


def test_ties_go_to_the_first_generated_point():
    constant = FakeTravelTimes({}, rule=lambda origin, destination, mode: TravelResult(duration=600, distance=1))
    best = asyncio.run(GridSearchOptimizer(constant).optimize(EPICENTER, _participants()))
    assert best.point == generate_grid(EPICENTER)[0]


def test_custom_offsets():
    optimizer = GridSearchOptimizer(
        FakeTravelTimes({}, rule=lambda o, d, m: TravelResult(duration=60, distance=1)),
        offsets=[0.0],
    )
    best = asyncio.run(optimizer.optimize(EPICENTER, _participants()))
    assert best.point == EPICENTER
