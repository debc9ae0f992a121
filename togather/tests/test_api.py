import pytest

from togather.app import create_app, parse_compute_request
from togather.config import Settings
from togather.errors import InvalidRequest
from togather.finder import MeetingPointFinder
from togather.models import TransportMode, TravelResult

from .conftest import FakePlaces, FakeTravelTimes, provider_error

SETTINGS = Settings(google_maps_api_key=None, log_file=None)


@pytest.fixture
def client(finder):
    return create_app(SETTINGS, finder=finder).test_client()


def _body(*addresses, transport='driving', venue_type=None):
    body = {'locations': [{'address': a, 'transport': transport} for a in addresses]}
    if venue_type is not None:
        body['venueType'] = venue_type
    return body


def test_health_check(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_compute_location_success(client):
    response = client.post('/compute-location', json=_body('A', 'B', venue_type=''))
    assert response.status_code == 200
    assert 'X-Compute-Time-ms' in response.headers

    best = response.get_json()['bestLocation']
    assert set(best) >= {'name', 'address', 'location', 'travelTimes', 'averageTime', 'placeId', 'alternativeVenues'}
    assert len(best['travelTimes']) == 2
    assert best['averageTime'] == pytest.approx(sum(best['travelTimes']) / 2)
    assert best['placeId'].startswith('place-')
    assert best['rating'] >= 3.8
    assert best['userRatingsTotal'] == 120
    assert len(best['alternativeVenues']) <= 3
    for alternative in best['alternativeVenues']:
        assert set(alternative) >= {'name', 'address', 'location', 'averageTime', 'placeId'}
        assert 'travelTimes' not in alternative


@pytest.mark.parametrize('body', [
    {'locations': []},
    _body('A'),
    _body('A', '   '),
    {'locations': [{'address': '', 'transport': 'walking'}, {'address': 'B', 'transport': 'walking'}]},
])
def test_fewer_than_two_addresses_is_rejected_without_provider_calls(client, geocoder, body):
    response = client.post('/compute-location', json=body)
    assert response.status_code == 400
    assert response.get_json() == {'error': 'At least two locations are required.'}
    assert geocoder.calls == []


@pytest.mark.parametrize('body', [
    None,
    {'venueType': 'cafe'},
    {'locations': 'A and B'},
    _body('A', 'B', transport='teleport'),
    {'locations': [{'address': 'A'}, {'address': 'B'}], 'venueType': 7},
])
def test_malformed_bodies_are_rejected(client, geocoder, body):
    response = client.post('/compute-location', json=body)
    assert response.status_code == 400
    assert 'error' in response.get_json()
    assert geocoder.calls == []


def test_geocoding_failure_is_a_server_error(geocoder, travel_times, places, reverse_geocoder):
    geocoder.known['B'] = provider_error('geocode')
    finder = MeetingPointFinder(geocoder, travel_times, places, reverse_geocoder)
    client = create_app(SETTINGS, finder=finder).test_client()

    response = client.post('/compute-location', json=_body('A', 'B'))
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Unable to compute epicenter from the given addresses.'}


def test_no_grid_candidate_is_a_server_error(geocoder, places, reverse_geocoder):
    failing = FakeTravelTimes({}, rule=lambda o, d, m: provider_error())
    finder = MeetingPointFinder(geocoder, failing, places, reverse_geocoder)
    client = create_app(SETTINGS, finder=finder).test_client()

    response = client.post('/compute-location', json=_body('A', 'B'))
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Unable to find suitable meeting points.'}


def test_fallback_response_shape(geocoder, travel_times, reverse_geocoder):
    finder = MeetingPointFinder(geocoder, travel_times, FakePlaces([]), reverse_geocoder)
    client = create_app(SETTINGS, finder=finder).test_client()

    best = client.post('/compute-location', json=_body('A', 'B')).get_json()['bestLocation']
    assert best['name'] == 'Meeting Point'
    assert best['address'] == '1 Rue de Rivoli, Paris'
    assert best['placeId'] is None
    assert 'rating' not in best
    assert 'alternativeVenues' not in best
    assert len(best['travelTimes']) == 2


def test_missing_api_key_is_a_server_error():
    client = create_app(SETTINGS).test_client()
    response = client.post('/compute-location', json=_body('A', 'B'))
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Google Maps API key not configured'}


def test_unknown_route(client):
    response = client.get('/nope')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Endpoint not found'}


def test_parse_compute_request_normalizes_input():
    participants, venue_type = parse_compute_request({
        'locations': [
            {'address': '  10 Downing St ', 'transport': 'WALKING'},
            {'address': 'Kings Cross'},
            {'address': '   ', 'transport': 'transit'},
        ],
        'venueType': ' pub ',
    })
    assert [p.address for p in participants] == ['10 Downing St', 'Kings Cross']
    assert [p.transport for p in participants] == [TransportMode.WALKING, TransportMode.DRIVING]
    assert venue_type == 'pub'


def test_parse_compute_request_rejects_unknown_transport():
    with pytest.raises(InvalidRequest, match='Unsupported transport mode: hoverboard'):
        parse_compute_request({'locations': [{'address': 'A', 'transport': 'hoverboard'}]})


def test_failed_durations_serialize_as_null(geocoder, places, reverse_geocoder):
    def rule(origin, destination, mode):
        if origin == 'B':
            return None
        return TravelResult(duration=600, distance=3000)

    finder = MeetingPointFinder(geocoder, FakeTravelTimes({}, rule=rule), places, reverse_geocoder)
    client = create_app(SETTINGS, finder=finder).test_client()

    best = client.post('/compute-location', json=_body('A', 'B')).get_json()['bestLocation']
    assert best['travelTimes'] == [600, None]
    assert best['averageTime'] == 600


def test_place_search_crash_still_returns_the_anchor(geocoder, travel_times, reverse_geocoder):
    finder = MeetingPointFinder(geocoder, travel_times, FakePlaces(RuntimeError('boom')), reverse_geocoder)
    client = create_app(SETTINGS, finder=finder).test_client()

    response = client.post('/compute-location', json=_body('A', 'B'))
    assert response.status_code == 200
    assert response.get_json()['bestLocation']['name'] == 'Meeting Point'


def test_maps_service_executor_is_shut_down_at_exit(monkeypatch):
    class StubMapsService:
        def __init__(self, settings):
            self.settings = settings

        def cleanup(self):
            pass

    registered = []
    monkeypatch.setattr('togather.app.GoogleMapsService', StubMapsService)
    monkeypatch.setattr('togather.app.atexit.register', registered.append)

    create_app(Settings(google_maps_api_key='AIza-test-key', log_file=None))

    assert len(registered) == 1
    assert isinstance(registered[0].__self__, StubMapsService)
    assert registered[0].__func__ is StubMapsService.cleanup
