import atexit
import json
import logging
from time import perf_counter
from typing import List, Optional, Tuple

from flask import Flask, current_app, g, jsonify, request
from flask_cors import CORS

from .config import Settings
from .errors import InsufficientLocations, InvalidRequest, NoCandidateFound
from .finder import MeetingPointFinder
from .maps_service import GoogleMapsService
from .models import ParticipantInput, TransportMode
from .resolver import MIN_PARTICIPANTS

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(settings: Settings):
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, handlers=handlers)


def parse_compute_request(data) -> Tuple[List[ParticipantInput], str]:
    """
    Turn a compute-location body into participants and a venue keyword.
    Blank addresses are dropped here; whether enough remain is the caller's check.
    """
    if not isinstance(data, dict):
        raise InvalidRequest("JSON data is required")
    locations = data.get('locations')
    if not isinstance(locations, list):
        raise InvalidRequest("locations must be a list")

    participants: List[ParticipantInput] = []
    for entry in locations:
        if not isinstance(entry, dict):
            raise InvalidRequest("Each location must be an object with an address")
        address = entry.get('address')
        if not isinstance(address, str) or not address.strip():
            continue
        try:
            transport = TransportMode.parse(entry.get('transport') or TransportMode.DRIVING)
        except ValueError as e:
            raise InvalidRequest(str(e)) from e
        participants.append(ParticipantInput(address=address.strip(), transport=transport))

    venue_type = data.get('venueType') or ''
    if not isinstance(venue_type, str):
        raise InvalidRequest("venueType must be a string")
    return participants, venue_type.strip()


def _build_finder(settings: Settings) -> Optional[MeetingPointFinder]:
    logger.info(f"API Key found: {'Yes' if settings.has_api_key else 'No'}")
    if not settings.has_api_key:
        logger.warning("GOOGLE_MAPS_API_KEY not found or not configured in environment variables")
        return None
    try:
        logger.info("Initializing Google Maps service...")
        maps_service = GoogleMapsService(settings)
    except ValueError as e:
        logger.error(f"Error initializing Google Maps service: {e}")
        return None
    logger.info("Google Maps service initialized successfully")
    atexit.register(maps_service.cleanup)
    return MeetingPointFinder.from_maps_service(maps_service, settings)


def create_app(settings: Optional[Settings] = None, finder: Optional[MeetingPointFinder] = None) -> Flask:
    """
    Build the API. Without an explicit finder one is wired to Google Maps using settings;
    tests pass a finder built on fake providers instead.
    """
    if settings is None:
        settings = Settings.from_env()
        configure_logging(settings)
    if finder is None:
        finder = _build_finder(settings)

    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes
    app.extensions['meeting_point_finder'] = finder

    @app.before_request
    def _start_timer():
        g._start_time = perf_counter()

    @app.after_request
    def _log_request_duration(response):
        start = getattr(g, '_start_time', None)
        if start is not None:
            duration_ms = (perf_counter() - start) * 1000.0
            response.headers['X-Process-Time-ms'] = f"{duration_ms:.1f}"
            logger.info(
                "request completed: method=%s path=%s status=%s duration_ms=%.1f remote_addr=%s",
                request.method,
                request.path,
                response.status_code,
                duration_ms,
                request.remote_addr,
            )
        return response

    @app.teardown_request
    def _teardown_request_log(error=None):
        if error is not None:
            start = getattr(g, '_start_time', None)
            duration_ms = (perf_counter() - start) * 1000.0 if start is not None else None
            logger.error(
                "request error: method=%s path=%s duration_ms=%s error=%s",
                request.method,
                request.path,
                f"{duration_ms:.1f}" if duration_ms is not None else 'unknown',
                repr(error),
            )

    @app.route('/', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        return jsonify({
            'message': 'Togather API is running!',
            'endpoints': {
                'compute_location': '/compute-location',
                'health': '/'
            },
            'status': 'healthy'
        })

    @app.route('/compute-location', methods=['POST'])
    def compute_location():
        """
        Find the fairest meeting venue for a group
        Expected JSON: {
            "locations": [{"address": "...", "transport": "walking|bicycling|transit|driving"}, ...],
            "venueType": "cafe"  // optional
        }
        """
        logger.info("=== COMPUTE LOCATION REQUEST ===")
        data = request.get_json(silent=True)
        logger.info(f"Request data received: {json.dumps(data) if data else 'None'}")

        try:
            participants, venue_type = parse_compute_request(data)
        except InvalidRequest as e:
            logger.error(f"Invalid request: {e}")
            return jsonify({'error': str(e)}), 400

        if len(participants) < MIN_PARTICIPANTS:
            logger.error(f"Only {len(participants)} usable addresses supplied")
            return jsonify({'error': 'At least two locations are required.'}), 400

        meeting_point_finder = current_app.extensions.get('meeting_point_finder')
        if meeting_point_finder is None:
            logger.error("Google Maps API key not configured - cannot process request")
            return jsonify({'error': 'Google Maps API key not configured'}), 500

        _algo_start = perf_counter()
        try:
            result = meeting_point_finder.find_meeting_point(participants, venue_type)
        except InsufficientLocations as e:
            logger.error(f"Epicenter computation failed: {e}")
            return jsonify({'error': 'Unable to compute epicenter from the given addresses.'}), 500
        except NoCandidateFound as e:
            logger.error(f"Grid search failed: {e}")
            return jsonify({'error': 'Unable to find suitable meeting points.'}), 500
        except Exception:
            logger.exception("Error in compute-location endpoint")
            return jsonify({'error': 'An error occurred while computing the meeting point.'}), 500
        _compute_ms = (perf_counter() - _algo_start) * 1000.0
        logger.info(f"Time to find meeting point = {_compute_ms:.1f} ms")
        logger.info(f"Final meeting point: {result.best.name}")

        response = jsonify(meeting_point_finder.assembler.to_response(result))
        response.headers['X-Compute-Time-ms'] = f"{_compute_ms:.1f}"
        return response

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500

    return app
