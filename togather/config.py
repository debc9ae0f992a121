import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from .models import TransportMode


# --- Module-level constants ---
EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_M = 6371e3

# Epicenter weighting: outliers pull the anchor towards them
CENTRALITY_BASE = 0.4
CENTRALITY_SPREAD = 0.6
TRANSPORT_FACTORS: Dict[TransportMode, float] = {
    TransportMode.DRIVING: 0.7,
    TransportMode.TRANSIT: 0.85,
    TransportMode.BICYCLING: 1.1,
    TransportMode.WALKING: 1.3,
}

# fairness = average + 0.3 * max + 0.5 * stddev (lower is better)
FAIRNESS_MAX_WEIGHT = 0.3
FAIRNESS_STDDEV_WEIGHT = 0.5

# 5x5 grid, roughly 0.5-1 km either side of the epicenter
GRID_OFFSETS: Tuple[float, ...] = (-0.008, -0.004, 0.0, 0.004, 0.008)

VENUE_SEARCH_RADIUS_M = 600  # about a 7-8 minute walk
VENUE_MIN_RATING = 3.8
VENUE_MAX_RESULTS = 10
VENUE_DEFAULT_RATING = 3.0  # used only to order unrated places
DEFAULT_VENUE_KEYWORD = "restaurant,cafe,bar"
MAX_ALTERNATIVES = 3

FALLBACK_VENUE_NAME = "Meeting Point"
FALLBACK_VENUE_ADDRESS = "Address not available"

PLACEHOLDER_API_KEY = "your_api_key_here"


def _as_int(val: Optional[str], default: int) -> int:
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _log_level(val: Optional[str], default: str = "INFO") -> str:
    level = (val or "").strip().upper()
    if isinstance(logging.getLevelName(level), int):
        return level
    return default


@dataclass(frozen=True)
class Settings:
    """Provider credentials and runtime knobs, injected into the services at construction."""
    google_maps_api_key: Optional[str] = None
    max_workers: int = 10
    max_concurrent_calls: int = 25
    retry_timeout: int = 10
    request_timeout: int = 10
    log_level: str = "INFO"
    log_file: Optional[str] = "app.log"

    @property
    def has_api_key(self) -> bool:
        return bool(self.google_maps_api_key) and self.google_maps_api_key != PLACEHOLDER_API_KEY

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv()
        log_file = os.getenv("LOG_FILE", "app.log")
        return cls(
            google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY"),
            max_workers=_as_int(os.getenv("MAPS_MAX_WORKERS"), 10),
            max_concurrent_calls=_as_int(os.getenv("MAX_CONCURRENT_CALLS"), 25),
            retry_timeout=_as_int(os.getenv("MAPS_RETRY_TIMEOUT"), 10),
            request_timeout=_as_int(os.getenv("MAPS_REQUEST_TIMEOUT"), 10),
            log_level=_log_level(os.getenv("LOG_LEVEL")),
            log_file=log_file or None,
        )
