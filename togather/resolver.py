import asyncio
import logging
from typing import List, Optional, Sequence

from .errors import InsufficientLocations, ProviderError
from .models import Coordinate, ParticipantInput, ResolvedParticipant
from .providers import Geocoder

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2


class AddressResolver:
    """Geocodes every participant concurrently and keeps the ones that resolved, in input order."""

    def __init__(self, geocoder: Geocoder, max_concurrency: int = 25, min_participants: int = MIN_PARTICIPANTS):
        self.geocoder = geocoder
        self.max_concurrency = max(1, max_concurrency)
        self.min_participants = min_participants

    async def _geocode(self, semaphore: asyncio.Semaphore, participant: ParticipantInput) -> Optional[Coordinate]:
        async with semaphore:
            try:
                location = await self.geocoder.geocode(participant.address)
            except ProviderError as e:
                logger.warning(f"Geocoding error for {participant.address!r}: {e}")
                return None
            except Exception:
                logger.exception(f"Unexpected geocoding error for {participant.address!r}")
                return None
        if location is None:
            logger.warning(f"Could not geocode address: {participant.address!r}")
        return location

    async def resolve(self, participants: Sequence[ParticipantInput]) -> List[ResolvedParticipant]:
        semaphore = asyncio.Semaphore(self.max_concurrency)
        locations = await asyncio.gather(*[self._geocode(semaphore, p) for p in participants])

        resolved = [
            ResolvedParticipant(participant=p, location=loc)
            for p, loc in zip(participants, locations)
            if loc is not None
        ]
        logger.info(f"Resolved {len(resolved)}/{len(participants)} addresses")
        if len(resolved) < self.min_participants:
            raise InsufficientLocations(len(resolved))
        return resolved
