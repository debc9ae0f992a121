"""
Togather - find a fair place to meet for a group travelling from different addresses
"""

from .finder import MeetingPointFinder
from .models import Coordinate, ParticipantInput, TransportMode

__all__ = ["MeetingPointFinder", "Coordinate", "ParticipantInput", "TransportMode"]
