"""
Segmentation module for reconstructing world sessions and grouping photos into them.
"""

from .sessions import SessionIndex, SessionSegmenter, reconstruct_sessions
from .correlator import PhotoSessionCorrelator, group_photos_by_session
from .players import PlayerPresence, annotate_players

__all__ = [
    "SessionIndex",
    "SessionSegmenter",
    "reconstruct_sessions",
    "PhotoSessionCorrelator",
    "group_photos_by_session",
    "PlayerPresence",
    "annotate_players",
]
