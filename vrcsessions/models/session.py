"""
World sessions and the photo groups built on top of them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from vrcsessions.errors import FormatError
from vrcsessions.models.values import PhotoRecord, Timestamp, WorldIdentity


class LeaveReason(Enum):
    """Why a session ended."""

    NEXT_JOIN = "next_join"
    APPLICATION_QUIT = "application_quit"


@dataclass(frozen=True)
class WorldSession:
    """
    One visit to a world instance: from a world join until the next join or
    application exit.

    The interval is half-open, ``[joined_at, left_at)``. ``left_at`` is None
    for the last session of a log that is still being written, and
    ``leave_reason`` is None exactly when ``left_at`` is.
    """

    world_id: str
    world_name: str
    instance_id: str
    joined_at: Timestamp
    left_at: Optional[Timestamp] = None
    leave_reason: Optional[LeaveReason] = None

    def __post_init__(self):
        # Validates the identity triple
        WorldIdentity(self.world_id, self.world_name, self.instance_id)
        if self.left_at is not None and self.left_at < self.joined_at:
            raise FormatError(self.left_at.text, f"a leave time at or after {self.joined_at.text}")
        if self.leave_reason is not None and self.left_at is None:
            raise FormatError(self.leave_reason.value, "no leave reason on an open session")

    @property
    def identity(self) -> WorldIdentity:
        return WorldIdentity(self.world_id, self.world_name, self.instance_id)

    @property
    def is_open(self) -> bool:
        return self.left_at is None

    @property
    def duration(self) -> Optional[float]:
        """Duration in seconds, None while the session is open."""
        if self.left_at is None:
            return None
        return (self.left_at.value - self.joined_at.value).total_seconds()

    @property
    def sort_key(self) -> Tuple:
        """
        Order by join time, then by end time with open sessions last.

        Among sessions joined at the same instant the zero-length ones sort
        first, so a walk from the newest session never lands on an empty one.
        """
        end = self.left_at.value if self.left_at else self.joined_at.value
        return (self.joined_at.value, self.left_at is None, end)

    def contains_time(self, timestamp: Timestamp) -> bool:
        """Check if a timestamp falls within ``[joined_at, left_at)``."""
        if timestamp < self.joined_at:
            return False
        return self.left_at is None or timestamp < self.left_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "world_id": self.world_id,
            "world_name": self.world_name,
            "instance_id": self.instance_id,
            "joined_at": self.joined_at.isoformat(),
            "left_at": self.left_at.isoformat() if self.left_at else None,
            "leave_reason": self.leave_reason.value if self.leave_reason else None,
        }

    def __repr__(self) -> str:
        end = self.left_at.value.strftime("%H:%M:%S") if self.left_at else "open"
        return (
            f"WorldSession({self.world_name or self.world_id} "
            f"{self.joined_at.value.strftime('%Y-%m-%d %H:%M:%S')} - {end})"
        )


@dataclass(frozen=True)
class SessionPhotoGroup:
    """Photos captured during one session; ``session`` is None for the residual group."""

    session: Optional[WorldSession]
    photos: List[PhotoRecord] = field(default_factory=list)

    @property
    def is_residual(self) -> bool:
        return self.session is None

    def __len__(self) -> int:
        return len(self.photos)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session": self.session.to_dict() if self.session else None,
            "photos": [photo.to_dict() for photo in self.photos],
        }
