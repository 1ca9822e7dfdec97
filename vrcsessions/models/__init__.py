"""
Data models: validated value objects, world sessions and photo groups.
"""

from .values import (
    InstanceId,
    LogLine,
    PhotoFileName,
    PhotoRecord,
    PlayerId,
    PlayerName,
    Timestamp,
    WorldId,
    WorldIdentity,
    WorldName,
    as_timestamp,
)
from .session import LeaveReason, SessionPhotoGroup, WorldSession

__all__ = [
    "InstanceId",
    "LogLine",
    "PhotoFileName",
    "PhotoRecord",
    "PlayerId",
    "PlayerName",
    "Timestamp",
    "WorldId",
    "WorldIdentity",
    "WorldName",
    "as_timestamp",
    "LeaveReason",
    "SessionPhotoGroup",
    "WorldSession",
]
