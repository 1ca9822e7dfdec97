"""
World session reconstruction from world join and application exit events.
"""

import logging
from bisect import bisect_right
from typing import Any, Dict, Iterable, List, Optional, Sequence

from vrcsessions.errors import OrderingError
from vrcsessions.models.session import LeaveReason, WorldSession
from vrcsessions.models.values import Timestamp
from vrcsessions.parser.events import AppExit, WorldJoin


logger = logging.getLogger(__name__)


class SessionSegmenter:
    """
    Segments world join events into consecutive, non-overlapping sessions.

    Each join closes the previous session at the join's own timestamp. An
    application exit closes the current session at the exit's timestamp; an
    exit with no session in progress is ignored. The last session stays open
    unless an exit follows it. When two joins share a timestamp the later one
    in log order wins and the earlier collapses to a zero-length session.
    """

    def __init__(self):
        self.current_join: Optional[WorldJoin] = None
        self.last_at: Optional[Timestamp] = None
        self.sessions: List[WorldSession] = []
        self.joins_seen = 0

    def process_event(self, event) -> Optional[WorldSession]:
        """
        Process an event and update segmentation.

        Events other than joins and exits are ignored. Joins and exits must
        arrive in time order.

        Args:
            event: Any extractor result

        Returns:
            The session closed by this event, or None

        Raises:
            OrderingError: If the event is earlier than the previous join or exit
        """
        if not isinstance(event, (WorldJoin, AppExit)):
            return None

        if self.last_at is not None and event.at < self.last_at:
            raise OrderingError(f"{event.kind.value} at {event.at} precedes previous event at {self.last_at}")
        self.last_at = event.at

        completed = None
        if self.current_join is not None:
            reason = LeaveReason.NEXT_JOIN if isinstance(event, WorldJoin) else LeaveReason.APPLICATION_QUIT
            completed = self._close(self.current_join, event.at, reason)
            self.sessions.append(completed)
            self.current_join = None

        if isinstance(event, WorldJoin):
            self.current_join = event
            self.joins_seen += 1
        return completed

    def finalize(self) -> List[WorldSession]:
        """
        Close out segmentation, leaving a session with no exit open.

        Returns:
            All sessions ordered by join time
        """
        if self.current_join is not None:
            self.sessions.append(self._close(self.current_join, None, None))
            self.current_join = None
        return list(self.sessions)

    def reconstruct(self, events: Iterable) -> List[WorldSession]:
        """
        Build sessions from an event stream in one pass.

        Joins and exits are stable-sorted by timestamp first, so equal
        timestamps keep their log order. Other event kinds and error results
        are ignored.

        Args:
            events: Extractor results (any order)

        Returns:
            Sessions ordered by join time; empty if there are no joins
        """
        boundaries = [event for event in events if isinstance(event, (WorldJoin, AppExit))]
        boundaries.sort(key=lambda event: event.at.value)

        self.reset()
        for event in boundaries:
            self.process_event(event)
        sessions = self.finalize()

        logger.debug(f"Reconstructed {len(sessions)} sessions from {self.joins_seen} world joins")
        return sessions

    def reset(self):
        """Reset segmenter state."""
        self.current_join = None
        self.last_at = None
        self.sessions = []
        self.joins_seen = 0

    @staticmethod
    def _close(join: WorldJoin, left_at: Optional[Timestamp], reason: Optional[LeaveReason]) -> WorldSession:
        return WorldSession(
            world_id=join.world_id,
            world_name=join.world_name,
            instance_id=join.instance_id,
            joined_at=join.at,
            left_at=left_at,
            leave_reason=reason,
        )

    def get_stats(self) -> Dict[str, Any]:
        """
        Get segmentation statistics.

        Returns:
            Dictionary with segmentation stats
        """
        return {
            "total_sessions": len(self.sessions) + (1 if self.current_join else 0),
            "closed_sessions": sum(1 for s in self.sessions if not s.is_open),
            "open_sessions": sum(1 for s in self.sessions if s.is_open) + (1 if self.current_join else 0),
            "application_quits": sum(1 for s in self.sessions if s.leave_reason == LeaveReason.APPLICATION_QUIT),
            "zero_duration": sum(1 for s in self.sessions if s.duration == 0),
            "unnamed_worlds": sum(1 for s in self.sessions if not s.world_name),
        }


def reconstruct_sessions(events: Iterable) -> List[WorldSession]:
    """Reconstruct world sessions from extractor results."""
    return SessionSegmenter().reconstruct(events)


class SessionIndex:
    """
    Lookup of the session whose interval contains a timestamp.

    Sessions are assumed to come from SessionSegmenter (non-overlapping, any order).
    """

    def __init__(self, sessions: Sequence[WorldSession]):
        self.sessions = sorted(sessions, key=lambda s: s.sort_key)
        self._starts = [s.joined_at.value for s in self.sessions]

    def find(self, timestamp: Timestamp) -> Optional[WorldSession]:
        """
        Find the session containing ``timestamp``.

        Args:
            timestamp: Point in time to look up

        Returns:
            The session with ``joined_at <= timestamp < left_at``, or None
        """
        index = bisect_right(self._starts, timestamp.value) - 1
        if index < 0:
            return None
        session = self.sessions[index]
        return session if session.contains_time(timestamp) else None
