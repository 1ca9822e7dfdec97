"""
Player presence tracking for world sessions.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from vrcsessions.models.session import WorldSession
from vrcsessions.models.values import Timestamp
from vrcsessions.parser.events import PlayerJoin, PlayerLeave
from vrcsessions.segmentation.sessions import SessionIndex


@dataclass
class PlayerPresence:
    """A player's stay within one session."""

    player_name: str
    player_id: Optional[str]
    joined_at: Timestamp
    left_at: Optional[Timestamp] = None

    def is_same_player(self, name: str, player_id: Optional[str]) -> bool:
        if self.player_id and player_id:
            return self.player_id == player_id
        return self.player_name == name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_name": self.player_name,
            "player_id": self.player_id,
            "joined_at": self.joined_at.isoformat(),
            "left_at": self.left_at.isoformat() if self.left_at else None,
        }


def annotate_players(
    sessions: Sequence[WorldSession], events: Iterable
) -> Dict[WorldSession, List[PlayerPresence]]:
    """
    Attach player join/leave events to the sessions they happened in.

    Events outside every session are dropped. A leave closes the most recent
    still-open presence of the same player in that session.

    Args:
        sessions: Reconstructed sessions
        events: Extractor results in time order

    Returns:
        Mapping of session to presences, in join order; every session has an entry
    """
    index = SessionIndex(sessions)
    players: Dict[WorldSession, List[PlayerPresence]] = {session: [] for session in index.sessions}

    for event in events:
        if not isinstance(event, (PlayerJoin, PlayerLeave)):
            continue
        session = index.find(event.at)
        if session is None:
            continue

        if isinstance(event, PlayerJoin):
            players[session].append(
                PlayerPresence(
                    player_name=event.player_name,
                    player_id=event.player_id,
                    joined_at=event.at,
                )
            )
            continue

        for presence in reversed(players[session]):
            if presence.left_at is None and presence.is_same_player(event.player_name, event.player_id):
                presence.left_at = event.at
                break

    return players
