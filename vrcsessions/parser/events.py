"""
Event classes and factory for VRChat log events.
"""

import re
from dataclasses import dataclass, replace
from typing import Any, Callable, ClassVar, Dict, Optional

from vrcsessions.errors import FormatError, MalformedLineError
from vrcsessions.models.values import (
    InstanceId,
    PlayerId,
    PlayerName,
    Timestamp,
    WorldId,
    WorldIdentity,
    WorldName,
)
from vrcsessions.parser.patterns import DEFAULT_REGISTRY, EventKind, PatternRegistry
from vrcsessions.parser.tokenizer import ParsedLine


@dataclass(frozen=True)
class LogEvent:
    """Base class for all log events."""

    at: Timestamp

    kind: ClassVar[EventKind]
    is_error: ClassVar[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        data = {"kind": self.kind.value, "at": self.at.isoformat()}
        for name, value in self.__dict__.items():
            if name != "at":
                data[name] = value
        return data


@dataclass(frozen=True)
class AppStart(LogEvent):
    """VRChat started (VRC Analytics Initialized)."""

    kind: ClassVar[EventKind] = EventKind.APP_START


@dataclass(frozen=True)
class AppExit(LogEvent):
    """VRChat is shutting down."""

    kind: ClassVar[EventKind] = EventKind.APP_EXIT


@dataclass(frozen=True)
class WorldJoin(LogEvent):
    """The local user joined a world instance."""

    world_id: str
    world_name: str
    instance_id: str

    kind: ClassVar[EventKind] = EventKind.WORLD_JOIN

    @property
    def identity(self) -> WorldIdentity:
        return WorldIdentity(self.world_id, self.world_name, self.instance_id)

    def with_world_name(self, world_name: str) -> "WorldJoin":
        return replace(self, world_name=world_name.strip())


@dataclass(frozen=True)
class RoomName(LogEvent):
    """The room name line that follows a world join. Never emitted on its own."""

    name: str

    kind: ClassVar[EventKind] = EventKind.ROOM_NAME


@dataclass(frozen=True)
class PlayerJoin(LogEvent):
    """A player (possibly the local user) entered the instance."""

    player_name: str
    player_id: Optional[str] = None

    kind: ClassVar[EventKind] = EventKind.PLAYER_JOIN


@dataclass(frozen=True)
class PlayerLeave(LogEvent):
    """A player left the instance."""

    player_name: str
    player_id: Optional[str] = None

    kind: ClassVar[EventKind] = EventKind.PLAYER_LEAVE


class EventFactory:
    """Factory for creating specific event objects from parsed lines."""

    # Payload after "[Behaviour] Joining ": wrld_xxx:instance
    WORLD_JOIN_PAYLOAD = re.compile(r"^(wrld_[^:\s]+):(\S+)$")

    # Payload after "[Behaviour] OnPlayerJoined ": name, optionally followed by (usr_xxx)
    PLAYER_PAYLOAD = re.compile(r"^(.+?)(?:\s+\((usr_[^)]+)\))?$")

    def __init__(self, registry: PatternRegistry = DEFAULT_REGISTRY):
        self.registry = registry
        self._builders: Dict[EventKind, Callable[[ParsedLine, Timestamp, str], LogEvent]] = {
            EventKind.APP_START: self._create_app_start,
            EventKind.APP_EXIT: self._create_app_exit,
            EventKind.WORLD_JOIN: self._create_world_join,
            EventKind.ROOM_NAME: self._create_room_name,
            EventKind.PLAYER_JOIN: self._create_player_join,
            EventKind.PLAYER_LEAVE: self._create_player_leave,
        }

    def create_event(self, parsed_line: ParsedLine) -> LogEvent:
        """
        Create a specific event object from a parsed line.

        Args:
            parsed_line: Output of LineTokenizer.parse_line

        Returns:
            The typed event

        Raises:
            MalformedLineError: If the timestamp or payload cannot be parsed
        """
        line = parsed_line.line
        if parsed_line.timestamp_text is None:
            raise MalformedLineError(line, "missing timestamp header")

        try:
            at = Timestamp.parse(parsed_line.timestamp_text)
        except FormatError as e:
            raise MalformedLineError(line, f"bad timestamp: {e}") from e

        builder = self._builders.get(parsed_line.kind)
        if builder is None:
            raise MalformedLineError(line, f"no builder for {parsed_line.kind.value}")

        pattern = self.registry.get(parsed_line.kind)
        payload = pattern.payload(parsed_line.message) if pattern else parsed_line.message

        try:
            return builder(parsed_line, at, payload)
        except FormatError as e:
            raise MalformedLineError(line, str(e)) from e

    def _create_app_start(self, parsed_line: ParsedLine, at: Timestamp, payload: str) -> AppStart:
        return AppStart(at=at)

    def _create_app_exit(self, parsed_line: ParsedLine, at: Timestamp, payload: str) -> AppExit:
        return AppExit(at=at)

    def _create_world_join(self, parsed_line: ParsedLine, at: Timestamp, payload: str) -> WorldJoin:
        match = self.WORLD_JOIN_PAYLOAD.match(payload)
        if not match:
            raise MalformedLineError(
                parsed_line.line, f"world join payload {payload!r} is not wrld_<id>:<instance>"
            )
        world_id, instance_id = match.groups()
        return WorldJoin(
            at=at,
            world_id=WorldId(world_id).value,
            world_name="",
            instance_id=InstanceId(instance_id).value,
        )

    def _create_room_name(self, parsed_line: ParsedLine, at: Timestamp, payload: str) -> RoomName:
        if not payload:
            raise MalformedLineError(parsed_line.line, "empty room name")
        return RoomName(at=at, name=WorldName(payload).value)

    def _create_player_join(self, parsed_line: ParsedLine, at: Timestamp, payload: str) -> PlayerJoin:
        name, player_id = self._parse_player(parsed_line, payload)
        return PlayerJoin(at=at, player_name=name, player_id=player_id)

    def _create_player_leave(self, parsed_line: ParsedLine, at: Timestamp, payload: str) -> PlayerLeave:
        name, player_id = self._parse_player(parsed_line, payload)
        return PlayerLeave(at=at, player_name=name, player_id=player_id)

    def _parse_player(self, parsed_line: ParsedLine, payload: str):
        match = self.PLAYER_PAYLOAD.match(payload)
        if not match:
            raise MalformedLineError(parsed_line.line, "missing player name")
        name, player_id = match.groups()
        name = PlayerName(name.strip()).value
        if player_id is not None:
            player_id = PlayerId(player_id).value
        return name, player_id
