"""
Registry of the log markers that identify each kind of VRChat log event.

The registry is the only place marker strings live. Both the cheap line
pre-filter and the exact classifier read from it, and it is passed into the
tokenizer and extractor rather than looked up globally, so tests can swap in
their own table.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

from vrcsessions.errors import ConfigError


class EventKind(Enum):
    """Kinds of log lines the extractor understands."""

    ROOM_NAME = "room_name"
    APP_START = "app_start"
    WORLD_JOIN = "world_join"
    PLAYER_JOIN = "player_join"
    PLAYER_LEAVE = "player_leave"
    APP_EXIT = "app_exit"


@dataclass(frozen=True)
class LogPattern:
    """A marker substring plus substrings that disqualify an otherwise matching line."""

    kind: EventKind
    marker: str
    excludes: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if self.marker not in text:
            return False
        return not any(excluded in text for excluded in self.excludes)

    def payload(self, text: str) -> str:
        """Text following the marker, stripped."""
        index = text.find(self.marker)
        if index < 0:
            return ""
        return text[index + len(self.marker):].strip()


class PatternRegistry:
    """
    Immutable, ordered table of log patterns.

    Classification returns the first pattern that matches, so a pattern whose
    marker extends another marker (the room name line extends the world join
    marker) must come first.
    """

    def __init__(self, patterns: Iterable[LogPattern]):
        patterns = tuple(patterns)
        seen = set()
        for pattern in patterns:
            if not pattern.marker:
                raise ConfigError(f"Empty marker for {pattern.kind.value}")
            if pattern.kind in seen:
                raise ConfigError(f"Duplicate pattern for {pattern.kind.value}")
            seen.add(pattern.kind)
        self._patterns = patterns
        self._by_kind = MappingProxyType({p.kind: p for p in patterns})

    @property
    def patterns(self) -> Tuple[LogPattern, ...]:
        return self._patterns

    @property
    def markers(self) -> Mapping[EventKind, str]:
        """Read-only mapping of event kind to marker."""
        return MappingProxyType({p.kind: p.marker for p in self._patterns})

    def __iter__(self) -> Iterator[LogPattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, kind: EventKind) -> bool:
        return kind in self._by_kind

    def get(self, kind: EventKind) -> Optional[LogPattern]:
        return self._by_kind.get(kind)

    def prefilter(self, text: str) -> bool:
        """
        Cheap containment check used to drop irrelevant lines early.

        Accepts every line that classify() would accept.
        """
        return any(p.marker in text for p in self._patterns)

    def classify(self, text: str) -> Optional[EventKind]:
        """
        Classify the message part of a line.

        Args:
            text: Message text after the level separator

        Returns:
            The matching EventKind, or None if no pattern matches
        """
        for pattern in self._patterns:
            if pattern.matches(text):
                return pattern.kind
        return None

    def with_marker(self, kind: EventKind, marker: str) -> "PatternRegistry":
        """Return a new registry with the marker for ``kind`` replaced or added."""
        replaced = False
        patterns = []
        for pattern in self._patterns:
            if pattern.kind == kind:
                patterns.append(LogPattern(kind, marker, pattern.excludes))
                replaced = True
            else:
                patterns.append(pattern)
        if not replaced:
            patterns.append(LogPattern(kind, marker))
        return PatternRegistry(patterns)

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Any], base: Optional["PatternRegistry"] = None
    ) -> "PatternRegistry":
        """
        Build a registry from configuration data.

        Args:
            mapping: kind name -> marker string, or kind name -> {"marker": ..., "excludes": [...]}
            base: Registry to start from (defaults to DEFAULT_REGISTRY)

        Returns:
            New PatternRegistry with the overrides applied

        Raises:
            ConfigError: If a kind name or entry is invalid
        """
        registry = base or DEFAULT_REGISTRY
        for name, entry in mapping.items():
            try:
                kind = EventKind(str(name).lower())
            except ValueError:
                raise ConfigError(f"Unknown event kind in patterns: {name!r}") from None

            if isinstance(entry, str):
                registry = registry.with_marker(kind, entry)
            elif isinstance(entry, Mapping) and isinstance(entry.get("marker"), str):
                excludes = entry.get("excludes") or ()
                if isinstance(excludes, str) or not all(isinstance(e, str) for e in excludes):
                    raise ConfigError(f"excludes for {name!r} must be a list of strings")
                patterns = [p for p in registry if p.kind != kind]
                existing = registry.get(kind)
                position = registry.patterns.index(existing) if existing else len(patterns)
                patterns.insert(position, LogPattern(kind, entry["marker"], tuple(excludes)))
                registry = cls(patterns)
            else:
                raise ConfigError(f"Invalid pattern entry for {name!r}: {entry!r}")
        return registry

    def __repr__(self) -> str:
        kinds = ", ".join(p.kind.value for p in self._patterns)
        return f"PatternRegistry({kinds})"


DEFAULT_PATTERNS = (
    LogPattern(EventKind.ROOM_NAME, "[Behaviour] Joining or Creating Room: "),
    LogPattern(EventKind.APP_START, "VRC Analytics Initialized"),
    LogPattern(EventKind.WORLD_JOIN, "[Behaviour] Joining "),
    LogPattern(EventKind.PLAYER_JOIN, "[Behaviour] OnPlayerJoined "),
    LogPattern(EventKind.PLAYER_LEAVE, "[Behaviour] OnPlayerLeft ", excludes=("OnPlayerLeftRoom",)),
    LogPattern(EventKind.APP_EXIT, "VRCApplication: HandleApplicationQuit"),
)

DEFAULT_REGISTRY = PatternRegistry(DEFAULT_PATTERNS)
