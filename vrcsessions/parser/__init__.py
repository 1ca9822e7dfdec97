"""
VRChat log parser module: pattern registry, tokenizer, event factory and extractor.
"""

from .patterns import DEFAULT_REGISTRY, EventKind, LogPattern, PatternRegistry
from .tokenizer import LineTokenizer, ParsedLine
from .events import (
    AppExit,
    AppStart,
    EventFactory,
    LogEvent,
    PlayerJoin,
    PlayerLeave,
    WorldJoin,
)
from .parser import ExtractResult, LogEventExtractor, VRChatLogParser

__all__ = [
    "DEFAULT_REGISTRY",
    "EventKind",
    "LogPattern",
    "PatternRegistry",
    "LineTokenizer",
    "ParsedLine",
    "AppExit",
    "AppStart",
    "EventFactory",
    "LogEvent",
    "PlayerJoin",
    "PlayerLeave",
    "WorldJoin",
    "ExtractResult",
    "LogEventExtractor",
    "VRChatLogParser",
]
