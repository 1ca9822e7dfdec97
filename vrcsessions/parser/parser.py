"""
Main VRChat log parser that coordinates tokenization, event creation and error reporting.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from vrcsessions.errors import ExtractError, MalformedLineError
from vrcsessions.models.values import LogLine, Timestamp, TimestampLike, as_timestamp
from vrcsessions.parser.events import EventFactory, LogEvent, RoomName, WorldJoin
from vrcsessions.parser.patterns import DEFAULT_REGISTRY, PatternRegistry
from vrcsessions.parser.tokenizer import LineTokenizer
from vrcsessions.sources import iter_log_lines


logger = logging.getLogger(__name__)

ExtractResult = Union[LogEvent, ExtractError.Malformed]

# VRChat writes the room name a line or two after the join
ROOM_NAME_WINDOW = 50


class LogEventExtractor:
    """
    Turns a sequence of log lines into a lazy sequence of events and errors.

    One result is produced per classified line, in input order. Lines that
    match no pattern are skipped. A malformed line yields an
    ``ExtractError.Malformed`` and extraction carries on.

    World joins are held back until the next classified line so the room name
    line that VRChat writes right after the join can fill in ``world_name``.
    The room name line itself produces no result. A held join is released
    with an empty name once ``room_name_window`` further lines have gone by
    without a room name, so a consumer following a growing log is never kept
    waiting on noise.
    """

    def __init__(
        self,
        registry: PatternRegistry = DEFAULT_REGISTRY,
        since: Optional[TimestampLike] = None,
        use_prefilter: bool = True,
        room_name_window: int = ROOM_NAME_WINDOW,
    ):
        """
        Initialize the extractor.

        Args:
            registry: Pattern table used for classification
            since: Drop events strictly before this time
            use_prefilter: Run the cheap substring filter before classifying
            room_name_window: Lines to wait for a room name after a world join
        """
        if room_name_window < 0:
            raise ValueError(f"room_name_window must be non-negative, got {room_name_window}")
        self.registry = registry
        self.room_name_window = room_name_window
        self.since: Optional[Timestamp] = as_timestamp(since) if since is not None else None
        self.use_prefilter = use_prefilter
        self.tokenizer = LineTokenizer(registry, use_prefilter=use_prefilter)
        self.event_factory = EventFactory(registry)

    def extract(self, lines: Iterable[Union[LogLine, str]]) -> Iterator[ExtractResult]:
        """
        Extract events from log lines.

        A world join is yielded late: when its room name arrives, when any other
        classified line arrives, or when the room name window or the input runs out.

        Args:
            lines: LogLine objects or raw strings (numbered from 1)

        Yields:
            LogEvent or ExtractError.Malformed, in line order
        """
        pending: Optional[WorldJoin] = None
        pending_index = 0

        for index, line in enumerate(lines, 1):
            if not isinstance(line, LogLine):
                line = LogLine(line, offset=index)

            if pending is not None and index - pending_index > self.room_name_window:
                logger.debug(f"No room name within {self.room_name_window} lines of join at {pending.at}")
                yield from self._accept(pending)
                pending = None

            parsed = self.tokenizer.parse_line(line)
            if parsed is None:
                continue

            try:
                event = self.event_factory.create_event(parsed)
            except MalformedLineError as e:
                if pending is not None:
                    yield from self._accept(pending)
                    pending = None
                logger.debug(f"Malformed line {line.offset}: {e.reason}")
                yield ExtractError.from_exception(line, e)
                continue

            if isinstance(event, RoomName):
                if pending is not None:
                    yield from self._accept(pending.with_world_name(event.name))
                    pending = None
                else:
                    logger.debug(f"Room name without a preceding join at line {line.offset}")
                continue

            if pending is not None:
                logger.debug(f"No room name for join of {pending.world_id} at {pending.at}")
                yield from self._accept(pending)
                pending = None

            if isinstance(event, WorldJoin):
                pending = event
                pending_index = index
                continue

            yield from self._accept(event)

        if pending is not None:
            yield from self._accept(pending)

    def _accept(self, event: LogEvent) -> Iterator[LogEvent]:
        if self.since is not None and event.at < self.since:
            return
        yield event


class VRChatLogParser:
    """
    Parser for VRChat output_log files.

    Wraps LogEventExtractor with running statistics and a file reader.
    """

    def __init__(
        self,
        registry: PatternRegistry = DEFAULT_REGISTRY,
        since: Optional[TimestampLike] = None,
        use_prefilter: bool = True,
    ):
        self.registry = registry
        self.since = since
        self.use_prefilter = use_prefilter
        self.extractor = LogEventExtractor(registry, since=since, use_prefilter=use_prefilter)
        self.current_file: Optional[Path] = None
        self.events_processed = 0
        self.parse_errors: List[ExtractError.Malformed] = []

    def iter_results(self, lines: Iterable[Union[LogLine, str]]) -> Iterator[ExtractResult]:
        """
        Extract results lazily while keeping statistics.

        Args:
            lines: Raw log lines

        Yields:
            LogEvent or ExtractError.Malformed
        """
        for result in self.extractor.extract(lines):
            if result.is_error:
                self.parse_errors.append(result)
            else:
                self.events_processed += 1
            yield result

    def parse_lines(self, lines: Iterable[Union[LogLine, str]]) -> List[LogEvent]:
        """
        Parse lines and return the successfully extracted events.

        Args:
            lines: Raw log lines

        Returns:
            List of LogEvent objects in line order
        """
        return [result for result in self.iter_results(lines) if not result.is_error]

    def parse_file(self, file_path: Union[str, Path]) -> Iterator[ExtractResult]:
        """
        Parse a VRChat log file and yield results.

        Args:
            file_path: Path to an output_log_*.txt file

        Yields:
            LogEvent or ExtractError.Malformed
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"VRChat log file not found: {file_path}")

        self.current_file = file_path
        logger.info(f"Starting parse of {file_path.name} ({file_path.stat().st_size / 1024:.1f} KB)")

        yield from self.iter_results(iter_log_lines(file_path))

        logger.info(
            f"Completed parsing {file_path.name}: "
            f"{self.events_processed} events, {len(self.parse_errors)} errors"
        )

    def get_stats(self) -> Dict[str, Any]:
        """
        Get parsing statistics.

        Returns:
            Dictionary with parsing stats
        """
        return {
            "file": str(self.current_file) if self.current_file else None,
            "events_processed": self.events_processed,
            "parse_errors": len(self.parse_errors),
            "tokenizer_stats": self.extractor.tokenizer.get_stats(),
        }

    def reset(self):
        """Reset parser state for a new file."""
        self.extractor = LogEventExtractor(self.registry, since=self.since, use_prefilter=self.use_prefilter)
        self.events_processed = 0
        self.parse_errors = []
        self.current_file = None
