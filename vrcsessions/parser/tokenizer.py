"""
Line tokenizer for VRChat output_log lines.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Union

from vrcsessions.models.values import LogLine
from vrcsessions.parser.patterns import DEFAULT_REGISTRY, EventKind, PatternRegistry


@dataclass(frozen=True)
class ParsedLine:
    """A classified log line split into header and message."""

    kind: EventKind
    timestamp_text: Optional[str]  # None when the header is missing
    level: Optional[str]
    message: str
    line: LogLine


class LineTokenizer:
    """
    Tokenizes individual lines from VRChat logs.

    Only lines the pattern registry classifies are tokenized; everything else
    is skipped. A classified line without a recognisable header is still
    returned (with ``timestamp_text=None``) so it can be reported as malformed
    instead of vanishing.
    """

    # Format: "2025.01.07 23:25:34 Log        -  [Behaviour] OnPlayerJoined ..."
    LINE_PATTERN = re.compile(
        r"^(\d{4}\.\d{2}\.\d{2} \d{2}:\d{2}:\d{2}(?:\.\d{3})?"
        r"|\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}\.\d{3})"
        r"\s+(\w+)\s+-\s+(.*)$"
    )

    def __init__(self, registry: PatternRegistry = DEFAULT_REGISTRY, use_prefilter: bool = True):
        self.registry = registry
        self.use_prefilter = use_prefilter
        self.line_count = 0
        self.matched_count = 0
        self.error_count = 0

    def parse_line(self, line: Union[LogLine, str]) -> Optional[ParsedLine]:
        """
        Classify and split a single log line.

        Args:
            line: Raw line from a VRChat log

        Returns:
            ParsedLine, or None if the line matches no pattern
        """
        if not isinstance(line, LogLine):
            line = LogLine(line, offset=self.line_count + 1)
        self.line_count += 1

        text = line.text
        if not text.strip():
            return None

        if self.use_prefilter and not self.registry.prefilter(text):
            return None

        # Markers are matched against the message only, never the header
        match = self.LINE_PATTERN.match(text)
        message = match.group(3).strip() if match else text.strip()

        kind = self.registry.classify(message)
        if kind is None:
            return None
        self.matched_count += 1

        if not match:
            self.error_count += 1
            return ParsedLine(
                kind=kind,
                timestamp_text=None,
                level=None,
                message=message,
                line=line,
            )

        return ParsedLine(
            kind=kind,
            timestamp_text=match.group(1),
            level=match.group(2),
            message=message,
            line=line,
        )

    def get_stats(self) -> Dict[str, float]:
        """
        Get tokenizing statistics.

        Returns:
            Dictionary with line, match and header error counts
        """
        return {
            "lines_processed": self.line_count,
            "lines_matched": self.matched_count,
            "header_errors": self.error_count,
            "match_rate": self.matched_count / max(self.line_count, 1),
        }
