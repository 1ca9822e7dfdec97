"""
Exceptions and error results for the VRChat session parser.
"""

from dataclasses import dataclass


class VRCSessionsError(Exception):
    """Base class for every error raised by this package."""


class FormatError(ValueError, VRCSessionsError):
    """Raised when a value object's source text does not satisfy its grammar.

    Attributes:
        value: The rejected source text
        expected: Human readable description of the accepted format
    """

    def __init__(self, value: object, expected: str) -> None:
        self.value = value
        self.expected = expected
        super().__init__(f"Invalid value {value!r}: expected {expected}")


class MalformedLineError(VRCSessionsError):
    """Raised when a classified log line's payload cannot be parsed.

    Attributes:
        line: The offending LogLine
        reason: Why parsing failed
    """

    def __init__(self, line, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"Malformed log line {getattr(line, 'offset', '?')}: {reason}")


class OrderingError(VRCSessionsError):
    """Raised when incremental session segmentation receives joins out of time order."""


class ConfigError(VRCSessionsError):
    """Raised for invalid configuration files or values."""


class ExtractError:
    """Namespace for the error results yielded by the log event extractor.

    Extraction never raises for a single bad line; it yields one of these
    variants instead and keeps going.
    """

    @dataclass(frozen=True)
    class Malformed:
        """A line matched a pattern but its payload failed to parse."""

        line: object
        reason: str

        @property
        def is_error(self) -> bool:
            return True

        def __str__(self) -> str:
            offset = getattr(self.line, "offset", 0)
            return f"line {offset}: {self.reason}"

    @classmethod
    def from_exception(cls, line, exc: Exception) -> "ExtractError.Malformed":
        """Map any underlying failure onto a Malformed result."""
        if isinstance(exc, MalformedLineError):
            return cls.Malformed(line=line, reason=exc.reason)
        if isinstance(exc, FormatError):
            return cls.Malformed(line=line, reason=str(exc))
        return cls.Malformed(line=line, reason=f"{type(exc).__name__}: {exc}")


def is_error(result: object) -> bool:
    """Return True if an extractor result is an error variant."""
    return isinstance(result, ExtractError.Malformed)
