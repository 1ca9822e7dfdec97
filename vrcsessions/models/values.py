"""
Value objects for VRChat log lines, timestamps, photo filenames and world identities.

Every class here validates its input when it is constructed and raises
FormatError instead of producing an invalid instance. Instances are frozen;
replacing a value means constructing a new object.
"""

import ntpath
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from vrcsessions.errors import FormatError


# Format: "2021-07-15_21-00-00.000" (photo filenames)
CANONICAL_TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})_(\d{2})-(\d{2})-(\d{2})\.(\d{3})$"
)

# Format: "2021.07.15 21:00:00" with optional ".mmm" (output_log header)
LOG_TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4})\.(\d{2})\.(\d{2}) (\d{2}):(\d{2}):(\d{2})(?:\.(\d{3}))?$"
)

PHOTO_FILENAME_PATTERN = re.compile(
    r"^VRChat_(\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}\.\d{3})_(\d+)x(\d+)\.([A-Za-z0-9]+)$"
)

WORLD_ID_PATTERN = re.compile(r"^wrld_[0-9A-Za-z-]+$")
INSTANCE_ID_PATTERN = re.compile(r"^[A-Za-z0-9]+(~.+)?$")
PLAYER_ID_PATTERN = re.compile(
    r"^usr_[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)

TIMESTAMP_EXPECTED = "YYYY-MM-DD_HH-MM-SS.mmm or YYYY.MM.DD HH:MM:SS[.mmm]"


def _parse_timestamp_text(text: Any) -> datetime:
    """
    Parse timestamp text in either accepted format.

    Args:
        text: Source text

    Returns:
        Naive datetime with millisecond precision

    Raises:
        FormatError: If the text matches neither format or names an impossible date
    """
    if not isinstance(text, str):
        raise FormatError(text, TIMESTAMP_EXPECTED)

    match = CANONICAL_TIMESTAMP_PATTERN.fullmatch(text) or LOG_TIMESTAMP_PATTERN.fullmatch(text)
    if not match:
        raise FormatError(text, TIMESTAMP_EXPECTED)

    year, month, day, hour, minute, second, millis = match.groups()
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second),
            int(millis or 0) * 1000,
        )
    except ValueError as e:
        raise FormatError(text, f"a real calendar date and time ({e})") from e


@dataclass(frozen=True, eq=False)
class Timestamp:
    """
    A validated point in time together with the text it was parsed from.

    Equality and hashing use the source text; ordering uses the point in time,
    so timestamps written in different formats still sort correctly.
    """

    text: str
    value: datetime = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "value", _parse_timestamp_text(self.text))

    @classmethod
    def parse(cls, text: str) -> "Timestamp":
        """Parse timestamp text, raising FormatError on failure."""
        return cls(text)

    @classmethod
    def from_datetime(cls, value: datetime) -> "Timestamp":
        """Build a canonical timestamp from a datetime (truncated to milliseconds)."""
        if not isinstance(value, datetime):
            raise FormatError(value, "a datetime")
        text = value.strftime("%Y-%m-%d_%H-%M-%S") + f".{value.microsecond // 1000:03d}"
        return cls(text)

    @property
    def canonical(self) -> str:
        """Timestamp text in the photo filename format."""
        return self.value.strftime("%Y-%m-%d_%H-%M-%S") + f".{self.value.microsecond // 1000:03d}"

    def isoformat(self) -> str:
        return self.value.isoformat(timespec="milliseconds")

    def __eq__(self, other):
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self.text == other.text

    def __hash__(self):
        return hash(self.text)

    def __lt__(self, other):
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other):
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other):
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other):
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self.value >= other.value

    def __str__(self) -> str:
        return self.text


TimestampLike = Union[Timestamp, datetime, str]


def as_timestamp(value: TimestampLike) -> Timestamp:
    """Coerce a Timestamp, datetime or timestamp text into a Timestamp."""
    if isinstance(value, Timestamp):
        return value
    if isinstance(value, datetime):
        return Timestamp.from_datetime(value)
    return Timestamp.parse(value)


@dataclass(frozen=True)
class LogLine:
    """A single raw log line and where it came from."""

    text: str
    offset: int = 0  # 1-based line number, 0 if unknown
    source: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.text, str):
            raise FormatError(self.text, "a line of text")
        text = self.text.rstrip("\r\n")
        if "\n" in text:
            raise FormatError(self.text, "a single line of text")
        object.__setattr__(self, "text", text)
        if not isinstance(self.offset, int) or self.offset < 0:
            raise FormatError(self.offset, "a non-negative line offset")

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class WorldId:
    """VRChat world identifier, e.g. wrld_12345678-1234-1234-1234-123456789abc."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not WORLD_ID_PATTERN.fullmatch(self.value):
            raise FormatError(self.value, "wrld_<id>")


@dataclass(frozen=True)
class InstanceId:
    """Instance identifier: alphanumeric, optionally followed by ~modifiers."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not INSTANCE_ID_PATTERN.fullmatch(self.value):
            raise FormatError(self.value, "alphanumeric instance id, optionally followed by ~<modifiers>")

    @property
    def region(self) -> Optional[str]:
        """Region code from a ~region(xx) modifier, if present."""
        match = re.search(r"~region\(([^)]+)\)", self.value)
        return match.group(1) if match else None


@dataclass(frozen=True)
class WorldName:
    """Display name of a world as shown in the room name line."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise FormatError(self.value, "a non-empty world name")


@dataclass(frozen=True)
class PlayerName:
    """Display name of a player. May contain spaces, must not be blank."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise FormatError(self.value, "a non-empty player name")


@dataclass(frozen=True)
class PlayerId:
    """VRChat user identifier, usr_<uuid>."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not PLAYER_ID_PATTERN.fullmatch(self.value):
            raise FormatError(self.value, "usr_xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx")


@dataclass(frozen=True)
class WorldIdentity:
    """The world and instance a session took place in.

    ``world_name`` is empty when the log never named the room.
    """

    world_id: str
    world_name: str
    instance_id: str

    def __post_init__(self):
        WorldId(self.world_id)
        InstanceId(self.instance_id)
        if not isinstance(self.world_name, str):
            raise FormatError(self.world_name, "a world name string")
        if self.world_name:
            WorldName(self.world_name)
        object.__setattr__(self, "world_name", self.world_name.strip())

    @property
    def location(self) -> str:
        """world_id:instance_id, the form VRChat uses in its logs."""
        return f"{self.world_id}:{self.instance_id}"


@dataclass(frozen=True)
class PhotoFileName:
    """
    A VRChat screenshot filename: VRChat_<YYYY-MM-DD_HH-MM-SS.mmm>_<W>x<H>.<ext>.

    Accepts a bare name or a path with either separator style; only the
    basename is kept. Two instances are equal iff their basenames are equal.
    """

    name: str
    captured_at: Timestamp = field(init=False, compare=False)
    width: int = field(init=False, compare=False)
    height: int = field(init=False, compare=False)
    extension: str = field(init=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise FormatError(self.name, "a photo file name")
        basename = ntpath.basename(self.name)
        match = PHOTO_FILENAME_PATTERN.fullmatch(basename)
        if not match:
            raise FormatError(basename, "VRChat_<YYYY-MM-DD_HH-MM-SS.mmm>_<W>x<H>.<ext>")

        timestamp_text, width, height, extension = match.groups()
        if int(width) <= 0 or int(height) <= 0:
            raise FormatError(basename, "a positive resolution")

        object.__setattr__(self, "name", basename)
        object.__setattr__(self, "captured_at", Timestamp(timestamp_text))
        object.__setattr__(self, "width", int(width))
        object.__setattr__(self, "height", int(height))
        object.__setattr__(self, "extension", extension)

    @classmethod
    def parse(cls, name: str) -> "PhotoFileName":
        return cls(name)

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def timestamp_text(self) -> str:
        """The timestamp substring exactly as it appears in the filename."""
        return self.captured_at.text

    @property
    def resolution_text(self) -> str:
        """The <W>x<H> substring exactly as it appears in the filename."""
        _, width, height, _ = PHOTO_FILENAME_PATTERN.fullmatch(self.name).groups()
        return f"{width}x{height}"


@dataclass(frozen=True)
class PhotoRecord:
    """A photo candidate whose capture time and resolution come from its filename only."""

    path: str
    file_name: PhotoFileName = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        path = str(self.path) if not isinstance(self.path, str) else self.path
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "file_name", PhotoFileName(path))

    @classmethod
    def from_path(cls, path) -> "PhotoRecord":
        return cls(str(path))

    @property
    def captured_at(self) -> Timestamp:
        return self.file_name.captured_at

    @property
    def resolution(self) -> Tuple[int, int]:
        return self.file_name.resolution

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "captured_at": self.captured_at.isoformat(),
            "width": self.file_name.width,
            "height": self.file_name.height,
        }
