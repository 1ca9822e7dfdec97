"""
File-system helpers that feed the parser: reading log files, finding log and
photo files, and merging per-file event streams.

These are the only functions in the package that touch the disk.
"""

import logging
from itertools import chain
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Union

from vrcsessions.models.values import LogLine


logger = logging.getLogger(__name__)

LOG_FILE_GLOB = "output_log_*.txt"
PHOTO_FILE_GLOB = "VRChat_*"


def iter_log_lines(file_path: Union[str, Path]) -> Iterator[LogLine]:
    """
    Read a log file line by line.

    Args:
        file_path: Path to a VRChat log file

    Yields:
        LogLine objects numbered from 1
    """
    file_path = Path(file_path)
    with open(file_path, "r", encoding="utf-8", errors="replace") as f:
        for offset, text in enumerate(f, 1):
            yield LogLine(text, offset=offset, source=file_path.name)


def find_log_files(log_dir: Union[str, Path]) -> List[Path]:
    """
    Find VRChat log files in a directory, oldest name first.

    Args:
        log_dir: Directory containing output_log_*.txt files

    Returns:
        Sorted list of log file paths
    """
    log_dir = Path(log_dir)
    if not log_dir.is_dir():
        raise FileNotFoundError(f"VRChat log directory not found: {log_dir}")
    files = sorted(p for p in log_dir.glob(LOG_FILE_GLOB) if p.is_file())
    logger.debug(f"Found {len(files)} log files in {log_dir}")
    return files


def find_photo_files(photo_dir: Union[str, Path]) -> List[Path]:
    """
    Recursively find VRChat screenshot candidates.

    Names are not validated here; PhotoRecord does that.

    Args:
        photo_dir: Root photo directory (VRChat stores photos in YYYY-MM subdirectories)

    Returns:
        Sorted list of candidate paths
    """
    photo_dir = Path(photo_dir)
    if not photo_dir.is_dir():
        raise FileNotFoundError(f"VRChat photo directory not found: {photo_dir}")
    files = sorted(p for p in photo_dir.rglob(PHOTO_FILE_GLOB) if p.is_file())
    logger.debug(f"Found {len(files)} photo candidates in {photo_dir}")
    return files


def merge_events(event_streams: Iterable[Sequence]) -> List:
    """
    Merge per-file event lists into one time-ordered list.

    The sort is stable, so events with equal timestamps keep the order of the
    streams and their order within each stream.

    Args:
        event_streams: Iterable of event lists, typically one per log file

    Returns:
        Single list ordered by event timestamp
    """
    return sorted(chain.from_iterable(event_streams), key=lambda event: event.at.value)
