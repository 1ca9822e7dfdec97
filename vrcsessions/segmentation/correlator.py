"""
Photo to session correlation.
"""

import logging
from bisect import bisect_left
from typing import Any, Dict, Iterable, List, Tuple

from vrcsessions.errors import FormatError
from vrcsessions.models.session import SessionPhotoGroup, WorldSession
from vrcsessions.models.values import PhotoRecord


logger = logging.getLogger(__name__)


def _photo_sort_key(photo: PhotoRecord):
    return (photo.captured_at.value, photo.path)


class PhotoSessionCorrelator:
    """
    Groups photos by the world session they were captured in.

    Sessions are walked from the most recent to the oldest. Each session
    takes every remaining photo captured at or after its join time, which for
    sessions closed by the next join is exactly the half-open interval
    ``[joined_at, left_at)``. A photo taken after an application exit but
    before the next join stays with the session the exit closed. Whatever is
    left after the oldest session goes to the residual group.
    """

    def __init__(self, newest_first: bool = True):
        """
        Initialize the correlator.

        Args:
            newest_first: Order groups from the most recent session down. The
                residual group is placed last in this order and first otherwise.
        """
        self.newest_first = newest_first
        self.photos_grouped = 0
        self.photos_residual = 0

    def correlate(
        self, sessions: Iterable[WorldSession], photos: Iterable[PhotoRecord]
    ) -> List[SessionPhotoGroup]:
        """
        Partition photos into session groups.

        Args:
            sessions: Reconstructed sessions (any order)
            photos: Photo records (any order)

        Returns:
            One group per session (empty groups included), plus a residual
            group when some photos precede every session. Photos within a group
            are sorted by capture time, then path.
        """
        # Zero-length sessions sort ahead of others sharing their join time
        ordered_sessions = sorted(sessions, key=lambda s: s.sort_key)
        remaining = sorted(photos, key=_photo_sort_key)
        capture_times = [photo.captured_at.value for photo in remaining]

        groups: List[SessionPhotoGroup] = []
        for session in reversed(ordered_sessions):
            split = bisect_left(capture_times, session.joined_at.value)
            groups.append(SessionPhotoGroup(session=session, photos=remaining[split:]))
            remaining = remaining[:split]
            capture_times = capture_times[:split]

        if not self.newest_first:
            groups.reverse()

        self.photos_residual = len(remaining)
        self.photos_grouped = sum(len(group) for group in groups)

        if remaining:
            residual = SessionPhotoGroup(session=None, photos=remaining)
            if self.newest_first:
                groups.append(residual)
            else:
                groups.insert(0, residual)
            logger.debug(f"{len(remaining)} photos precede every known session")

        return groups

    @staticmethod
    def parse_photos(paths: Iterable) -> Tuple[List[PhotoRecord], List[Tuple[str, FormatError]]]:
        """
        Build photo records from candidate file names, skipping invalid ones.

        Duplicate paths are kept once.

        Args:
            paths: File names or paths

        Returns:
            (records, rejected) where rejected holds (path, error) pairs
        """
        records: List[PhotoRecord] = []
        rejected: List[Tuple[str, FormatError]] = []
        seen = set()

        for path in paths:
            path = str(path)
            if path in seen:
                continue
            seen.add(path)
            try:
                records.append(PhotoRecord.from_path(path))
            except FormatError as e:
                logger.debug(f"Skipping {path}: {e}")
                rejected.append((path, e))

        if rejected:
            logger.warning(f"Skipped {len(rejected)} files that are not VRChat photos")
        return records, rejected

    def get_stats(self) -> Dict[str, Any]:
        return {
            "photos_grouped": self.photos_grouped,
            "photos_residual": self.photos_residual,
        }


def group_photos_by_session(
    sessions: Iterable[WorldSession], photos: Iterable[PhotoRecord], newest_first: bool = True
) -> List[SessionPhotoGroup]:
    """Group photos by session; see PhotoSessionCorrelator.correlate."""
    return PhotoSessionCorrelator(newest_first=newest_first).correlate(sessions, photos)
