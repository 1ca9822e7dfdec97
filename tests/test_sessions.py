"""
Unit tests for world session reconstruction.
"""

import pytest
from datetime import datetime, timedelta
from hypothesis import given
from hypothesis import strategies as st

from vrcsessions.errors import FormatError, OrderingError
from vrcsessions.models.session import LeaveReason, WorldSession
from vrcsessions.models.values import Timestamp
from vrcsessions.parser.events import AppExit, AppStart, PlayerJoin, WorldJoin
from vrcsessions.parser.parser import LogEventExtractor
from vrcsessions.segmentation.sessions import SessionIndex, SessionSegmenter, reconstruct_sessions

from tests.conftest import log_line


def make_join(at, world_id="wrld_A", instance_id="1", world_name=""):
    return WorldJoin(at=Timestamp.parse(at), world_id=world_id, world_name=world_name, instance_id=instance_id)


class TestWorldSession:
    """Test WorldSession dataclass functionality."""

    def test_duration_calculation(self, make_session):
        session = make_session("2024-01-01_10-00-00.000", "2024-01-01_10-02-30.000")
        assert session.duration == 150.0
        assert make_session("2024-01-01_10-00-00.000").duration is None

    def test_contains_time_is_half_open(self, make_session):
        """Test time containment at and around the boundaries."""
        session = make_session("2024-01-01_10-00-00.000", "2024-01-01_10-02-00.000")
        assert session.contains_time(Timestamp.parse("2024-01-01_10-00-00.000")) is True
        assert session.contains_time(Timestamp.parse("2024-01-01_10-01-00.000")) is True
        assert session.contains_time(Timestamp.parse("2024-01-01_10-02-00.000")) is False
        assert session.contains_time(Timestamp.parse("2024-01-01_09-59-59.999")) is False

    def test_open_session_contains_everything_after_join(self, make_session):
        session = make_session("2024-01-01_10-00-00.000")
        assert session.is_open
        assert session.contains_time(Timestamp.parse("2030-01-01_00-00-00.000"))

    def test_left_before_joined_is_rejected(self, make_session):
        with pytest.raises(FormatError):
            make_session("2024-01-01_10-00-00.000", "2024-01-01_09-00-00.000")

    def test_repr(self, make_session):
        session = make_session("2024-01-01_10-00-00.000", "2024-01-01_10-01-30.000", world_name="The Great Pug")
        repr_str = repr(session)
        assert "The Great Pug" in repr_str
        assert "10:00:00" in repr_str
        assert "10:01:30" in repr_str

    def test_to_dict(self, make_session):
        session = make_session("2024-01-01_10-00-00.000")
        assert session.to_dict()["left_at"] is None
        assert session.to_dict()["joined_at"] == "2024-01-01T10:00:00.000"
        assert session.to_dict()["leave_reason"] is None

    def test_open_session_has_no_leave_reason(self):
        with pytest.raises(FormatError):
            WorldSession(
                world_id="wrld_A",
                world_name="",
                instance_id="1",
                joined_at=Timestamp.parse("2024-01-01_10-00-00.000"),
                leave_reason=LeaveReason.APPLICATION_QUIT,
            )

    def test_sort_key_puts_zero_length_first(self, make_session):
        """Test ordering of sessions that share a join time."""
        empty = make_session("2024-01-01_10-00-00.000", "2024-01-01_10-00-00.000", world_id="wrld_A")
        closed = make_session("2024-01-01_10-00-00.000", "2024-01-01_10-30-00.000", world_id="wrld_B")
        still_open = make_session("2024-01-01_10-00-00.000", world_id="wrld_C")
        earlier = make_session("2024-01-01_09-00-00.000", world_id="wrld_D")

        ordered = sorted([still_open, closed, empty, earlier], key=lambda s: s.sort_key)

        assert [s.world_id for s in ordered] == ["wrld_D", "wrld_A", "wrld_B", "wrld_C"]


class TestReconstruction:
    """Test batch session reconstruction."""

    def test_two_worlds_from_log_lines(self):
        """Test the app start plus two joins scenario."""
        lines = [
            log_line("2021.07.15 20:59:00", "VRC Analytics Initialized"),
            log_line("2021.07.15 21:00:00", "[Behaviour] Joining wrld_A:1~region(jp)"),
            log_line("2021.07.15 22:00:00", "[Behaviour] Joining wrld_B:1~region(jp)"),
        ]
        t1 = Timestamp.parse("2021.07.15 21:00:00")
        t2 = Timestamp.parse("2021.07.15 22:00:00")

        sessions = reconstruct_sessions(LogEventExtractor().extract(lines))

        assert len(sessions) == 2
        a, b = sessions
        assert (a.world_id, a.joined_at, a.left_at) == ("wrld_A", t1, t2)
        assert (b.world_id, b.joined_at, b.left_at) == ("wrld_B", t2, None)
        assert a.leave_reason == LeaveReason.NEXT_JOIN
        assert b.leave_reason is None

    def test_application_exit_closes_last_session(self):
        """Test that a finished log leaves no session open."""
        lines = [
            log_line("2021.07.15 21:00:00", "[Behaviour] Joining wrld_A:1~region(jp)"),
            log_line("2021.07.15 22:00:00", "[Behaviour] Joining wrld_B:1~region(jp)"),
            log_line("2021.07.15 23:15:00", "VRCApplication: HandleApplicationQuit at 8100.2"),
        ]

        a, b = reconstruct_sessions(LogEventExtractor().extract(lines))

        assert a.left_at == b.joined_at
        assert b.left_at == Timestamp.parse("2021.07.15 23:15:00")
        assert b.leave_reason == LeaveReason.APPLICATION_QUIT
        assert b.duration == 4500.0

    def test_exit_then_restart_leaves_a_gap(self):
        events = [
            make_join("2024-01-01_10-00-00.000", world_id="wrld_A"),
            AppExit(at=Timestamp.parse("2024-01-01_11-00-00.000")),
            AppStart(at=Timestamp.parse("2024-01-01_12-00-00.000")),
            make_join("2024-01-01_12-00-05.000", world_id="wrld_B"),
        ]

        first, second = reconstruct_sessions(events)

        assert first.left_at == Timestamp.parse("2024-01-01_11-00-00.000")
        assert first.leave_reason == LeaveReason.APPLICATION_QUIT
        assert second.joined_at == Timestamp.parse("2024-01-01_12-00-05.000")
        assert second.is_open

    def test_exit_without_session_is_ignored(self):
        events = [
            AppExit(at=Timestamp.parse("2024-01-01_09-00-00.000")),
            make_join("2024-01-01_10-00-00.000"),
            AppExit(at=Timestamp.parse("2024-01-01_11-00-00.000")),
            AppExit(at=Timestamp.parse("2024-01-01_11-00-01.000")),
        ]

        sessions = reconstruct_sessions(events)

        assert len(sessions) == 1
        assert sessions[0].left_at == Timestamp.parse("2024-01-01_11-00-00.000")

    def test_exit_at_join_time_keeps_log_order(self):
        """Test that an exit logged after a join at the same instant closes it."""
        at = "2024-01-01_10-00-00.000"
        sessions = reconstruct_sessions([make_join(at), AppExit(at=Timestamp.parse(at))])
        assert sessions[0].duration == 0
        assert sessions[0].leave_reason == LeaveReason.APPLICATION_QUIT

    def test_empty_input(self):
        assert reconstruct_sessions([]) == []

    def test_non_join_events_are_ignored(self):
        at = Timestamp.parse("2024-01-01_10-00-00.000")
        events = [AppStart(at=at), PlayerJoin(at=at, player_name="Bob")]
        assert reconstruct_sessions(events) == []

    def test_unsorted_input_is_sorted(self):
        events = [
            make_join("2024-01-01_12-00-00.000", world_id="wrld_C"),
            make_join("2024-01-01_10-00-00.000", world_id="wrld_A"),
            make_join("2024-01-01_11-00-00.000", world_id="wrld_B"),
        ]
        sessions = reconstruct_sessions(events)
        assert [s.world_id for s in sessions] == ["wrld_A", "wrld_B", "wrld_C"]
        assert sessions[0].left_at == sessions[1].joined_at

    def test_equal_timestamps_later_join_wins(self):
        """Test that the earlier of two simultaneous joins collapses to zero length."""
        events = [
            make_join("2024-01-01_10-00-00.000", world_id="wrld_A"),
            make_join("2024-01-01_10-00-00.000", world_id="wrld_B"),
        ]
        first, second = reconstruct_sessions(events)
        assert first.world_id == "wrld_A"
        assert first.duration == 0
        assert second.world_id == "wrld_B"
        assert second.is_open

    def test_world_name_is_carried(self):
        sessions = reconstruct_sessions([make_join("2024-01-01_10-00-00.000", world_name="The Great Pug")])
        assert sessions[0].world_name == "The Great Pug"

    @pytest.mark.property
    @given(
        offsets=st.lists(st.integers(min_value=0, max_value=10 ** 9), max_size=30),
    )
    def test_sessions_never_overlap(self, offsets):
        """Test that sorted joins produce ordered, pairwise disjoint sessions."""
        base = datetime(2020, 1, 1)
        joins = [
            WorldJoin(
                at=Timestamp.from_datetime(base + timedelta(milliseconds=offset)),
                world_id="wrld_A",
                world_name="",
                instance_id=str(i),
            )
            for i, offset in enumerate(sorted(offsets))
        ]

        sessions = reconstruct_sessions(joins)

        assert len(sessions) == len(joins)
        for earlier, later in zip(sessions, sessions[1:]):
            assert earlier.joined_at <= later.joined_at
            assert earlier.left_at is not None
            assert earlier.left_at <= later.joined_at
        if sessions:
            assert sessions[-1].is_open


class TestIncrementalSegmenter:
    """Test driving the segmenter one event at a time."""

    def test_process_event_returns_closed_session(self):
        segmenter = SessionSegmenter()
        assert segmenter.process_event(make_join("2024-01-01_10-00-00.000")) is None
        closed = segmenter.process_event(make_join("2024-01-01_11-00-00.000", world_id="wrld_B"))
        assert closed.world_id == "wrld_A"
        assert closed.left_at == Timestamp.parse("2024-01-01_11-00-00.000")

        sessions = segmenter.finalize()
        assert len(sessions) == 2
        assert sessions[-1].is_open

    def test_backwards_join_raises(self):
        segmenter = SessionSegmenter()
        segmenter.process_event(make_join("2024-01-01_11-00-00.000"))
        with pytest.raises(OrderingError):
            segmenter.process_event(make_join("2024-01-01_10-00-00.000"))

    def test_exit_returns_closed_session(self):
        segmenter = SessionSegmenter()
        segmenter.process_event(make_join("2024-01-01_10-00-00.000"))
        closed = segmenter.process_event(AppExit(at=Timestamp.parse("2024-01-01_10-45-00.000")))

        assert closed.leave_reason == LeaveReason.APPLICATION_QUIT
        assert segmenter.current_join is None
        assert segmenter.finalize() == [closed]

    def test_backwards_join_after_exit_raises(self):
        segmenter = SessionSegmenter()
        segmenter.process_event(make_join("2024-01-01_10-00-00.000"))
        segmenter.process_event(AppExit(at=Timestamp.parse("2024-01-01_11-00-00.000")))
        with pytest.raises(OrderingError):
            segmenter.process_event(make_join("2024-01-01_10-30-00.000"))

    def test_stats(self):
        segmenter = SessionSegmenter()
        segmenter.reconstruct(
            [
                make_join("2024-01-01_10-00-00.000"),
                make_join("2024-01-01_10-00-00.000", world_name="Named"),
                make_join("2024-01-01_11-00-00.000"),
                make_join("2024-01-01_12-00-00.000"),
                AppExit(at=Timestamp.parse("2024-01-01_12-30-00.000")),
                make_join("2024-01-01_13-00-00.000"),
            ]
        )
        stats = segmenter.get_stats()
        assert stats["total_sessions"] == 5
        assert stats["open_sessions"] == 1
        assert stats["application_quits"] == 1
        assert stats["zero_duration"] == 1
        assert stats["unnamed_worlds"] == 4


class TestSessionIndex:
    """Test timestamp lookups."""

    def test_find(self, make_session):
        sessions = [
            make_session("2024-01-01_10-00-00.000", "2024-01-01_11-00-00.000", world_id="wrld_A"),
            make_session("2024-01-01_11-00-00.000", world_id="wrld_B"),
        ]
        index = SessionIndex(sessions)
        assert index.find(Timestamp.parse("2024-01-01_09-00-00.000")) is None
        assert index.find(Timestamp.parse("2024-01-01_10-30-00.000")).world_id == "wrld_A"
        assert index.find(Timestamp.parse("2024-01-01_11-00-00.000")).world_id == "wrld_B"

    def test_find_in_gap(self, make_session):
        sessions = [
            make_session("2024-01-01_10-00-00.000", "2024-01-01_10-30-00.000"),
            make_session("2024-01-01_11-00-00.000"),
        ]
        assert SessionIndex(sessions).find(Timestamp.parse("2024-01-01_10-45-00.000")) is None

    def test_find_skips_zero_length_session_at_shared_start(self):
        """Test lookups at a join time shared by an emptied session."""
        first, second = reconstruct_sessions(
            [
                make_join("2024-01-01_10-00-00.000", world_id="wrld_A"),
                make_join("2024-01-01_10-00-00.000", world_id="wrld_B"),
            ]
        )
        for ordering in ([first, second], [second, first]):
            index = SessionIndex(ordering)
            assert index.find(Timestamp.parse("2024-01-01_10-00-00.000")).world_id == "wrld_B"
            assert index.find(Timestamp.parse("2024-01-01_10-05-00.000")).world_id == "wrld_B"

    def test_find_after_application_exit(self):
        sessions = reconstruct_sessions(
            [
                make_join("2024-01-01_10-00-00.000"),
                AppExit(at=Timestamp.parse("2024-01-01_11-00-00.000")),
            ]
        )
        assert SessionIndex(sessions).find(Timestamp.parse("2024-01-01_11-30-00.000")) is None
