"""Tests for the LiveSession entity."""

from datetime import timedelta
from uuid import uuid4

import pytest

from src.core.documents import utc_now
from src.live_sessions.models import LiveSession, SessionStatus


def _session(**kwargs) -> LiveSession:
    return LiveSession(
        title=kwargs.pop("title", "Office hours"),
        description=kwargs.pop("description", "Weekly questions and answers"),
        course_id=kwargs.pop("course_id", uuid4()),
        instructor_id=kwargs.pop("instructor_id", uuid4()),
        scheduled_at=kwargs.pop("scheduled_at", utc_now() + timedelta(days=1)),
        duration=kwargs.pop("duration", 60),
        **kwargs,
    )


class TestRoomId:
    def test_room_id_embeds_id_and_creation_time(self) -> None:
        live_session = _session()
        millis = int(live_session.created_at.timestamp() * 1000)
        assert live_session.room_id == f"session_{live_session.id}_{millis}"

    def test_stored_room_id_is_kept(self) -> None:
        assert _session(room_id="session_abc_1").room_id == "session_abc_1"


class TestJoinRefusal:
    """Reasons a user cannot join, checked in order."""

    def test_enrolled_user_can_join_scheduled_session(self) -> None:
        assert _session().join_refusal(has_enrollment=True) is None

    def test_enrolled_user_can_join_live_session(self) -> None:
        live_session = _session()
        live_session.start()
        assert live_session.join_refusal(has_enrollment=True) is None

    @pytest.mark.parametrize("status", [SessionStatus.ENDED, SessionStatus.CANCELLED])
    def test_closed_session(self, status: SessionStatus) -> None:
        live_session = _session(status=status.value)
        assert live_session.join_refusal(True) == "Session is not available"

    def test_inactive_session(self) -> None:
        live_session = _session(is_active=False)
        assert live_session.join_refusal(True) == "Session is not available"

    def test_not_enrolled(self) -> None:
        assert _session().join_refusal(False) == "User is not enrolled in this course"

    def test_full_session(self) -> None:
        live_session = _session(max_participants=2)
        live_session.add_participant(uuid4())
        live_session.add_participant(uuid4())
        assert live_session.is_full is True
        assert live_session.join_refusal(True) == "Session is full"

    def test_departed_participants_free_their_seat(self) -> None:
        live_session = _session(max_participants=1)
        user_id = uuid4()
        live_session.add_participant(user_id)
        live_session.remove_participant(user_id)
        assert live_session.is_full is False
        assert live_session.join_refusal(True) is None


class TestParticipants:
    def test_rejoin_marks_present_again(self) -> None:
        live_session = _session()
        user_id = uuid4()
        live_session.add_participant(user_id)
        live_session.remove_participant(user_id)
        participant = live_session.participation(user_id)
        assert participant is not None
        assert participant.is_present is False
        assert participant.left_at is not None

        again = live_session.add_participant(user_id)

        assert again.is_present is True
        assert again.left_at is None
        assert len(live_session.participants) == 1

    def test_leave_without_joining(self) -> None:
        assert _session().remove_participant(uuid4()) is False


class TestLifecycle:
    def test_end_counts_everyone_who_joined(self) -> None:
        live_session = _session()
        live_session.start()
        first, second = uuid4(), uuid4()
        live_session.add_participant(first)
        live_session.add_participant(second)
        live_session.remove_participant(first)

        live_session.end()

        assert live_session.status == SessionStatus.ENDED
        assert live_session.attendance_count == 2
        assert live_session.actual_end_time is not None

    def test_actual_duration_is_rounded_minutes(self) -> None:
        live_session = _session()
        live_session.start()
        live_session.actual_start_time = utc_now() - timedelta(minutes=44, seconds=40)

        live_session.end()

        assert live_session.actual_duration == 45

    def test_cancel(self) -> None:
        live_session = _session()
        live_session.cancel()
        assert live_session.status == SessionStatus.CANCELLED
