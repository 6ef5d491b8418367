"""Tests for NotificationService with mocked Cassandra and Redis."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from src.core.documents import utc_now
from src.core.redis import unread_count_key
from src.notifications.models import NotificationType, ReferenceType
from src.notifications.service import NotificationNotFoundError, NotificationService


@pytest.fixture
def mock_session():
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def mock_redis():
    redis = Mock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock()
    redis.delete = AsyncMock()
    return redis


@pytest.fixture
def service(mock_session, mock_redis):
    return NotificationService(
        session=mock_session, keyspace="test_keyspace", redis=mock_redis
    )


def _row(user_id, is_read=False, **kwargs):
    return SimpleNamespace(
        notification_id=kwargs.pop("notification_id", uuid4()),
        user_id=user_id,
        type=NotificationType.INFO.value,
        title="Enrollment approved",
        message="You can start learning now",
        reference_type=ReferenceType.ENROLLMENT.value,
        reference_id=uuid4(),
        is_read=is_read,
        read_at=None,
        created_at=kwargs.pop("created_at", utc_now()),
    )


class TestNotify:
    @pytest.mark.asyncio
    async def test_notify_appends_and_counts(self, service, mock_session, mock_redis):
        user_id = uuid4()

        notification = await service.notify(
            user_id,
            "Enrollment approved",
            "You can start learning now",
            reference_type=ReferenceType.ENROLLMENT,
        )

        assert notification.is_read is False
        insert_params = mock_session.aexecute.call_args_list[0].args[1]
        assert insert_params[0] == user_id
        assert insert_params[6] == "enrollment"
        assert mock_session.aexecute.call_args_list[1].args[1] == [user_id]
        mock_redis.delete.assert_awaited_once_with(unread_count_key(user_id))

    @pytest.mark.asyncio
    async def test_notify_many_sends_once_per_user(self, service, mock_session):
        first, second = uuid4(), uuid4()

        count = await service.notify_many(
            [first, second, first], "Live session started", "Join now"
        )

        assert count == 2
        # insert + counter per user
        assert mock_session.aexecute.await_count == 4

    @pytest.mark.asyncio
    async def test_long_messages_are_truncated(self, service):
        notification = await service.notify(uuid4(), "Digest", "x" * 5000)
        assert len(notification.message) < 5000


class TestUnreadCount:
    @pytest.mark.asyncio
    async def test_cached_value(self, service, mock_session, mock_redis):
        mock_redis.get.return_value = b"7"

        assert await service.get_unread_count(uuid4()) == 7
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_miss_reads_counter_and_caches(
        self, service, mock_session, mock_redis
    ):
        result = Mock()
        result.one.return_value = SimpleNamespace(count=3)
        mock_session.aexecute.return_value = result
        user_id = uuid4()

        assert await service.get_unread_count(user_id) == 3
        key, _ttl, value = mock_redis.setex.call_args.args
        assert key == unread_count_key(user_id)
        assert value == "3"

    @pytest.mark.asyncio
    async def test_negative_counter_reads_as_zero(self, mock_session):
        result = Mock()
        result.one.return_value = SimpleNamespace(count=-2)
        mock_session.aexecute.return_value = result
        service = NotificationService(session=mock_session, keyspace="test_keyspace")

        assert await service.get_unread_count(uuid4()) == 0


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_mark_one(self, service, mock_session):
        user_id = uuid4()
        row = _row(user_id)
        mock_session.aexecute.return_value = [row]

        notification = await service.mark_as_read(user_id, row.notification_id)

        assert notification.is_read is True
        assert notification.read_at is not None
        decrement = mock_session.aexecute.call_args_list[-1].args[1]
        assert decrement == [1, user_id]

    @pytest.mark.asyncio
    async def test_already_read_is_left_alone(self, service, mock_session):
        user_id = uuid4()
        row = _row(user_id, is_read=True)
        mock_session.aexecute.return_value = [row]

        await service.mark_as_read(user_id, row.notification_id)

        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_notification(self, service, mock_session):
        mock_session.aexecute.return_value = [_row(uuid4())]

        with pytest.raises(NotificationNotFoundError):
            await service.mark_as_read(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_mark_all(self, service, mock_session):
        user_id = uuid4()
        mock_session.aexecute.return_value = [
            _row(user_id),
            _row(user_id, is_read=True),
            _row(user_id),
        ]

        assert await service.mark_all_as_read(user_id) == 2
        assert mock_session.aexecute.call_args.args[1] == [2, user_id]


class TestClear:
    @pytest.mark.asyncio
    async def test_clear_all_drops_unread_from_counter(self, service, mock_session):
        user_id = uuid4()
        mock_session.aexecute.return_value = [
            _row(user_id),
            _row(user_id, is_read=True),
        ]

        assert await service.clear_all(user_id) == 2
        assert mock_session.aexecute.call_args.args[1] == [1, user_id]

    @pytest.mark.asyncio
    async def test_clear_read_keeps_unread(self, service, mock_session):
        user_id = uuid4()
        mock_session.aexecute.return_value = [
            _row(user_id),
            _row(user_id, is_read=True),
            _row(user_id, is_read=True),
        ]

        assert await service.clear_read(user_id) == 2

    @pytest.mark.asyncio
    async def test_delete_unknown(self, service, mock_session):
        mock_session.aexecute.return_value = []

        with pytest.raises(NotificationNotFoundError):
            await service.delete_notification(uuid4(), uuid4())
