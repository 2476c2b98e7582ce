"""Tests for the notification outbox repository."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select, update

from delivery_service.core.database.base import utcnow
from delivery_service.features.delivery.models import NotificationOutbox, OutboxStatus
from delivery_service.features.delivery.repository import OutboxRepository
from delivery_service.utils.retry import RetryStrategy


async def _row(session_factory, entry_id: str) -> NotificationOutbox:
    async with session_factory() as session:
        result = await session.execute(select(NotificationOutbox).where(NotificationOutbox.id == entry_id))
        return result.scalar_one()


async def _enqueue(session_factory, repo: OutboxRepository, notification_id: str, adapter: str):
    async with session_factory() as session:
        result = await repo.enqueue(session, notification_id, adapter)
        await session.commit()
    return result


async def _set(session_factory, entry_id: str, **values) -> None:
    async with session_factory() as session:
        await session.execute(
            update(NotificationOutbox)
            .where(NotificationOutbox.id == entry_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await session.commit()


class TestEnqueue:
    """Idempotent enqueue per (notification, adapter)."""

    @pytest.mark.asyncio
    async def test_enqueue_creates_pending_row(self, session_factory, outbox_repository):
        """A new pair yields one pending row with zero attempts."""
        result = await _enqueue(session_factory, outbox_repository, "n-1", "realtime")

        assert result.enqueued is True
        assert result.id.startswith("outbox_")
        assert len(result.id) == len("outbox_") + 32

        row = await _row(session_factory, result.id)
        assert row.status == OutboxStatus.PENDING
        assert row.attempts == 0
        assert row.last_error is None
        assert row.delivered_at is None

    @pytest.mark.asyncio
    async def test_duplicate_enqueue_returns_existing_row(self, session_factory, outbox_repository):
        """Enqueueing the same pair twice keeps a single row."""
        first = await _enqueue(session_factory, outbox_repository, "n-1", "realtime")
        second = await _enqueue(session_factory, outbox_repository, "n-1", "realtime")

        assert second.enqueued is False
        assert second.id == first.id
        async with session_factory() as session:
            rows = await outbox_repository.get_status(session, "n-1")
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_duplicate_enqueue_leaves_terminal_row_untouched(
        self, session_factory, outbox_repository
    ):
        """Re-enqueueing a delivered pair does not reset it to pending."""
        first = await _enqueue(session_factory, outbox_repository, "n-1", "push")
        async with session_factory() as session:
            await outbox_repository.mark_delivered(session, first.id)
            await session.commit()

        again = await _enqueue(session_factory, outbox_repository, "n-1", "push")

        assert again.enqueued is False
        row = await _row(session_factory, first.id)
        assert row.status == OutboxStatus.DELIVERED
        assert row.attempts == 1

    @pytest.mark.asyncio
    async def test_same_notification_different_adapters_are_independent(
        self, session_factory, outbox_repository
    ):
        """Each adapter gets its own row for the same notification."""
        realtime = await _enqueue(session_factory, outbox_repository, "n-1", "realtime")
        push = await _enqueue(session_factory, outbox_repository, "n-1", "push")

        assert realtime.enqueued and push.enqueued
        assert realtime.id != push.id
        async with session_factory() as session:
            rows = await outbox_repository.get_status(session, "n-1")
        assert [row.adapter for row in rows] == ["push", "realtime"]


class TestFetchPending:
    """Due-row selection for one adapter."""

    @pytest.mark.asyncio
    async def test_fetch_joins_notification_payload(
        self, session_factory, outbox_repository, make_notification
    ):
        """Pending rows come back with recipient and notification content."""
        notification = await make_notification(recipient_id="user-7", sub_type="mention")
        await _enqueue(session_factory, outbox_repository, notification.id, "realtime")

        async with session_factory() as session:
            entries = await outbox_repository.fetch_pending(session, "realtime")

        assert len(entries) == 1
        entry = entries[0]
        assert entry.recipient_id == "user-7"
        assert entry.notification_id == notification.id
        assert entry.payload == {
            "type": "reply",
            "actor_id": "user-2",
            "subject_id": "assertion-9",
            "sub_type": "mention",
            "created_at": "2026-10-01T12:00:00+00:00",
        }

    @pytest.mark.asyncio
    async def test_fetch_filters_by_adapter_and_status(
        self, session_factory, outbox_repository, make_notification
    ):
        """Only pending rows of the requested adapter are returned."""
        n1 = await make_notification()
        n2 = await make_notification()
        delivered = await _enqueue(session_factory, outbox_repository, n1.id, "realtime")
        await _enqueue(session_factory, outbox_repository, n2.id, "realtime")
        await _enqueue(session_factory, outbox_repository, n2.id, "push")
        async with session_factory() as session:
            await outbox_repository.mark_delivered(session, delivered.id)
            await session.commit()

        async with session_factory() as session:
            entries = await outbox_repository.fetch_pending(session, "realtime")

        assert [entry.notification_id for entry in entries] == [n2.id]

    @pytest.mark.asyncio
    async def test_fetch_skips_rows_in_backoff(
        self, session_factory, outbox_repository, make_notification
    ):
        """Rows whose next_attempt_at lies in the future are not due."""
        notification = await make_notification()
        result = await _enqueue(session_factory, outbox_repository, notification.id, "push")
        await _set(session_factory, result.id, next_attempt_at=utcnow() + timedelta(minutes=5))

        async with session_factory() as session:
            assert await outbox_repository.fetch_pending(session, "push") == []

    @pytest.mark.asyncio
    async def test_fetch_orders_oldest_first_and_limits(
        self, session_factory, outbox_repository, make_notification
    ):
        """Rows come back in created_at order, capped at batch_size."""
        ids = []
        base = utcnow() - timedelta(minutes=10)
        for offset in (3, 1, 2):
            notification = await make_notification()
            result = await _enqueue(session_factory, outbox_repository, notification.id, "push")
            await _set(session_factory, result.id, created_at=base + timedelta(minutes=offset))
            ids.append((offset, result.id))

        async with session_factory() as session:
            entries = await outbox_repository.fetch_pending(session, "push", batch_size=2)

        expected = [entry_id for _, entry_id in sorted(ids)][:2]
        assert [entry.id for entry in entries] == expected

    @pytest.mark.asyncio
    async def test_fetch_excludes_rows_without_notification(self, session_factory, outbox_repository):
        """A row referencing a missing notification is left out and stays pending."""
        result = await _enqueue(session_factory, outbox_repository, "n-gone", "push")

        async with session_factory() as session:
            assert await outbox_repository.fetch_pending(session, "push") == []

        row = await _row(session_factory, result.id)
        assert row.status == OutboxStatus.PENDING


class TestOutcomes:
    """mark_delivered / mark_failed transitions."""

    @pytest.mark.asyncio
    async def test_mark_delivered_sets_timestamp_and_attempts(self, session_factory, outbox_repository):
        result = await _enqueue(session_factory, outbox_repository, "n-1", "push")

        async with session_factory() as session:
            assert await outbox_repository.mark_delivered(session, result.id) is True
            await session.commit()

        row = await _row(session_factory, result.id)
        assert row.status == OutboxStatus.DELIVERED
        assert row.attempts == 1
        assert row.delivered_at is not None

    @pytest.mark.asyncio
    async def test_mark_delivered_is_idempotent(self, session_factory, outbox_repository):
        """A second mark_delivered changes nothing."""
        result = await _enqueue(session_factory, outbox_repository, "n-1", "push")
        async with session_factory() as session:
            await outbox_repository.mark_delivered(session, result.id)
            await session.commit()
        first = await _row(session_factory, result.id)

        async with session_factory() as session:
            assert await outbox_repository.mark_delivered(session, result.id) is False
            await session.commit()

        second = await _row(session_factory, result.id)
        assert second.attempts == 1
        assert second.delivered_at == first.delivered_at

    @pytest.mark.asyncio
    async def test_retryable_failure_backs_off(self, session_factory, outbox_repository):
        """A retryable failure keeps the row pending with a later next_attempt_at."""
        result = await _enqueue(session_factory, outbox_repository, "n-1", "push")
        before = utcnow()

        async with session_factory() as session:
            status = await outbox_repository.mark_failed(session, result.id, "timeout", retryable=True)
            await session.commit()

        row = await _row(session_factory, result.id)
        assert status == OutboxStatus.PENDING
        assert row.status == OutboxStatus.PENDING
        assert row.attempts == 1
        assert row.last_error == "timeout"
        assert row.next_attempt_at >= before + timedelta(seconds=59)

    @pytest.mark.asyncio
    async def test_backoff_grows_with_attempts(self, session_factory):
        """Each retryable failure schedules a longer wait than the previous one."""
        repo = OutboxRepository(
            max_attempts=10,
            backoff=RetryStrategy(initial_delay=10, max_delay=10_000, exponential_base=2, jitter=False),
        )
        result = await _enqueue(session_factory, repo, "n-1", "push")
        waits = []
        for _ in range(3):
            before = utcnow()
            async with session_factory() as session:
                await repo.mark_failed(session, result.id, "boom", retryable=True)
                await session.commit()
            row = await _row(session_factory, result.id)
            waits.append((row.next_attempt_at - before).total_seconds())

        assert waits[0] < waits[1] < waits[2]
        assert waits[0] == pytest.approx(10, abs=1)
        assert waits[2] == pytest.approx(40, abs=1)

    @pytest.mark.asyncio
    async def test_retry_exhaustion_marks_failed(self, session_factory, outbox_repository):
        """The fifth retryable failure is terminal."""
        result = await _enqueue(session_factory, outbox_repository, "n-1", "push")

        statuses = []
        for attempt in range(5):
            async with session_factory() as session:
                statuses.append(
                    await outbox_repository.mark_failed(
                        session, result.id, f"error {attempt}", retryable=True
                    )
                )
                await session.commit()

        assert statuses[:4] == [OutboxStatus.PENDING] * 4
        assert statuses[4] == OutboxStatus.FAILED
        row = await _row(session_factory, result.id)
        assert row.status == OutboxStatus.FAILED
        assert row.attempts == 5
        assert row.last_error == "error 4"

    @pytest.mark.asyncio
    async def test_non_retryable_failure_is_terminal(self, session_factory, outbox_repository):
        """A non-retryable failure fails the row on the first attempt."""
        result = await _enqueue(session_factory, outbox_repository, "n-1", "push")

        async with session_factory() as session:
            status = await outbox_repository.mark_failed(
                session, result.id, "No device token", retryable=False
            )
            await session.commit()

        row = await _row(session_factory, result.id)
        assert status == OutboxStatus.FAILED
        assert row.status == OutboxStatus.FAILED
        assert row.attempts == 1
        assert row.last_error == "No device token"

    @pytest.mark.asyncio
    async def test_mark_failed_ignores_terminal_rows(self, session_factory, outbox_repository):
        """Failures reported after delivery are dropped."""
        result = await _enqueue(session_factory, outbox_repository, "n-1", "push")
        async with session_factory() as session:
            await outbox_repository.mark_delivered(session, result.id)
            await session.commit()

        async with session_factory() as session:
            assert await outbox_repository.mark_failed(session, result.id, "late", retryable=True) is None
            await session.commit()

        row = await _row(session_factory, result.id)
        assert row.status == OutboxStatus.DELIVERED
        assert row.last_error is None

    @pytest.mark.asyncio
    async def test_error_text_is_truncated(self, session_factory):
        repo = OutboxRepository(error_max_length=50)
        result = await _enqueue(session_factory, repo, "n-1", "push")

        async with session_factory() as session:
            await repo.mark_failed(session, result.id, "x" * 500, retryable=True)
            await session.commit()

        row = await _row(session_factory, result.id)
        assert row.last_error == "x" * 50


class TestRetention:
    """Cleanup and backlog counting."""

    @pytest.mark.asyncio
    async def test_cleanup_delivered_deletes_exactly_old_delivered_rows(
        self, session_factory, outbox_repository
    ):
        old = await _enqueue(session_factory, outbox_repository, "n-old", "push")
        recent = await _enqueue(session_factory, outbox_repository, "n-recent", "push")
        pending = await _enqueue(session_factory, outbox_repository, "n-pending", "push")
        async with session_factory() as session:
            await outbox_repository.mark_delivered(session, old.id)
            await outbox_repository.mark_delivered(session, recent.id)
            await session.commit()
        await _set(session_factory, old.id, delivered_at=utcnow() - timedelta(days=8))
        await _set(session_factory, pending.id, created_at=utcnow() - timedelta(days=30))

        async with session_factory() as session:
            result = await outbox_repository.cleanup_delivered(session, older_than_days=7)
            await session.commit()

        assert result.deleted == 1
        async with session_factory() as session:
            remaining = (await session.execute(select(NotificationOutbox.id))).scalars().all()
        assert set(remaining) == {recent.id, pending.id}

    @pytest.mark.asyncio
    async def test_cleanup_failed_uses_creation_time(self, session_factory, outbox_repository):
        old = await _enqueue(session_factory, outbox_repository, "n-old", "push")
        young = await _enqueue(session_factory, outbox_repository, "n-young", "push")
        async with session_factory() as session:
            await outbox_repository.mark_failed(session, old.id, "gone", retryable=False)
            await outbox_repository.mark_failed(session, young.id, "gone", retryable=False)
            await session.commit()
        await _set(session_factory, old.id, created_at=utcnow() - timedelta(days=31))

        async with session_factory() as session:
            result = await outbox_repository.cleanup_failed(session, older_than_days=30)
            await session.commit()

        assert result.deleted == 1
        async with session_factory() as session:
            assert await outbox_repository.get_status(session, "n-old") == []
            assert len(await outbox_repository.get_status(session, "n-young")) == 1

    @pytest.mark.asyncio
    async def test_count_pending_total_and_per_adapter(self, session_factory, outbox_repository):
        await _enqueue(session_factory, outbox_repository, "n-1", "push")
        await _enqueue(session_factory, outbox_repository, "n-1", "realtime")
        done = await _enqueue(session_factory, outbox_repository, "n-2", "push")
        async with session_factory() as session:
            await outbox_repository.mark_delivered(session, done.id)
            await session.commit()

        async with session_factory() as session:
            assert await outbox_repository.count_pending(session) == 2
            assert await outbox_repository.count_pending(session, "push") == 1
            assert await outbox_repository.count_pending(session, "email") == 0
