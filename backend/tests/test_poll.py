"""Tests for long-poll cancellation and redelivery."""
import asyncio

import pytest

from app.chat.poll import PollCoordinator
from app.chat.registry import UserRegistry
from app.chat.schemas import Message, PollOutcome


def _msg(body: str) -> Message:
    return Message(author="bob", body=body)


@pytest.fixture
def user():
    return UserRegistry().join("alice")


@pytest.fixture
def coordinator():
    return PollCoordinator()


class TestPollCoordinator:
    @pytest.mark.asyncio
    async def test_delivers_queued_message(self, user, coordinator):
        user.queue.put(_msg("one"))
        result = await coordinator.wait(user, timeout=1)
        assert result.outcome is PollOutcome.DELIVERED
        assert result.message.body == "one"
        assert user.last_poll_time is not None
        assert len(user.queue) == 0

    @pytest.mark.asyncio
    async def test_timeout_leaves_state_alone(self, user, coordinator):
        result = await coordinator.wait(user, timeout=0.05)
        assert result.outcome is PollOutcome.TIMEOUT
        assert result.message is None
        assert user.last_poll_time is None
        assert user.active_polls == 0

    @pytest.mark.asyncio
    async def test_timed_out_receiver_does_not_steal_later_messages(self, user, coordinator):
        await coordinator.wait(user, timeout=0.05)
        user.queue.put(_msg("later"))
        await asyncio.sleep(0.01)
        assert len(user.queue) == 1

    @pytest.mark.asyncio
    async def test_disconnect_returns_cancelled(self, user, coordinator):
        disconnected = asyncio.Event()
        task = asyncio.create_task(
            coordinator.wait(user, timeout=5, cancelled=disconnected.wait)
        )
        await asyncio.sleep(0.01)

        disconnected.set()
        result = await asyncio.wait_for(task, timeout=1)
        assert result.outcome is PollOutcome.CANCELLED
        assert result.messages == []

        user.queue.put(_msg("next"))
        await asyncio.sleep(0.01)
        assert user.queue.get_nowait().body == "next"

    @pytest.mark.asyncio
    async def test_message_taken_during_cancel_is_redelivered(self, user, coordinator):
        """Receiver and disconnect finish together: the message goes back."""
        user.queue.put(_msg("first"))
        user.queue.put(_msg("second"))
        disconnected = asyncio.Event()
        disconnected.set()

        result = await coordinator.wait(user, timeout=1, cancelled=disconnected.wait)

        assert result.outcome is PollOutcome.CANCELLED
        assert [user.queue.get_nowait().body for _ in range(2)] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_next_poll_after_cancel_gets_the_message(self, user, coordinator):
        user.queue.put(_msg("keep me"))
        disconnected = asyncio.Event()
        disconnected.set()
        await coordinator.wait(user, timeout=1, cancelled=disconnected.wait)

        result = await coordinator.wait(user, timeout=1)
        assert result.outcome is PollOutcome.DELIVERED
        assert result.message.body == "keep me"

    @pytest.mark.asyncio
    async def test_task_cancellation_consumes_nothing(self, user, coordinator):
        task = asyncio.create_task(coordinator.wait(user, timeout=5))
        await asyncio.sleep(0.01)
        assert user.active_polls == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert user.active_polls == 0

        user.queue.put(_msg("after cancel"))
        await asyncio.sleep(0.01)
        assert len(user.queue) == 1

    @pytest.mark.asyncio
    async def test_watcher_is_stopped_after_delivery(self, user, coordinator):
        started = asyncio.Event()
        stopped = asyncio.Event()

        async def watch():
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                stopped.set()
                raise

        user.queue.put(_msg("hi"))
        result = await coordinator.wait(user, timeout=1, cancelled=watch)
        assert result.outcome is PollOutcome.DELIVERED
        await asyncio.wait_for(stopped.wait(), timeout=1)
