"""Tests for the user registry and per-user delivery queues."""
import asyncio

import pytest

from app.chat.delivery import DeliveryQueue
from app.chat.errors import DuplicateUsername, InvalidUsername, UnknownUser
from app.chat.registry import UserRegistry
from app.chat.schemas import Message


def _msg(i: int) -> Message:
    return Message(author="bob", body=str(i))


class TestUserRegistry:
    def test_join_creates_user_with_empty_queue(self):
        registry = UserRegistry()
        user = registry.join("alice")
        assert user.username == "alice"
        assert len(user.queue) == 0
        assert user.queue.capacity == 20
        assert user.last_poll_time is None
        assert registry.lookup("alice") is user

    def test_duplicate_join_fails_and_leaves_registry_unchanged(self):
        registry = UserRegistry()
        first = registry.join("alice")
        with pytest.raises(DuplicateUsername):
            registry.join("alice")
        assert len(registry) == 1
        assert registry.lookup("alice") is first

    @pytest.mark.parametrize("username", ["", "   ", None])
    def test_blank_username_is_invalid(self, username):
        registry = UserRegistry()
        with pytest.raises(InvalidUsername):
            registry.join(username)
        assert len(registry) == 0

    def test_leave_reports_whether_anyone_left(self):
        registry = UserRegistry()
        registry.join("alice")
        assert registry.leave("alice") is True
        assert registry.leave("alice") is False
        assert registry.lookup("alice") is None

    def test_rejoin_after_leave(self):
        registry = UserRegistry()
        old = registry.join("alice")
        registry.leave("alice")
        new = registry.join("alice")
        assert new is not old
        assert old.queue.closed
        assert not new.queue.closed

    def test_lookup_missing_or_empty(self):
        registry = UserRegistry()
        assert registry.lookup("ghost") is None
        assert registry.lookup("") is None

    def test_iteration_in_join_order(self):
        registry = UserRegistry()
        for name in ("carol", "alice", "bob"):
            registry.join(name)
        assert [u.username for u in registry] == ["carol", "alice", "bob"]
        assert registry.usernames() == ["carol", "alice", "bob"]
        assert "bob" in registry

    def test_queue_size_is_configurable(self):
        registry = UserRegistry(queue_size=3)
        assert registry.join("alice").queue.capacity == 3


class TestDeliveryQueue:
    def test_put_beyond_capacity_drops_oldest(self):
        queue = DeliveryQueue("alice", capacity=3)
        for i in range(3):
            assert queue.put(_msg(i)) is None
        dropped = queue.put(_msg(3))
        assert dropped.body == "0"
        assert queue.dropped == 1
        assert [queue.get_nowait().body for _ in range(3)] == ["1", "2", "3"]
        assert queue.get_nowait() is None

    def test_redeliver_goes_to_front(self):
        queue = DeliveryQueue("alice", capacity=3)
        queue.put(_msg(1))
        queue.put(_msg(2))
        first = queue.get_nowait()
        assert queue.redeliver(first) is None
        assert queue.get_nowait() is first

    def test_drain_empties_in_order(self):
        queue = DeliveryQueue("alice", capacity=3)
        for i in range(4):
            queue.put(_msg(i))
        assert [m.body for m in queue.drain()] == ["1", "2", "3"]
        assert len(queue) == 0
        assert queue.drain() == []

    @pytest.mark.asyncio
    async def test_get_waits_for_put(self):
        queue = DeliveryQueue("alice")
        getter = asyncio.create_task(queue.get())
        await asyncio.sleep(0)
        assert not getter.done()

        queue.put(_msg(7))
        message = await asyncio.wait_for(getter, timeout=1)
        assert message.body == "7"

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_getter(self):
        queue = DeliveryQueue("alice")
        getter = asyncio.create_task(queue.get())
        await asyncio.sleep(0)

        queue.close()
        with pytest.raises(UnknownUser):
            await asyncio.wait_for(getter, timeout=1)
