"""
Tests for dashboard cache invalidation and the reconnecting monitoring client.
"""

import asyncio
import json

import pytest

from monitoring.cache import (
    ALERTS,
    CUSTOMERS,
    INVALIDATION_RULES,
    POS_DEVICES,
    UNREAD_ALERTS,
    WATCHED_COLLECTIONS,
    QueryCache,
    QueryKey,
)
from monitoring.client import MonitoringClient
from monitoring.events import DeviceStatusChange, InitialStatus, NewAlert

BRANCHES = "/api/v1/branches"


def _filled_cache() -> QueryCache:
    cache = QueryCache()
    for collection in (POS_DEVICES, CUSTOMERS, ALERTS, UNREAD_ALERTS, BRANCHES):
        cache.set(QueryKey.of(collection), [collection])
    cache.set(QueryKey.of(CUSTOMERS, status="loss", branch_id=None), ["filtered"])
    return cache


def _status_change_wire() -> dict:
    return DeviceStatusChange(
        device_id="d", customer_id="c", device_code="POS-1", old_status="active", new_status="offline"
    ).to_wire()


class TestQueryCache:
    def test_query_key_ignores_unset_params_and_order(self):
        assert QueryKey.of(CUSTOMERS, status="loss", branch_id=None) == QueryKey.of(CUSTOMERS, status="loss")
        assert QueryKey.of(CUSTOMERS, a=1, b=2) == QueryKey.of(CUSTOMERS, b=2, a=1)

    def test_device_status_change_marks_devices_and_customers_stale(self):
        cache = _filled_cache()
        touched = cache.apply_event(_status_change_wire())

        assert touched == {POS_DEVICES, CUSTOMERS}
        assert cache.is_stale(QueryKey.of(POS_DEVICES))
        assert cache.is_stale(QueryKey.of(CUSTOMERS))
        assert cache.is_stale(QueryKey.of(CUSTOMERS, status="loss"))
        assert not cache.is_stale(QueryKey.of(ALERTS))
        assert not cache.is_stale(QueryKey.of(BRANCHES))

    def test_new_alert_marks_alert_lists_stale(self):
        cache = _filled_cache()
        cache.apply_event(NewAlert(alert={"id": "a"}).to_wire())
        assert cache.is_stale(QueryKey.of(ALERTS))
        assert cache.is_stale(QueryKey.of(UNREAD_ALERTS))
        assert not cache.is_stale(QueryKey.of(POS_DEVICES))

    def test_initial_status_and_unknown_types_touch_nothing(self):
        cache = _filled_cache()
        assert cache.apply_event(InitialStatus().to_wire()) == frozenset()
        assert cache.apply_event({"type": "something_else"}) == frozenset()
        assert not any(cache.is_stale(QueryKey.of(c)) for c in WATCHED_COLLECTIONS)

    def test_watched_collections(self):
        assert WATCHED_COLLECTIONS == {POS_DEVICES, CUSTOMERS, ALERTS, UNREAD_ALERTS}
        assert INVALIDATION_RULES["initial_status"] == frozenset()

    @pytest.mark.asyncio
    async def test_stale_entry_is_refetched_once(self):
        cache = QueryCache()
        calls = []

        async def fetch():
            calls.append(1)
            return len(calls)

        key = QueryKey.of(POS_DEVICES)
        assert await cache.get(key, fetch) == 1
        assert await cache.get(key, fetch) == 1
        cache.apply_event(_status_change_wire())
        assert await cache.get(key, fetch) == 2
        assert await cache.get(key, fetch) == 2
        assert len(calls) == 2


class FakeConnection:
    def __init__(self, messages):
        self.messages = list(messages)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.messages:
            raise StopAsyncIteration
        return self.messages.pop(0)


class TestMonitoringClient:
    def test_handle_message_counts_and_invalidates(self):
        cache = _filled_cache()
        seen = []
        client = MonitoringClient("ws://test/ws/monitoring", cache, on_event=seen.append)

        client.handle_message(json.dumps(_status_change_wire()))
        client.handle_message(json.dumps(NewAlert(alert={"id": "a", "priority": "high", "title": "Down"}).to_wire()))
        client.handle_message("not json")

        assert client.device_updates == 1
        assert client.alert_count == 1
        assert [m["type"] for m in seen] == ["device_status_change", "new_alert"]
        assert client.last_message["type"] == "new_alert"
        assert cache.is_stale(QueryKey.of(POS_DEVICES))
        assert cache.is_stale(QueryKey.of(UNREAD_ALERTS))

    @pytest.mark.asyncio
    async def test_reconnects_after_drop_and_refreshes_cache(self):
        cache = _filled_cache()
        attempts = []
        client = None

        def connect(url):
            attempts.append(url)
            if len(attempts) == 1:
                # First connection drops right after the welcome message
                return FakeConnection([json.dumps(InitialStatus().to_wire())])
            if len(attempts) == 2:
                raise OSError("connection refused")
            client.stop()
            return FakeConnection([json.dumps(_status_change_wire())])

        client = MonitoringClient("ws://test/ws/monitoring", cache, reconnect_delay=0.01, connect=connect)
        await asyncio.wait_for(client.run(), timeout=2)

        assert client.connect_attempts == 3
        assert client.device_updates == 1
        assert client.is_connected is False
        # Every reconnect marks the watched collections stale
        assert all(cache.is_stale(QueryKey.of(c)) for c in WATCHED_COLLECTIONS)
        assert not cache.is_stale(QueryKey.of(BRANCHES))

    @pytest.mark.asyncio
    async def test_stop_interrupts_reconnect_wait(self):
        def connect(url):
            raise OSError("down")

        client = MonitoringClient("ws://test/ws/monitoring", reconnect_delay=60, connect=connect)
        task = asyncio.create_task(client.run())
        await asyncio.sleep(0.05)
        client.stop()
        await asyncio.wait_for(task, timeout=1)
        assert client.connect_attempts == 1
