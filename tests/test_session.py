"""Tests for session stores and queue views."""

import json

from ga_analytics.events import CustomVariable, Event, Item, Transaction
from ga_analytics.session import (
    InMemorySession,
    RequestSession,
    SessionQueue,
    SessionValue,
    decode,
    encode,
)


class TestSessionQueue:
    def test_push_and_drain(self):
        queue = SessionQueue(InMemorySession(), "q")
        queue.push("a")
        queue.push("b")

        assert queue.drain() == ["a", "b"]
        assert queue.drain() == []

    def test_peek_does_not_drain(self):
        queue = SessionQueue(InMemorySession(), "q")
        queue.push("a")

        assert queue.peek() == ["a"]
        assert queue.peek() == ["a"]
        assert bool(queue)

    def test_empty_is_falsy(self):
        assert not SessionQueue(InMemorySession(), "q")

    def test_contains_uses_identity(self):
        queue = SessionQueue(InMemorySession(), "q")
        item = Item(order_number="1", sku="A")
        queue.push(item)

        assert item in queue
        assert Item(order_number="1", sku="A") not in queue

    def test_replace(self):
        store = InMemorySession()
        queue = SessionQueue(store, "q")
        queue.push("old")
        queue.replace(["new"])

        assert store.data["q"] == ["new"]


class TestSessionValue:
    def test_put_peek_drain(self):
        value = SessionValue(InMemorySession(), "v")
        value.put("page")

        assert value.peek() == "page"
        assert bool(value)
        assert value.drain() == "page"
        assert value.drain() is None
        assert not value


class TestCodec:
    def test_round_trip_payloads(self):
        values = [Event("a", "b", value=1), CustomVariable(1, "n", "v", 2)]

        encoded = encode(values)
        json.dumps(encoded)

        assert decode(encoded) == values

    def test_plain_values_untouched(self):
        assert encode(["/a", "/b"]) == ["/a", "/b"]
        assert decode({"plain": 1}) == {"plain": 1}


class TestRequestSession:
    def test_writes_json_safe_values(self):
        raw = {}
        store = RequestSession(raw)
        store.set("tx", Transaction(order_number="9", total=10.0))

        assert json.loads(json.dumps(raw))["tx"]["order_number"] == "9"

    def test_reads_return_live_objects(self):
        raw = {"items": [{"__ga_type__": "Item", "order_number": "1", "sku": "A"}]}
        store = RequestSession(raw)

        first = store.get("items")
        assert first is store.get("items")
        assert first[0] == Item(order_number="1", sku="A")

    def test_default_when_missing(self):
        assert RequestSession({}).get("missing", []) == []

    def test_remove(self):
        raw = {}
        store = RequestSession(raw)
        store.set("k", "v")
        store.remove("k")

        assert store.get("k") is None
        assert "k" not in raw

    def test_flush_picks_up_mutation(self):
        raw = {}
        store = RequestSession(raw)
        item = Item(order_number="1")
        store.set("items", [item])
        item.sku = "late"

        store.flush()

        assert raw["items"][0]["sku"] == "late"
