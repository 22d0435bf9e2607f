import asyncio
import json

import pytest

from swarmchat.events import (
  EVENT_TYPES,
  AgentError,
  AgentResult,
  ConnectFailed,
  Delta,
  Done,
  End,
  EventBus,
  EventConverter,
  ParallelEnd,
  ThreadStart,
  event_from_dict,
  event_to_dict,
)


class TestEventConverter:
  def test_to_dict_carries_type_tag(self):
    assert event_to_dict(Done("alice", "hi", 2)) == {"agent": "alice", "content": "hi", "depth": 2, "type": "done"}

  def test_wire_tags(self):
    assert AgentError("a", "x").type == "error"
    assert ConnectFailed("a", "x").type == "connect_error"
    assert set(EVENT_TYPES) >= {"user_message", "delta", "tool_start", "parallel_end", "agent_spawned", "end"}

  def test_nested_results(self):
    event = ParallelEnd([AgentResult("alice", "ok"), AgentResult("bob", error="No response")])
    data = event_to_dict(event)

    assert data["results"][1] == {"agent": "bob", "content": None, "error": "No response"}
    assert event_from_dict(data) == event

  def test_from_dict_picks_class_by_tag(self):
    event = event_from_dict({"type": "thread_start", "from_agent": "m", "to_agent": "a", "message": "go", "depth": 1})
    assert event == ThreadStart("m", "a", "go", 1)

  def test_json(self):
    converter = EventConverter()
    text = converter.to_json(Delta("alice", "Hel"))
    assert json.loads(text)["type"] == "delta"
    assert converter.from_json(text) == Delta("alice", "Hel")

  @pytest.mark.parametrize("data", [{}, {"type": "nope"}])
  def test_unknown_or_missing_tag(self, data):
    with pytest.raises(ValueError):
      event_from_dict(data)


class TestEventBus:
  def test_subscribers_receive_events_in_order(self):
    bus = EventBus()
    first, second = [], []
    bus.subscribe(first.append)
    bus.subscribe(second.append)

    bus.emit(Delta("a", "1"))
    bus.emit(End())

    assert [e.type for e in first] == ["delta", "end"]
    assert first == second

  def test_unsubscribe(self):
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    bus.emit(End())

    assert received == []

  def test_failing_subscriber_does_not_stop_others(self):
    bus = EventBus()
    received = []

    def broken(event):
      raise RuntimeError("renderer crashed")

    bus.subscribe(broken)
    bus.subscribe(received.append)
    bus.emit(End())

    assert received == [End()]

  @pytest.mark.asyncio
  async def test_stream_until_end(self):
    bus = EventBus()

    async def consume():
      return [event async for event in bus.stream()]

    task = asyncio.ensure_future(consume())
    await asyncio.sleep(0)
    bus.emit(Delta("a", "x"))
    bus.emit(End())
    bus.emit(Delta("a", "late"))

    events = await task
    assert events == [Delta("a", "x"), End()]
