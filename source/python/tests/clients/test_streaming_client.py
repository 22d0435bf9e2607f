"""
Tests for StreamingClient: request shape, frame handling, tool-call
inference, failure modes and history.
"""

import asyncio

import httpx
import pytest

from swarmchat.agents.identity import AgentIdentity
from swarmchat.clients import StreamingClient
from swarmchat.errors import ConnectError
from mock_utils import Broken, EventRecorder, content_frame, finish_frame, make_identity, tool_frame


def make_client(server, name="alice", **kwargs) -> StreamingClient:
  identity_kwargs = {k: kwargs.pop(k) for k in ["system_prompt", "model"] if k in kwargs}
  return StreamingClient(make_identity(name, **identity_kwargs), server.client(), **kwargs)


class TestRequests:
  @pytest.mark.asyncio
  async def test_request_body_carries_full_history(self, server):
    alice = server.agent("alice", replies=["first", "second"])
    client = make_client(server, system_prompt="Be brief")

    await client.send("one")
    await client.send("two")

    body = alice.requests[1]
    assert body["model"] == "gemini-2.5-flash"
    assert body["stream"] is True
    assert body["messages"] == [
      {"role": "system", "content": "Be brief"},
      {"role": "user", "content": "one"},
      {"role": "assistant", "content": "first"},
      {"role": "user", "content": "two"},
    ]

  @pytest.mark.asyncio
  async def test_configured_model(self, server):
    alice = server.agent("alice")
    client = make_client(server, model="gpt-4o-mini")

    await client.send("hi")

    assert alice.requests[0]["model"] == "gpt-4o-mini"

  @pytest.mark.asyncio
  async def test_bearer_token(self, server):
    alice = server.agent("alice")
    client = make_client(server, token="sk-test")

    await client.send("hi")

    assert alice.headers[0]["authorization"] == "Bearer sk-test"

  @pytest.mark.asyncio
  async def test_no_token_no_authorization_header(self, server):
    alice = server.agent("alice")
    client = make_client(server)

    await client.send("hi")

    assert "authorization" not in alice.headers[0]


class TestFrames:
  @pytest.mark.asyncio
  async def test_tool_call_closed_by_content(self, server):
    """One tool call followed by two content deltas."""
    frames = [tool_frame("call_1", "search"), content_frame("Hel"), content_frame("lo"), finish_frame()]
    server.agent("alice", replies=[frames])
    client = make_client(server)
    events = EventRecorder()

    text = await client.send("hi", on_event=events)

    assert text == "Hello"
    assert events.types == ["tool_start", "tool_end", "delta", "delta"]
    assert events.events[0].tool_name == "search"
    assert events.events[1].tool_call_id == "call_1"

  @pytest.mark.asyncio
  async def test_open_tools_are_closed_at_end_of_stream(self, server):
    frames = [tool_frame("a", "one", index=0), tool_frame("b", "two", index=1), tool_frame(None, arguments="{}", index=0)]
    server.agent("alice", replies=[frames])
    client = make_client(server)
    events = EventRecorder()

    text = await client.send("hi", on_event=events)

    assert text is None
    assert events.types == ["tool_start", "tool_start", "tool_end", "tool_end"]
    assert [e.tool_call_id for e in events.of_type("tool_end")] == ["a", "b"]
    assert client.last_tool_calls[0].arguments == "{}"

  @pytest.mark.asyncio
  async def test_tool_closed_by_finish_reason(self, server):
    frames = [tool_frame("a", "one"), finish_frame("tool_calls"), content_frame("after")]
    server.agent("alice", replies=[frames])
    events = EventRecorder()

    await make_client(server).send("hi", on_event=events)

    assert events.types == ["tool_start", "tool_end", "delta"]

  @pytest.mark.asyncio
  async def test_malformed_frames_are_skipped(self, server):
    frames = ["not json", content_frame("a"), '{"choices": 5}', content_frame("b")]
    server.agent("alice", replies=[frames])

    assert await make_client(server).send("hi") == "ab"

  @pytest.mark.asyncio
  async def test_frames_after_done_are_ignored(self, server):
    body = b'data: {"choices":[{"delta":{"content":"x"}}]}\n\ndata: [DONE]\n\ndata: {"choices":[{"delta":{"content":"y"}}]}\n\n'
    server.agent("alice", replies=[httpx.Response(200, content=body)])

    assert await make_client(server).send("hi") == "x"


class TestFailures:
  @pytest.mark.asyncio
  async def test_empty_reply_is_no_answer(self, server):
    server.agent("alice", replies=[[finish_frame()]])
    client = make_client(server)

    assert await client.send("hi") is None
    assert client.history == [{"role": "user", "content": "hi"}]

  @pytest.mark.asyncio
  async def test_http_error_status(self, server):
    server.agent("alice", replies=[httpx.Response(401, text="bad key")])
    client = make_client(server)
    events = EventRecorder()

    assert await client.send("hi", on_event=events) is None
    assert events.types == ["error"]
    assert events.events[0].error == "HTTP 401: bad key"
    assert client.history == [{"role": "user", "content": "hi"}]

  @pytest.mark.asyncio
  async def test_network_failure_before_any_bytes(self, server):
    client = make_client(server, name="nowhere")
    events = EventRecorder()

    assert await client.send("hi", on_event=events) is None
    assert events.types == ["error"]
    assert client.history == [{"role": "user", "content": "hi"}]

  @pytest.mark.asyncio
  async def test_mid_stream_failure_keeps_partial_text(self, server):
    server.agent("alice", replies=[Broken([tool_frame("a", "one"), content_frame("partial ")])])
    client = make_client(server)
    events = EventRecorder()

    text = await client.send("hi", on_event=events)

    assert text == "partial "
    assert events.types == ["tool_start", "tool_end", "delta", "error"]
    assert "connection reset" in events.events[-1].error
    assert client.history[-1] == {"role": "assistant", "content": "partial "}

  @pytest.mark.asyncio
  async def test_timeout(self, server):
    server.agent("alice", delay=1.0)
    client = make_client(server, timeout=0.05)
    events = EventRecorder()

    assert await client.send("hi", on_event=events) is None
    assert "timed out after 0.05s" in events.events[-1].error

  @pytest.mark.asyncio
  async def test_timeout_covers_waiting_for_an_earlier_send(self, server):
    alice = server.agent("alice")
    client = make_client(server, timeout=0.05)
    events = EventRecorder()

    # an earlier send holds the agent past the deadline
    async with client._send_lock:
      text = await client.send("hi", on_event=events)

    assert text is None
    assert "timed out after 0.05s" in events.events[-1].error
    assert client.history == []
    assert alice.requests == []

  @pytest.mark.asyncio
  async def test_malformed_url(self, server):
    client = StreamingClient(AgentIdentity("alice", "Alice", "http://alice.test:badport/v1"), server.client())
    events = EventRecorder()

    assert await client.send("hi", on_event=events) is None
    assert events.types == ["error"]
    assert "badport" in events.events[0].error


class TestConnect:
  @pytest.mark.asyncio
  async def test_reachable(self, server):
    alice = server.agent("alice")
    client = make_client(server)

    await client.connect()
    await client.connect()

    assert client.is_connected
    assert alice.probes == 1
    assert alice.requests == []

  @pytest.mark.asyncio
  @pytest.mark.parametrize("status", [400, 401, 404, 429])
  async def test_client_errors_count_as_reachable(self, server, status):
    server.agent("alice", probe_status=status)
    client = make_client(server)

    await client.connect()

    assert client.is_connected

  @pytest.mark.asyncio
  async def test_server_error_is_unreachable(self, server):
    server.agent("alice", probe_status=503)
    client = make_client(server)

    with pytest.raises(ConnectError) as e:
      await client.connect()

    assert e.value.status_code == 503
    assert not client.is_connected

  @pytest.mark.asyncio
  async def test_network_error_is_unreachable(self, server):
    server.agent("alice", probe_error=httpx.ConnectTimeout("timed out"))

    with pytest.raises(ConnectError):
      await make_client(server).connect()

  @pytest.mark.asyncio
  async def test_malformed_url_is_unreachable(self, server):
    client = StreamingClient(AgentIdentity("alice", "Alice", "http://alice.test:badport/v1"), server.client())

    with pytest.raises(ConnectError):
      await client.connect()

    assert not client.is_connected


class TestHistory:
  @pytest.mark.asyncio
  async def test_restored_history_gives_identical_requests(self, server):
    alice = server.agent("alice", replies=["first", "second", "second"])
    original = make_client(server, system_prompt="Be brief")
    await original.send("one")
    saved = original.history

    restored = make_client(server, system_prompt="Something else")
    restored.restore(saved)

    await original.send("two")
    await restored.send("two")

    assert alice.requests[1] == alice.requests[2]

  @pytest.mark.asyncio
  async def test_history_is_a_copy(self, server):
    server.agent("alice")
    client = make_client(server)
    await client.send("hi")

    client.history.append({"role": "user", "content": "tampered"})

    assert len(client.history) == 2

  @pytest.mark.asyncio
  async def test_concurrent_sends_are_serialized(self, server):
    alice = server.agent("alice", replies=["r1", "r2"], delay=0.02)
    client = make_client(server)

    await asyncio.gather(client.send("m1"), client.send("m2"))

    roles = [m["role"] for m in alice.requests[1]["messages"]]
    assert roles == ["user", "assistant", "user"]
    assert [m["role"] for m in client.history] == ["user", "assistant", "user", "assistant"]

  @pytest.mark.asyncio
  async def test_close_resets(self, server):
    server.agent("alice")
    client = make_client(server, system_prompt="Be brief")
    await client.connect()
    await client.send("hi")

    client.close()

    assert not client.is_connected
    assert client.history == [{"role": "system", "content": "Be brief"}]
