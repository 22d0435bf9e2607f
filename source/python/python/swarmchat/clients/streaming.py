"""
Streaming chat-completion client, one per agent.

The client owns the agent's conversation history. Each send() appends the
outgoing user message, posts the full history with `stream: true` and turns
the returned SSE frames into the reply text plus lifecycle events (delta,
tool_start, tool_end, error).

Timeout Configuration:
- timeout: bound on a whole send() call, queueing through last frame (default: 120s)
- connect_timeout: bound on the reachability probe (default: 30s)
"""

import asyncio
from typing import Callable, List, Optional

import httpx

from ..agents.identity import AgentIdentity, ConversationRole, HistoryEntry
from ..errors import ConnectError, ProtocolError, SendTimeoutError, StreamError
from ..events import AgentError, ChatEvent, Delta, ToolEnd, ToolStart
from ..logs import get_logger, InfoContext, DebugContext
from . import sse
from .tool_tracker import ToolCallState, ToolCallTracker

DEFAULT_TIMEOUT = 120.0
DEFAULT_CONNECT_TIMEOUT = 30.0

PROBE_MESSAGE = "Reply with OK"

EventCallback = Callable[[ChatEvent], None]


def _no_op(event: ChatEvent) -> None:
  pass


class StreamingClient(InfoContext, DebugContext):
  """
  Chat-completion client for a single agent identity.

  Sends for one agent are serialized: a second send() waits until the first
  has finished, so the history always alternates user/assistant in the
  order sent and received.
  """

  def __init__(
    self,
    identity: AgentIdentity,
    http_client: httpx.AsyncClient,
    token: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
  ):
    self.logger = get_logger("client")
    self.identity = identity
    self.name = identity.name
    self.timeout = timeout
    self.connect_timeout = connect_timeout
    self._http = http_client
    self._token = token
    self._connected = False
    self._send_lock = asyncio.Lock()
    self._history: List[HistoryEntry] = self._initial_history()
    self.last_tool_calls: List[ToolCallState] = []

  def _initial_history(self) -> List[HistoryEntry]:
    if self.identity.system_prompt:
      return [HistoryEntry(ConversationRole.SYSTEM, self.identity.system_prompt)]
    return []

  @property
  def is_connected(self) -> bool:
    return self._connected

  @property
  def history(self) -> List[dict]:
    """A copy of the conversation history as plain dicts."""
    return [entry.to_dict() for entry in self._history]

  def restore(self, entries: List[dict]) -> None:
    """Replace the history wholesale (session restore)."""
    self._history = [HistoryEntry.from_dict(entry) for entry in entries]

  def request_body(self, stream: bool = True) -> dict:
    return {
      "model": self.identity.model_name,
      "messages": self.history,
      "stream": stream,
    }

  def _headers(self) -> dict:
    headers = {"Content-Type": "application/json"}
    if self._token:
      headers["Authorization"] = f"Bearer {self._token}"
    return headers

  async def connect(self) -> None:
    """
    Verify the agent is reachable with a minimal non-streaming request.

    Any HTTP response below 500 counts as reachable, including auth and
    rate-limit errors.

    :raises ConnectError: On a network error, a malformed URL, a timeout, or a 5xx status
    """
    if self._connected:
      return

    body = {
      "model": self.identity.model_name,
      "messages": [{"role": "user", "content": PROBE_MESSAGE}],
      "stream": False,
      "max_tokens": 1,
    }
    try:
      response = await self._http.post(
        self.identity.completions_url,
        json=body,
        headers=self._headers(),
        timeout=self.connect_timeout,
      )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
      raise ConnectError(self.name, str(e) or type(e).__name__)

    if response.status_code >= 500:
      raise ConnectError(self.name, f"HTTP {response.status_code}: {response.text[:200]}", response.status_code)

    if response.status_code >= 400:
      self.logger.debug(f"Probe for '{self.name}' answered HTTP {response.status_code}, treating as reachable")
    self._connected = True

  async def send(self, message: str, on_event: Optional[EventCallback] = None) -> Optional[str]:
    """
    Send a message and stream back the reply.

    The timeout covers the whole call, including time spent queued behind
    another send to the same agent. A send that times out while queued
    leaves the history untouched.

    :param message: The user-role message to append and send
    :param on_event: Receives Delta, ToolStart, ToolEnd and AgentError events
    :return: The full reply text. Partial text if the stream broke midway.
      None if nothing was received (connect failure, HTTP error, empty reply).
    """
    emit = on_event or _no_op
    deadline = asyncio.get_running_loop().time() + self.timeout
    try:
      async with asyncio.timeout_at(deadline):
        await self._send_lock.acquire()
    except TimeoutError:
      failure = self._timeout_reason()
      self.logger.warning(f"Send to '{self.name}' timed out while waiting for an earlier send: {failure}")
      emit(AgentError(self.name, failure))
      return None

    try:
      return await self._send_locked(message, emit, deadline)
    finally:
      self._send_lock.release()

  def _timeout_reason(self) -> str:
    return str(SendTimeoutError(self.timeout, self.name, context={"endpoint": self.identity.endpoint}))

  async def _send_locked(self, message: str, emit: EventCallback, deadline: float) -> Optional[str]:
    self._history.append(HistoryEntry(ConversationRole.USER, message))
    body = self.request_body()
    tracker = ToolCallTracker()
    parts: List[str] = []
    failure: Optional[str] = None

    self.logger.debug(f"Sending {len(body['messages'])} messages to '{self.name}'")
    try:
      async with asyncio.timeout_at(deadline):
        await self._stream(body, tracker, parts, emit)
    except TimeoutError:
      failure = self._timeout_reason()
    except StreamError as e:
      failure = e.reason

    for call in tracker.close_all():
      emit(ToolEnd(self.name, call.name, call.id))
    self.last_tool_calls = tracker.completed

    text = "".join(parts)
    if failure is not None:
      self.logger.warning(
        f"Stream for '{self.name}' failed after {len(text)} characters: {failure}"
      )
      emit(AgentError(self.name, failure))

    if text:
      self._history.append(HistoryEntry(ConversationRole.ASSISTANT, text))
    return text or None

  async def _stream(self, body: dict, tracker: ToolCallTracker, parts: List[str], emit: EventCallback) -> None:
    try:
      async with self._http.stream(
        "POST",
        self.identity.completions_url,
        json=body,
        headers=self._headers(),
      ) as response:
        if response.status_code >= 400:
          detail = (await response.aread()).decode("utf-8", errors="replace")
          raise StreamError(self.name, f"HTTP {response.status_code}: {detail[:200]}")

        async for line in response.aiter_lines():
          data = sse.parse_line(line)
          if data is None:
            continue
          if data == sse.DONE:
            break

          try:
            frame = sse.parse_frame(data)
          except ProtocolError as e:
            self.logger.debug(f"Skipping frame from '{self.name}': {e}")
            continue

          # content closes whatever tools were open before this frame
          if frame.content:
            for call in tracker.close_all():
              emit(ToolEnd(self.name, call.name, call.id))
            parts.append(frame.content)
            emit(Delta(self.name, frame.content))

          for tool_call in frame.tool_calls:
            started = tracker.observe(tool_call)
            if started is not None:
              emit(ToolStart(self.name, started.name, started.id))

          if frame.finish_reason:
            for call in tracker.close_all():
              emit(ToolEnd(self.name, call.name, call.id))
    except (httpx.HTTPError, httpx.InvalidURL) as e:
      raise StreamError(self.name, str(e) or type(e).__name__, "".join(parts))

  def close(self) -> None:
    """Forget the history and mark the client disconnected."""
    self._connected = False
    self._history = self._initial_history()
