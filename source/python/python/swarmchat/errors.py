"""
Exception classes for the swarm.

Every error here is local to the branch that produced it. The component that
owns the recovery policy catches it: the registry turns a ConnectError into an
unconnected agent, the streaming client turns a StreamError into partial text
or no answer, the frame loop skips a ProtocolError and the router drops a
mention that raised RoutingError.
"""

import asyncio
from typing import Optional, Dict, Any


class SwarmError(Exception):
  """Base class for all swarm errors."""


class ConnectError(SwarmError):
  """
  Raised when an agent's reachability check fails or times out.

  Attributes:
    agent_name: The agent that could not be reached
    status_code: HTTP status of the probe, if one was received
  """

  def __init__(self, agent_name: str, reason: str, status_code: Optional[int] = None):
    self.agent_name = agent_name
    self.reason = reason
    self.status_code = status_code
    super().__init__(f"Connection check failed for {agent_name}: {reason}")


class StreamError(SwarmError):
  """
  Raised when a streamed reply fails before the terminal frame.

  Attributes:
    agent_name: The agent whose stream broke
    partial_text: Text received before the failure (may be empty)
  """

  def __init__(self, agent_name: str, reason: str, partial_text: str = ""):
    self.agent_name = agent_name
    self.reason = reason
    self.partial_text = partial_text
    super().__init__(reason)


class ProtocolError(SwarmError):
  """Raised for a single frame that is not valid JSON or has an unknown shape."""

  def __init__(self, frame: str, reason: str):
    self.frame = frame
    self.reason = reason
    super().__init__(f"{reason}: {frame[:200]}")


class RoutingError(SwarmError):
  """Raised when a mention names an agent that cannot be resolved."""

  def __init__(self, agent_name: str, message: Optional[str] = None):
    self.agent_name = agent_name
    super().__init__(message or f"Unknown agent: {agent_name}")


class ConfigError(SwarmError, ValueError):
  """Raised when a swarm configuration is missing fields or malformed."""


class SessionNotFoundError(SwarmError, LookupError):
  def __init__(self, session_id: str):
    self.session_id = session_id
    super().__init__(f"Session not found: {session_id}")


class SendTimeoutError(asyncio.TimeoutError):
  """
  Raised when StreamingClient.send() exceeds its timeout.

  Provides context about what timed out and a suggestion for resolution.

  Attributes:
    method: The operation that timed out
    timeout: The timeout value in seconds
    context: Additional context about the operation
    message: Human-readable error message
  """

  def __init__(
    self,
    timeout: float,
    agent_name: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    method: str = "StreamingClient.send()",
  ):
    self.method = method
    self.timeout = timeout
    self.agent_name = agent_name
    self.context = dict(context or {})
    self.context["agent_name"] = agent_name
    self.message = self._build_message()
    super().__init__(self.message)

  def _build_message(self) -> str:
    parts = [f"{self.method} timed out after {self.timeout}s."]

    context_parts = [f"{k}: {v}" for k, v in self.context.items() if v is not None]
    if context_parts:
      parts.append(f"Context: {', '.join(context_parts)}.")

    parts.append(
      "Consider increasing the timeout or checking that the agent's endpoint is responsive."
    )
    return " ".join(parts)
