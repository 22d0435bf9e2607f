from .events import (
  ChatEvent,
  Connecting,
  Connected,
  ConnectFailed,
  UserMessage,
  Thinking,
  Delta,
  ToolStart,
  ToolEnd,
  Done,
  AgentError,
  ThreadStart,
  ThreadEnd,
  SynthesisStart,
  ParallelStart,
  ParallelProgress,
  ParallelEnd,
  AgentResult,
  AgentSpawned,
  End,
  EVENT_TYPES,
  EventConverter,
  event_to_dict,
  event_from_dict,
)
from .bus import EventBus, Subscriber

__all__ = [
  "ChatEvent",
  "Connecting",
  "Connected",
  "ConnectFailed",
  "UserMessage",
  "Thinking",
  "Delta",
  "ToolStart",
  "ToolEnd",
  "Done",
  "AgentError",
  "ThreadStart",
  "ThreadEnd",
  "SynthesisStart",
  "ParallelStart",
  "ParallelProgress",
  "ParallelEnd",
  "AgentResult",
  "AgentSpawned",
  "End",
  "EVENT_TYPES",
  "EventConverter",
  "event_to_dict",
  "event_from_dict",
  "EventBus",
  "Subscriber",
]
