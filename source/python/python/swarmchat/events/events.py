import json
from dataclasses import dataclass, field
from typing import List, Optional

import cattr


class ChatEvent:
  type: str


@dataclass
class Connecting(ChatEvent):
  agent: str
  type: str = "connecting"


@dataclass
class Connected(ChatEvent):
  agent: str
  type: str = "connected"


@dataclass
class ConnectFailed(ChatEvent):
  agent: str
  error: str
  type: str = "connect_error"


@dataclass
class UserMessage(ChatEvent):
  content: str
  type: str = "user_message"


@dataclass
class Thinking(ChatEvent):
  agent: str
  type: str = "thinking"


@dataclass
class Delta(ChatEvent):
  agent: str
  content: str
  type: str = "delta"


@dataclass
class ToolStart(ChatEvent):
  agent: str
  tool_name: str
  tool_call_id: str
  type: str = "tool_start"


@dataclass
class ToolEnd(ChatEvent):
  agent: str
  tool_name: str
  tool_call_id: str
  type: str = "tool_end"


@dataclass
class Done(ChatEvent):
  agent: str
  content: str
  depth: Optional[int] = None
  type: str = "done"


@dataclass
class AgentError(ChatEvent):
  agent: str
  error: str
  type: str = "error"


@dataclass
class ThreadStart(ChatEvent):
  from_agent: str
  to_agent: str
  message: str
  depth: Optional[int] = None
  type: str = "thread_start"


@dataclass
class ThreadEnd(ChatEvent):
  from_agent: str
  to_agent: str
  depth: Optional[int] = None
  type: str = "thread_end"


@dataclass
class SynthesisStart(ChatEvent):
  agent: str
  type: str = "synthesis_start"


@dataclass
class ParallelStart(ChatEvent):
  agents: List[str]
  type: str = "parallel_start"


@dataclass
class ParallelProgress(ChatEvent):
  agent: str
  status: str
  tool_name: Optional[str] = None
  type: str = "parallel_progress"


@dataclass
class AgentResult:
  agent: str
  content: Optional[str] = None
  error: Optional[str] = None

  @property
  def ok(self) -> bool:
    return self.content is not None


@dataclass
class ParallelEnd(ChatEvent):
  results: List[AgentResult] = field(default_factory=list)
  type: str = "parallel_end"


@dataclass
class AgentSpawned(ChatEvent):
  agent: str
  label: str
  color: str
  type: str = "agent_spawned"


@dataclass
class End(ChatEvent):
  type: str = "end"


EVENT_TYPES = {
  cls.type: cls
  for cls in [
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
    AgentSpawned,
    End,
  ]
}


class EventConverter:
  """Turns events into plain dicts (for JSON sinks) and back."""

  def __init__(self):
    self.converter = cattr.Converter()

  def to_dict(self, event: ChatEvent) -> dict:
    return self.converter.unstructure(event)

  def from_dict(self, data: dict) -> ChatEvent:
    typ = data.get("type")
    if typ is None:
      raise ValueError("Missing 'type' field in event")
    event_cls = EVENT_TYPES.get(typ)
    if event_cls is None:
      raise ValueError(f"Unknown event type: {typ}")
    return self.converter.structure(data, event_cls)

  def to_json(self, event: ChatEvent) -> str:
    return json.dumps(self.to_dict(event))

  def from_json(self, data: str) -> ChatEvent:
    return self.from_dict(json.loads(data))


CONVERTER = EventConverter()


def event_to_dict(event: ChatEvent) -> dict:
  return CONVERTER.to_dict(event)


def event_from_dict(data: dict) -> ChatEvent:
  return CONVERTER.from_dict(data)
