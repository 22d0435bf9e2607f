from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..events import AgentResult


class AgentStatus(Enum):
  IDLE = "idle"
  THINKING = "thinking"
  TOOL_USE = "tool_use"
  STREAMING = "streaming"
  DONE = "done"
  ERROR = "error"


@dataclass
class AgentBuffer:
  agent: str
  status: AgentStatus = AgentStatus.THINKING
  text: str = ""
  tool_name: Optional[str] = None
  error: Optional[str] = None


class ResponseAggregator:
  """
  Tracks a cohort of agents dispatched together.

  Each agent writes to its own buffer; results are reported in the order the
  agents were added, whatever order they finish in. Updates for agents not in
  the cohort are ignored.
  """

  def __init__(self):
    self._buffers: Dict[str, AgentBuffer] = {}

  def create(self, agent: str) -> None:
    self._buffers[agent] = AgentBuffer(agent)

  def get(self, agent: str) -> Optional[AgentBuffer]:
    return self._buffers.get(agent)

  def status(self, agent: str) -> AgentStatus:
    buffer = self._buffers.get(agent)
    return buffer.status if buffer else AgentStatus.IDLE

  def append_delta(self, agent: str, text: str) -> None:
    if buffer := self._buffers.get(agent):
      buffer.text += text
      buffer.status = AgentStatus.STREAMING

  def add_tool_use(self, agent: str, tool_name: str) -> None:
    if buffer := self._buffers.get(agent):
      buffer.tool_name = tool_name
      buffer.status = AgentStatus.TOOL_USE

  def clear_tool_use(self, agent: str) -> None:
    buffer = self._buffers.get(agent)
    if buffer and buffer.status == AgentStatus.TOOL_USE:
      buffer.status = AgentStatus.STREAMING if buffer.text else AgentStatus.THINKING
      buffer.tool_name = None

  def restart(self, agent: str) -> None:
    """A new reply from the agent begins (e.g. a synthesis round)."""
    if buffer := self._buffers.get(agent):
      buffer.text = ""
      buffer.tool_name = None
      buffer.status = AgentStatus.THINKING

  def complete(self, agent: str, full_text: str) -> None:
    if buffer := self._buffers.get(agent):
      buffer.text = full_text
      buffer.status = AgentStatus.DONE

  def fail(self, agent: str, error: str) -> None:
    if buffer := self._buffers.get(agent):
      buffer.error = error
      buffer.status = AgentStatus.ERROR

  def all(self) -> List[AgentBuffer]:
    return list(self._buffers.values())

  def all_done(self) -> bool:
    return all(b.status in (AgentStatus.DONE, AgentStatus.ERROR) for b in self._buffers.values())

  def results(self) -> List[AgentResult]:
    return [
      AgentResult(
        agent=b.agent,
        content=b.text if b.status == AgentStatus.DONE else None,
        error=b.error,
      )
      for b in self._buffers.values()
    ]
