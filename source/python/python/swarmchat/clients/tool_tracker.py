"""
Tool-call lifecycle inference.

The chat-completions stream never says when a tool call has finished, so the
boundaries are inferred:

- a call starts the first time a frame references a tool-call id not seen
  before in this stream;
- every open call ends when a later frame carries ordinary content, or when
  the stream signals completion (finish_reason, [DONE], end of body or a
  failure).

Several calls may be open at once, keyed by id. Frames without an id
(argument fragments) are merged onto the open call with the same index, or
onto the most recently opened call when no index matches.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .sse import ToolCallDelta

UNKNOWN_TOOL = "unknown"


@dataclass
class ToolCallState:
  id: str
  name: str = UNKNOWN_TOOL
  arguments: str = ""
  index: Optional[int] = None

  def merge(self, delta: ToolCallDelta) -> None:
    if delta.name and self.name == UNKNOWN_TOOL:
      self.name = delta.name
    if delta.arguments:
      self.arguments += delta.arguments
    if self.index is None and delta.index is not None:
      self.index = delta.index


class ToolCallTracker:
  def __init__(self):
    self._open: Dict[str, ToolCallState] = {}
    self._seen: Set[str] = set()
    self.completed: List[ToolCallState] = []

  @property
  def active(self) -> bool:
    return bool(self._open)

  @property
  def open_calls(self) -> List[ToolCallState]:
    return list(self._open.values())

  def observe(self, delta: ToolCallDelta) -> Optional[ToolCallState]:
    """
    Fold one tool-call delta into the tracked calls.

    :return: The call state if this delta started a new call, else None
    """
    if delta.id:
      if delta.id in self._open:
        self._open[delta.id].merge(delta)
        return None
      if delta.id in self._seen:
        # late fragment for a call that was already closed
        return None
      return self._start(delta.id, delta)

    target = self._best_match(delta.index)
    if target is not None:
      target.merge(delta)
      return None

    if delta.name:
      synthetic_id = f"call_{delta.index if delta.index is not None else len(self._seen)}"
      if synthetic_id not in self._seen:
        return self._start(synthetic_id, delta)
    return None

  def close_all(self) -> List[ToolCallState]:
    """Close every open call, in the order they were opened."""
    closed = list(self._open.values())
    self._open.clear()
    self.completed.extend(closed)
    return closed

  def _start(self, call_id: str, delta: ToolCallDelta) -> ToolCallState:
    state = ToolCallState(id=call_id, index=delta.index)
    state.merge(delta)
    self._open[call_id] = state
    self._seen.add(call_id)
    return state

  def _best_match(self, index: Optional[int]) -> Optional[ToolCallState]:
    if not self._open:
      return None
    if index is not None:
      for state in self._open.values():
        if state.index == index:
          return state
    return next(reversed(self._open.values()))
