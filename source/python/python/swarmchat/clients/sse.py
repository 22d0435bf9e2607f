"""
Decoding of OpenAI-compatible chat-completion stream frames.

A stream is a sequence of Server-Sent-Event lines:

  data: {"choices": [{"delta": {"content": "Hel"}}]}
  data: {"choices": [{"delta": {"tool_calls": [{"index": 0, "id": "call_1", "function": {"name": "search"}}]}}]}
  data: {"choices": [{"delta": {}, "finish_reason": "stop"}]}
  data: [DONE]

Only `data:` lines matter. A frame that is not JSON, or not shaped like a
chat-completion chunk, raises ProtocolError and the caller skips it.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import ProtocolError

DONE = "[DONE]"


@dataclass
class ToolCallDelta:
  id: Optional[str] = None
  index: Optional[int] = None
  name: Optional[str] = None
  arguments: Optional[str] = None


@dataclass
class Frame:
  content: Optional[str] = None
  tool_calls: List[ToolCallDelta] = field(default_factory=list)
  finish_reason: Optional[str] = None


def parse_line(line: str) -> Optional[str]:
  """Return the payload of a `data:` line, or None for any other line."""
  if not line.startswith("data:"):
    return None
  return line[5:].strip()


def _parse_index(value) -> Optional[int]:
  if value is None or isinstance(value, bool):
    return None
  try:
    return int(value)
  except (TypeError, ValueError):
    return None


def _parse_tool_call(raw) -> Optional[ToolCallDelta]:
  if not isinstance(raw, dict):
    return None
  function = raw.get("function")
  if not isinstance(function, dict):
    function = {}
  name = function.get("name")
  arguments = function.get("arguments")
  return ToolCallDelta(
    id=raw.get("id") or None,
    index=_parse_index(raw.get("index")),
    name=name if isinstance(name, str) and name else None,
    arguments=arguments if isinstance(arguments, str) else None,
  )


def parse_frame(data: str) -> Frame:
  """
  Parse the JSON payload of one frame.

  :param data: Payload after the `data:` prefix, never `[DONE]`
  :return: The content delta, tool-call deltas and finish reason it carries
  :raises ProtocolError: If the payload is not a chat-completion chunk
  """
  try:
    chunk = json.loads(data)
  except json.JSONDecodeError as e:
    raise ProtocolError(data, f"Invalid JSON ({e.msg})")

  if not isinstance(chunk, dict):
    raise ProtocolError(data, "Frame is not a JSON object")

  choices = chunk.get("choices")
  if choices is None or choices == []:
    # usage-only and keep-alive chunks carry no choices
    return Frame()
  if not isinstance(choices, list) or not isinstance(choices[0], dict):
    raise ProtocolError(data, "Unrecognized 'choices' shape")

  choice = choices[0]
  delta = choice.get("delta") or {}
  if not isinstance(delta, dict):
    raise ProtocolError(data, "Unrecognized 'delta' shape")

  content = delta.get("content")
  if content is not None and not isinstance(content, str):
    raise ProtocolError(data, "Unrecognized 'content' shape")

  tool_calls = []
  raw_tool_calls = delta.get("tool_calls")
  if isinstance(raw_tool_calls, list):
    for raw in raw_tool_calls:
      tool_call = _parse_tool_call(raw)
      if tool_call is not None:
        tool_calls.append(tool_call)

  finish_reason = choice.get("finish_reason")
  return Frame(
    content=content or None,
    tool_calls=tool_calls,
    finish_reason=finish_reason if isinstance(finish_reason, str) else None,
  )
