from .http import create_http_client
from .registry import ConnectionRegistry
from .sse import Frame, ToolCallDelta, parse_frame, parse_line
from .streaming import StreamingClient
from .tool_tracker import ToolCallState, ToolCallTracker

__all__ = [
  "create_http_client",
  "ConnectionRegistry",
  "Frame",
  "ToolCallDelta",
  "parse_frame",
  "parse_line",
  "StreamingClient",
  "ToolCallState",
  "ToolCallTracker",
]
