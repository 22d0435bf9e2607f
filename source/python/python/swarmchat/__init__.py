from .logs import set_log_level, set_log_levels, get_logger, InfoContext, DebugContext
from .errors import (
  SwarmError,
  ConnectError,
  StreamError,
  ProtocolError,
  RoutingError,
  ConfigError,
  SendTimeoutError,
  SessionNotFoundError,
)
from .agents import AgentIdentity, HistoryEntry, ConversationRole
from .agents.factory import AgentFactory
from .config import SwarmConfig, load_config, save_config, parse_config
from .events import ChatEvent, EventBus, event_to_dict, event_from_dict
from .clients import ConnectionRegistry, StreamingClient, create_http_client
from .routing import Router, TurnResult, MentionExtractor, Mention, ResponseAggregator
from .sessions import SessionRecorder, list_sessions

__all__ = [
  "set_log_level",
  "set_log_levels",
  "get_logger",
  "InfoContext",
  "DebugContext",
  "SwarmError",
  "ConnectError",
  "StreamError",
  "ProtocolError",
  "RoutingError",
  "ConfigError",
  "SendTimeoutError",
  "SessionNotFoundError",
  "AgentIdentity",
  "HistoryEntry",
  "ConversationRole",
  "AgentFactory",
  "SwarmConfig",
  "load_config",
  "save_config",
  "parse_config",
  "ChatEvent",
  "EventBus",
  "event_to_dict",
  "event_from_dict",
  "ConnectionRegistry",
  "StreamingClient",
  "create_http_client",
  "Router",
  "TurnResult",
  "MentionExtractor",
  "Mention",
  "ResponseAggregator",
  "SessionRecorder",
  "list_sessions",
]
