"""
Agent identities and their prompts.

The spawn factory lives in `swarmchat.agents.factory`; it depends on the
config package, which itself depends on the identities defined here.
"""

from .identity import AgentIdentity, ConversationRole, HistoryEntry, DEFAULT_MODEL
from .prompts import build_agent_system_prompt, build_swarm_context

__all__ = [
  "AgentIdentity",
  "ConversationRole",
  "HistoryEntry",
  "DEFAULT_MODEL",
  "build_agent_system_prompt",
  "build_swarm_context",
]
