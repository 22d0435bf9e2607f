from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

DEFAULT_MODEL = "gemini-2.5-flash"


class ConversationRole(Enum):
  USER = "user"
  SYSTEM = "system"
  ASSISTANT = "assistant"


@dataclass(frozen=True)
class AgentIdentity:
  """
  One configured or dynamically spawned agent.

  Identities are immutable; the config owns them and the registry only
  references them. Use ``dataclasses.replace`` to derive an updated identity.
  """

  name: str
  label: str
  endpoint: str
  color: str = "white"
  model: Optional[str] = None
  auth_token: Optional[str] = field(default=None, repr=False)
  system_prompt: Optional[str] = field(default=None, repr=False)
  # true when system_prompt is the team-roster prompt rather than one the user wrote
  prompt_generated: bool = field(default=False, repr=False)

  @property
  def model_name(self) -> str:
    return self.model or DEFAULT_MODEL

  @property
  def completions_url(self) -> str:
    return f"{self.endpoint.rstrip('/')}/chat/completions"


@dataclass
class HistoryEntry:
  role: ConversationRole
  content: str

  def to_dict(self) -> dict:
    return {"role": self.role.value, "content": self.content}

  @classmethod
  def from_dict(cls, data: dict) -> "HistoryEntry":
    return cls(ConversationRole(data["role"]), data.get("content") or "")
