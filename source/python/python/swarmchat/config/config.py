"""
Swarm configuration.

A swarm is described by a JSON file:

  {
    "agents": {
      "master": {"url": "http://localhost:8080/v1", "label": "Master", "color": "cyan"},
      "researcher": {"url": "...", "label": "Researcher", "color": "green", "model": "gpt-4o-mini"}
    },
    "master": "master",
    "maxMentionDepth": 5,
    "maxTotalMentions": 20,
    "timeout": 120,
    "connectTimeout": 30,
    "sessionPrefix": "swarmchat",
    "openVocabulary": false,
    "swarmContext": true
  }

Environment Variables (override the file when set):
- SWARMCHAT_MAX_MENTION_DEPTH
- SWARMCHAT_MAX_TOTAL_MENTIONS ("unlimited" or an integer)
- SWARMCHAT_TIMEOUT (seconds)
"""

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional

import httpx

from ..agents.identity import AgentIdentity
from ..agents.prompts import build_agent_system_prompt
from ..errors import ConfigError
from ..logs import get_logger

logger = get_logger("config")

DEFAULT_MAX_MENTION_DEPTH = 5
DEFAULT_TIMEOUT = 120.0
DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_SESSION_PREFIX = "swarmchat"


@dataclass
class SwarmConfig:
  agents: Dict[str, AgentIdentity]
  master: str
  max_mention_depth: int = DEFAULT_MAX_MENTION_DEPTH
  max_total_mentions: Optional[int] = None
  timeout: float = DEFAULT_TIMEOUT
  connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
  session_prefix: str = DEFAULT_SESSION_PREFIX
  open_vocabulary: bool = False
  swarm_context: bool = True
  config_path: Optional[Path] = field(default=None, compare=False)

  def __post_init__(self):
    if self.master not in self.agents:
      raise ConfigError(f'Master agent "{self.master}" not found in agents')
    if self.max_mention_depth < 0:
      raise ConfigError("maxMentionDepth must not be negative")
    if self.max_total_mentions is not None and self.max_total_mentions < 0:
      raise ConfigError("maxTotalMentions must not be negative")
    if self.timeout <= 0:
      raise ConfigError("timeout must be positive")

  @property
  def coordinator(self) -> AgentIdentity:
    return self.agents[self.master]


def inject_system_prompts(config: SwarmConfig) -> None:
  """Give every agent without a system prompt the team-roster prompt."""
  for name, identity in list(config.agents.items()):
    if identity.system_prompt:
      continue
    prompt = build_agent_system_prompt(name, config.agents, config.master)
    config.agents[name] = replace(identity, system_prompt=prompt, prompt_generated=True)


def _require_str(data: dict, key: str, where: str) -> str:
  value = data.get(key)
  if not value or not isinstance(value, str):
    raise ConfigError(f'{where} must have a "{key}" string')
  return value


def _require_url(data: dict, where: str) -> str:
  value = _require_str(data, "url", where)
  try:
    url = httpx.URL(value)
  except httpx.InvalidURL as e:
    raise ConfigError(f'{where} has an invalid "url" {value!r}: {e}')
  if url.scheme not in ("http", "https") or not url.host:
    raise ConfigError(f'{where} "url" must be an absolute http(s) URL, got {value!r}')
  return value


def _optional_number(data: dict, key: str, default, cast):
  value = data.get(key, default)
  if value is None:
    return None
  if isinstance(value, bool) or not isinstance(value, (int, float)):
    raise ConfigError(f'"{key}" must be a number')
  return cast(value)


def _parse_mention_cap(value: str) -> Optional[int]:
  if value.strip().lower() in ("", "unlimited", "none"):
    return None
  try:
    return int(value)
  except ValueError:
    raise ConfigError(f"SWARMCHAT_MAX_TOTAL_MENTIONS must be an integer or 'unlimited', got {value!r}")


def _apply_environment(settings: dict) -> None:
  try:
    if depth := os.environ.get("SWARMCHAT_MAX_MENTION_DEPTH"):
      settings["max_mention_depth"] = int(depth)
    if timeout := os.environ.get("SWARMCHAT_TIMEOUT"):
      settings["timeout"] = float(timeout)
  except ValueError as e:
    raise ConfigError(f"Invalid numeric environment override: {e}")
  if (cap := os.environ.get("SWARMCHAT_MAX_TOTAL_MENTIONS")) is not None:
    settings["max_total_mentions"] = _parse_mention_cap(cap)


def parse_config(data: dict, config_path: Optional[Path] = None) -> SwarmConfig:
  agents_data = data.get("agents")
  if not agents_data or not isinstance(agents_data, dict):
    raise ConfigError('Config must have an "agents" object')

  agents: Dict[str, AgentIdentity] = {}
  for name, entry in agents_data.items():
    if not isinstance(entry, dict):
      raise ConfigError(f'Agent "{name}" must be an object')
    where = f'Agent "{name}"'
    agents[name] = AgentIdentity(
      name=name,
      label=_require_str(entry, "label", where),
      endpoint=_require_url(entry, where),
      color=entry.get("color") or "white",
      model=entry.get("model"),
      auth_token=entry.get("token"),
      system_prompt=entry.get("systemPrompt"),
    )

  master = data.get("master")
  if not master or not isinstance(master, str):
    raise ConfigError('Config must have a "master" string')

  settings = {
    "max_mention_depth": _optional_number(data, "maxMentionDepth", DEFAULT_MAX_MENTION_DEPTH, int),
    "max_total_mentions": _optional_number(data, "maxTotalMentions", None, int),
    "timeout": _optional_number(data, "timeout", DEFAULT_TIMEOUT, float),
    "connect_timeout": _optional_number(data, "connectTimeout", DEFAULT_CONNECT_TIMEOUT, float),
    "session_prefix": data.get("sessionPrefix") or DEFAULT_SESSION_PREFIX,
    "open_vocabulary": bool(data.get("openVocabulary", False)),
    "swarm_context": bool(data.get("swarmContext", True)),
  }
  _apply_environment(settings)

  config = SwarmConfig(agents=agents, master=master, config_path=config_path, **settings)
  inject_system_prompts(config)
  return config


def load_config(path: str | Path) -> SwarmConfig:
  """Load and validate a swarm config file."""
  abs_path = Path(path).expanduser().resolve()
  try:
    raw = abs_path.read_text(encoding="utf-8")
  except FileNotFoundError:
    raise ConfigError(f"Config file not found: {abs_path}")

  try:
    data = json.loads(raw)
  except json.JSONDecodeError as e:
    raise ConfigError(f"Invalid JSON in config file {abs_path}: {e}")
  if not isinstance(data, dict):
    raise ConfigError(f"Config file {abs_path} must contain a JSON object")

  config = parse_config(data, config_path=abs_path)
  logger.info(f"Loaded {len(config.agents)} agents from {abs_path} (master: {config.master})")
  return config


def config_to_dict(config: SwarmConfig) -> dict:
  """
  Serialize a config for saving.

  Tokens are never written, and neither are generated roster prompts; a
  prompt the user wrote is kept.
  """
  out = {"agents": {}, "master": config.master}
  for name, identity in config.agents.items():
    entry = {"url": identity.endpoint, "label": identity.label, "color": identity.color}
    if identity.model:
      entry["model"] = identity.model
    if identity.system_prompt and not identity.prompt_generated:
      entry["systemPrompt"] = identity.system_prompt
    out["agents"][name] = entry

  if config.max_mention_depth != DEFAULT_MAX_MENTION_DEPTH:
    out["maxMentionDepth"] = config.max_mention_depth
  if config.max_total_mentions is not None:
    out["maxTotalMentions"] = config.max_total_mentions
  if config.timeout != DEFAULT_TIMEOUT:
    out["timeout"] = config.timeout
  if config.connect_timeout != DEFAULT_CONNECT_TIMEOUT:
    out["connectTimeout"] = config.connect_timeout
  if config.session_prefix != DEFAULT_SESSION_PREFIX:
    out["sessionPrefix"] = config.session_prefix
  if config.open_vocabulary:
    out["openVocabulary"] = True
  if not config.swarm_context:
    out["swarmContext"] = False
  return out


def save_config(config: SwarmConfig) -> None:
  """Write the config back to its file (temp file + rename)."""
  if config.config_path is None:
    return

  path = Path(config.config_path)
  tmp_path = path.with_name(path.name + ".tmp")
  tmp_path.write_text(json.dumps(config_to_dict(config), indent=2) + "\n", encoding="utf-8")
  os.replace(tmp_path, path)
  logger.debug(f"Saved config with {len(config.agents)} agents to {path}")
