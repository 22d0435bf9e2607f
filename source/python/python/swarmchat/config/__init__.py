from .config import (
  SwarmConfig,
  load_config,
  parse_config,
  save_config,
  config_to_dict,
  inject_system_prompts,
)
from .secrets import get_api_key, resolve_token, clear_token_cache

__all__ = [
  "SwarmConfig",
  "load_config",
  "parse_config",
  "save_config",
  "config_to_dict",
  "inject_system_prompts",
  "get_api_key",
  "resolve_token",
  "clear_token_cache",
]
