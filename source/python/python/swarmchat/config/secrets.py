"""
Bearer token resolution for agent endpoints.

Token Resolution Order:
1. The token configured on the AgentIdentity itself
2. SWARMCHAT_<AGENT>_API_KEY env var (agent name upper-cased, "-" becomes "_")
3. SWARMCHAT_API_KEY env var (shared by all agents)
4. SWARMCHAT_API_KEY_FILE env var (path to a file holding the token)

File-based tokens are cached and re-read every few minutes so a rotated
secret is picked up without a restart. No token at all means requests are sent
without an Authorization header.
"""

import os
import re
import time
from typing import Optional

from ..agents.identity import AgentIdentity
from ..logs import get_logger

logger = get_logger("config")

_FILE_CACHE_TTL_SECONDS = 300  # 5 minutes

_token_file_cache: dict = {
  "token": None,
  "read_at": 0.0,
  "file_path": None,
}


def agent_env_var(agent_name: str) -> str:
  return f"SWARMCHAT_{re.sub(r'[^A-Za-z0-9]', '_', agent_name).upper()}_API_KEY"


def _read_token_from_file(file_path: str, force_refresh: bool = False) -> Optional[str]:
  """
  Read token from file, using cache to avoid excessive file I/O.

  :param file_path: Path to the token file
  :param force_refresh: If True, bypass cache and read from file
  :return: Token string or None if read fails
  """
  now = time.time()

  if not force_refresh:
    if (
      _token_file_cache["token"] is not None
      and _token_file_cache["file_path"] == file_path
      and (now - _token_file_cache["read_at"]) < _FILE_CACHE_TTL_SECONDS
    ):
      return _token_file_cache["token"]

  try:
    with open(file_path, "r") as f:
      token = f.read().strip()
  except FileNotFoundError:
    logger.warning(f"Token file not found: {file_path}")
    return None
  except PermissionError:
    logger.warning(f"Permission denied reading token file: {file_path}")
    return None
  except (IOError, OSError) as e:
    logger.warning(f"Failed to read token from {file_path}: {e}")
    return None

  if not token:
    logger.warning(f"Token file is empty: {file_path}")
    return None

  _token_file_cache["token"] = token
  _token_file_cache["read_at"] = now
  _token_file_cache["file_path"] = file_path
  logger.debug(f"Read token from file: {file_path}")
  return token


def get_api_key(agent_name: Optional[str] = None) -> Optional[str]:
  """
  Get the API key from the environment or a token file.

  :param agent_name: Agent whose dedicated variable is checked first
  :return: The token, or None when nothing is configured
  """
  if agent_name:
    if api_key := os.environ.get(agent_env_var(agent_name)):
      return api_key

  if api_key := os.environ.get("SWARMCHAT_API_KEY"):
    return api_key

  if key_file := os.environ.get("SWARMCHAT_API_KEY_FILE"):
    return _read_token_from_file(key_file)

  return None


def resolve_token(identity: AgentIdentity) -> Optional[str]:
  """Token for an identity: its own, else whatever the environment provides."""
  return identity.auth_token or get_api_key(identity.name)


def clear_token_cache() -> None:
  """
  Clear the token file cache.

  Forces the next call to get_api_key() to re-read the token file.
  """
  _token_file_cache["token"] = None
  _token_file_cache["read_at"] = 0.0
  _token_file_cache["file_path"] = None
