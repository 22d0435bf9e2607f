"""
Session persistence.

A session is one JSON file holding everything needed to show or resume a
conversation: the event log, the agent roster and every agent's history.

Environment Variables:
  SWARMCHAT_SESSIONS_DIR=/path  - Directory for session files (default: ~/.swarmchat/sessions)
    • Files are named: {id}.json, where id is {YYYYMMDD}-{8 hex chars}
    • The directory is created on first write

File Format:
  {
    "meta": {"id": "...", "created_at": ms, "updated_at": ms, "preview": "first user message"},
    "config": {"master": "...", "agents": ["..."]},
    "events": [{"timestamp": ms, "event": {"type": "...", ...}}],
    "histories": {"agent": [{"role": "...", "content": "..."}]}
  }

The file is rewritten on milestone events only (user_message, done, end),
never per delta.
"""

import json
import os
import secrets
import time
from datetime import datetime, UTC
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..errors import SessionNotFoundError
from ..events import ChatEvent, event_to_dict
from ..logs import get_logger

MILESTONES = {"user_message", "done", "end"}
PREVIEW_LENGTH = 120

logger = get_logger("session")

HistoryProvider = Callable[[], Dict[str, List[dict]]]


def sessions_dir() -> Path:
  directory = os.environ.get("SWARMCHAT_SESSIONS_DIR")
  if directory:
    return Path(directory)
  return Path.home() / ".swarmchat" / "sessions"


def _now_ms() -> int:
  return int(time.time() * 1000)


def new_session_id() -> str:
  return f"{datetime.now(UTC).strftime('%Y%m%d')}-{secrets.token_hex(4)}"


class SessionRecorder:
  """
  Event-bus subscriber that records a session to disk.

  Pass `histories` (typically `registry.histories`) to have agent histories
  snapshotted on every write.
  """

  def __init__(
    self,
    master: str,
    agents: List[str],
    histories: Optional[HistoryProvider] = None,
    directory: Optional[Path] = None,
  ):
    self.directory = Path(directory) if directory else sessions_dir()
    self._histories = histories
    now = _now_ms()
    self.data = {
      "meta": {"id": new_session_id(), "created_at": now, "updated_at": now, "preview": ""},
      "config": {"master": master, "agents": list(agents)},
      "events": [],
      "histories": {},
    }

  @property
  def id(self) -> str:
    return self.data["meta"]["id"]

  @property
  def path(self) -> Path:
    return self.directory / f"{self.id}.json"

  def __call__(self, event: ChatEvent) -> None:
    self.append(event)

  def append(self, event: ChatEvent) -> None:
    now = _now_ms()
    record = event_to_dict(event)
    self.data["events"].append({"timestamp": now, "event": record})
    meta = self.data["meta"]
    meta["updated_at"] = now

    if record["type"] == "user_message" and not meta["preview"]:
      meta["preview"] = record["content"][:PREVIEW_LENGTH]

    if record["type"] == "agent_spawned" and record["agent"] not in self.data["config"]["agents"]:
      self.data["config"]["agents"].append(record["agent"])

    if record["type"] in MILESTONES:
      self.flush()

  def flush(self) -> None:
    """Write the session atomically (temp file + rename)."""
    if self._histories is not None:
      self.data["histories"] = self._histories()

    self.directory.mkdir(parents=True, exist_ok=True)
    tmp_path = self.path.with_name(self.path.name + ".tmp")
    tmp_path.write_text(json.dumps(self.data, indent=2), encoding="utf-8")
    os.replace(tmp_path, self.path)
    logger.debug(f"Saved session {self.id} ({len(self.data['events'])} events)")

  @property
  def histories(self) -> Dict[str, List[dict]]:
    return self.data["histories"]

  @classmethod
  def restore(
    cls,
    session_id: str,
    histories: Optional[HistoryProvider] = None,
    directory: Optional[Path] = None,
  ) -> "SessionRecorder":
    """Reopen a saved session so new events are appended to it."""
    data = load(session_id, directory)
    recorder = cls(data["config"]["master"], data["config"]["agents"], histories, directory)
    recorder.data = data
    return recorder


def load(session_id: str, directory: Optional[Path] = None) -> dict:
  path = Path(directory or sessions_dir()) / f"{session_id}.json"
  if not path.exists():
    raise SessionNotFoundError(session_id)
  return json.loads(path.read_text(encoding="utf-8"))


def list_sessions(directory: Optional[Path] = None) -> List[dict]:
  """Metadata of every saved session, most recently updated first."""
  root = Path(directory or sessions_dir())
  if not root.exists():
    return []

  metas = []
  for path in root.glob("*.json"):
    try:
      metas.append(json.loads(path.read_text(encoding="utf-8"))["meta"])
    except (OSError, ValueError, KeyError, TypeError) as e:
      logger.debug(f"Skipping unreadable session file {path.name}: {e}")

  return sorted(metas, key=lambda meta: meta.get("updated_at", 0), reverse=True)
