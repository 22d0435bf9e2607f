from .session import SessionRecorder, load, list_sessions, sessions_dir, new_session_id

__all__ = [
  "SessionRecorder",
  "load",
  "list_sessions",
  "sessions_dir",
  "new_session_id",
]
