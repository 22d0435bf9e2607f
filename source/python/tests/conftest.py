import pytest

from swarmchat.config import clear_token_cache
from mock_utils import FakeChatServer, EventRecorder

ENVIRONMENT = [
  "SWARMCHAT_API_KEY",
  "SWARMCHAT_API_KEY_FILE",
  "SWARMCHAT_MAX_MENTION_DEPTH",
  "SWARMCHAT_MAX_TOTAL_MENTIONS",
  "SWARMCHAT_TIMEOUT",
  "SWARMCHAT_SESSIONS_DIR",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
  for name in ENVIRONMENT:
    monkeypatch.delenv(name, raising=False)
  clear_token_cache()
  yield
  clear_token_cache()


@pytest.fixture
def server():
  return FakeChatServer()


@pytest.fixture
def recorder():
  return EventRecorder()
