import json

import pytest

from swarmchat.config import SwarmConfig, config_to_dict, load_config, parse_config, save_config
from swarmchat.errors import ConfigError
from mock_utils import make_identity


def write_config(tmp_path, data) -> str:
  path = tmp_path / "swarm.json"
  path.write_text(json.dumps(data))
  return str(path)


BASIC = {
  "agents": {
    "master": {"url": "http://localhost:8080/v1", "label": "Master", "color": "cyan"},
    "researcher": {
      "url": "http://localhost:8081/v1",
      "label": "Researcher",
      "color": "green",
      "model": "gpt-4o-mini",
      "token": "sk-secret",
    },
  },
  "master": "master",
}


class TestLoadConfig:
  def test_basic(self, tmp_path):
    config = load_config(write_config(tmp_path, BASIC))

    assert config.master == "master"
    assert list(config.agents) == ["master", "researcher"]
    researcher = config.agents["researcher"]
    assert researcher.endpoint == "http://localhost:8081/v1"
    assert researcher.model == "gpt-4o-mini"
    assert researcher.auth_token == "sk-secret"
    assert config.max_mention_depth == 5
    assert config.max_total_mentions is None
    assert config.timeout == 120.0
    assert config.config_path == (tmp_path / "swarm.json").resolve()

  def test_system_prompts_are_injected(self, tmp_path):
    config = load_config(write_config(tmp_path, BASIC))

    assert "COORDINATOR" in config.agents["master"].system_prompt
    assert "@researcher (Researcher) <- this is you" in config.agents["researcher"].system_prompt

  def test_explicit_system_prompt_is_kept(self, tmp_path):
    data = json.loads(json.dumps(BASIC))
    data["agents"]["researcher"]["systemPrompt"] = "Only facts."

    config = load_config(write_config(tmp_path, data))

    assert config.agents["researcher"].system_prompt == "Only facts."

  def test_limits_and_flags(self, tmp_path):
    data = dict(BASIC, maxMentionDepth=2, maxTotalMentions=10, timeout=30, openVocabulary=True, swarmContext=False)

    config = load_config(write_config(tmp_path, data))

    assert config.max_mention_depth == 2
    assert config.max_total_mentions == 10
    assert config.timeout == 30.0
    assert config.open_vocabulary
    assert not config.swarm_context

  def test_environment_overrides(self, tmp_path, monkeypatch):
    monkeypatch.setenv("SWARMCHAT_MAX_MENTION_DEPTH", "3")
    monkeypatch.setenv("SWARMCHAT_MAX_TOTAL_MENTIONS", "unlimited")
    monkeypatch.setenv("SWARMCHAT_TIMEOUT", "15")
    data = dict(BASIC, maxTotalMentions=10)

    config = load_config(write_config(tmp_path, data))

    assert config.max_mention_depth == 3
    assert config.max_total_mentions is None
    assert config.timeout == 15.0

  def test_bad_environment_override(self, tmp_path, monkeypatch):
    monkeypatch.setenv("SWARMCHAT_MAX_TOTAL_MENTIONS", "lots")
    with pytest.raises(ConfigError, match="SWARMCHAT_MAX_TOTAL_MENTIONS"):
      load_config(write_config(tmp_path, BASIC))

  def test_missing_file(self, tmp_path):
    with pytest.raises(ConfigError, match="not found"):
      load_config(tmp_path / "nope.json")

  def test_invalid_json(self, tmp_path):
    path = tmp_path / "swarm.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError, match="Invalid JSON"):
      load_config(path)

  @pytest.mark.parametrize(
    "data, message",
    [
      ([], "JSON object"),
      ({"master": "m"}, '"agents"'),
      ({"agents": {"m": {"label": "M"}}, "master": "m"}, '"url"'),
      ({"agents": {"m": {"url": "http://x:badport/v1", "label": "M"}}, "master": "m"}, "invalid"),
      ({"agents": {"m": {"url": "/v1", "label": "M"}}, "master": "m"}, "absolute"),
      ({"agents": {"m": {"url": "http://x", "label": "M"}}}, '"master"'),
      ({"agents": {"m": {"url": "http://x", "label": "M"}}, "master": "boss"}, "boss"),
      ({"agents": {"m": {"url": "http://x", "label": "M"}}, "master": "m", "timeout": "slow"}, '"timeout"'),
      ({"agents": {"m": {"url": "http://x", "label": "M"}}, "master": "m", "maxMentionDepth": -1}, "maxMentionDepth"),
    ],
  )
  def test_validation(self, tmp_path, data, message):
    with pytest.raises(ConfigError, match=message):
      load_config(write_config(tmp_path, data))

  def test_config_error_is_a_value_error(self):
    with pytest.raises(ValueError):
      parse_config({})


class TestSaveConfig:
  def test_round_trip_without_tokens(self, tmp_path):
    path = write_config(tmp_path, dict(BASIC, maxTotalMentions=7))
    config = load_config(path)

    save_config(config)
    saved = json.loads((tmp_path / "swarm.json").read_text())

    assert saved["master"] == "master"
    assert saved["maxTotalMentions"] == 7
    assert saved["agents"]["researcher"] == {
      "url": "http://localhost:8081/v1",
      "label": "Researcher",
      "color": "green",
      "model": "gpt-4o-mini",
    }
    assert "token" not in json.dumps(saved)
    assert not (tmp_path / "swarm.json.tmp").exists()

    reloaded = load_config(path)
    assert list(reloaded.agents) == list(config.agents)

  def test_defaults_are_omitted(self):
    config = SwarmConfig(agents={"m": make_identity("m")}, master="m")
    assert set(config_to_dict(config)) == {"agents", "master"}

  def test_without_path_is_a_no_op(self, tmp_path):
    config = SwarmConfig(agents={"m": make_identity("m")}, master="m")
    save_config(config)
    assert list(tmp_path.iterdir()) == []

  def test_written_system_prompts_survive_a_save(self, tmp_path):
    data = json.loads(json.dumps(BASIC))
    data["agents"]["master"]["systemPrompt"] = "You are a pirate."
    path = write_config(tmp_path, data)

    save_config(load_config(path))
    saved = json.loads((tmp_path / "swarm.json").read_text())
    reloaded = load_config(path)

    assert saved["agents"]["master"]["systemPrompt"] == "You are a pirate."
    assert "systemPrompt" not in saved["agents"]["researcher"]
    assert reloaded.agents["master"].system_prompt == "You are a pirate."
    assert not reloaded.agents["master"].prompt_generated
    assert reloaded.agents["researcher"].prompt_generated
