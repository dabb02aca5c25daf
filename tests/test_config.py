"""Tests for config module."""

import pytest
import yaml

from repush.config import Config, ConfigError, load_config, load_yaml, parse_brokers

REQUIRED = ["--input", "/var/log/app.ndjson", "--brokers", "localhost:9092"]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("REPUSH_CONFIG", "REPUSH_INPUT", "REPUSH_OFFSET_FILE", "REPUSH_ERROR_FILE",
                 "REPUSH_BROKERS", "REPUSH_SCHEDULE", "REPUSH_PUBLISH_TIMEOUT", "REPUSH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:
    def test_defaults(self):
        cfg = Config()
        assert cfg.offset_file == "offset.json"
        assert cfg.error_file == "error.txt"
        assert cfg.schedule == ""
        assert cfg.publish_timeout == 10.0
        assert cfg.log_level == "INFO"
        assert cfg.one_shot is True

    def test_frozen(self):
        cfg = Config()
        with pytest.raises(AttributeError):
            cfg.schedule = "@hourly"


class TestParseBrokers:
    def test_space_separated(self):
        assert parse_brokers("a:9092 b:9092") == ("a:9092", "b:9092")

    def test_comma_separated(self):
        assert parse_brokers("a:9092, b:9092,c:9092") == ("a:9092", "b:9092", "c:9092")

    def test_list(self):
        assert parse_brokers(["a:9092", " b:9092 "]) == ("a:9092", "b:9092")

    def test_empty(self):
        assert parse_brokers("  ") == ()


class TestLoadConfigCLI:
    def test_required_only(self):
        cfg = load_config(REQUIRED)
        assert cfg.input_file == "/var/log/app.ndjson"
        assert cfg.brokers == ("localhost:9092",)
        assert cfg.one_shot is True

    def test_all_flags(self):
        cfg = load_config(REQUIRED + [
            "--offset-file", "/data/offset.json",
            "--error", "/data/error-%Y%m%d.txt",
            "--schedule", "*/5 * * * *",
            "--publish-timeout", "2.5",
            "--log-level", "debug",
        ])
        assert cfg.offset_file == "/data/offset.json"
        assert cfg.error_file == "/data/error-%Y%m%d.txt"
        assert cfg.schedule == "*/5 * * * *"
        assert cfg.one_shot is False
        assert cfg.publish_timeout == 2.5
        assert cfg.log_level == "debug"

    def test_missing_input(self):
        with pytest.raises(ConfigError, match="input"):
            load_config(["--brokers", "localhost:9092"])

    def test_missing_brokers(self):
        with pytest.raises(ConfigError, match="broker"):
            load_config(["--input", "app.log"])

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigError):
            load_config(REQUIRED + ["--publish-timeout", "0"])

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError, match="log level"):
            load_config(REQUIRED + ["--log-level", "chatty"])


class TestLoadConfigEnv:
    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("REPUSH_INPUT", "/env/app.log")
        monkeypatch.setenv("REPUSH_BROKERS", "k1:9092 k2:9092")
        monkeypatch.setenv("REPUSH_SCHEDULE", "@every 1m")
        monkeypatch.setenv("REPUSH_PUBLISH_TIMEOUT", "4")
        cfg = load_config([])
        assert cfg.input_file == "/env/app.log"
        assert cfg.brokers == ("k1:9092", "k2:9092")
        assert cfg.schedule == "@every 1m"
        assert cfg.publish_timeout == 4.0

    def test_bad_timeout_env(self, monkeypatch):
        monkeypatch.setenv("REPUSH_PUBLISH_TIMEOUT", "soon")
        with pytest.raises(ConfigError, match="publish_timeout"):
            load_config(REQUIRED)

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("REPUSH_INPUT", "/env/app.log")
        monkeypatch.setenv("REPUSH_BROKERS", "env:9092")
        cfg = load_config(["--input", "/cli/app.log"])
        assert cfg.input_file == "/cli/app.log"
        assert cfg.brokers == ("env:9092",)


class TestLoadConfigYaml:
    def _write(self, tmp_path, data):
        path = tmp_path / "repush.yaml"
        path.write_text(yaml.dump(data))
        return str(path)

    def test_yaml_values(self, tmp_path):
        path = self._write(tmp_path, {
            "input_file": "/y/app.log",
            "brokers": ["y1:9092", "y2:9092"],
            "offset_file": "/y/offset.json",
            "publish_timeout": 7,
        })
        cfg = load_config(["--config", path])
        assert cfg.input_file == "/y/app.log"
        assert cfg.brokers == ("y1:9092", "y2:9092")
        assert cfg.offset_file == "/y/offset.json"
        assert cfg.publish_timeout == 7.0
        assert cfg.error_file == "error.txt"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = self._write(tmp_path, {"input_file": "/y/app.log", "brokers": "y:9092"})
        monkeypatch.setenv("REPUSH_CONFIG", path)
        assert load_config([]).input_file == "/y/app.log"

    def test_env_and_cli_override_yaml(self, tmp_path, monkeypatch):
        path = self._write(tmp_path, {"input_file": "/y/app.log", "brokers": "y:9092",
                                      "schedule": "@hourly"})
        monkeypatch.setenv("REPUSH_BROKERS", "env:9092")
        cfg = load_config(["--config", path, "--schedule", "@daily"])
        assert cfg.input_file == "/y/app.log"
        assert cfg.brokers == ("env:9092",)
        assert cfg.schedule == "@daily"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(["--config", str(tmp_path / "absent.yaml")] + REQUIRED)

    def test_empty_file_is_empty_mapping(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(str(path)) == {}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_yaml(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("input_file: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_yaml(str(path))

    def test_unknown_key(self, tmp_path):
        path = self._write(tmp_path, {"input": "/y/app.log"})
        with pytest.raises(ConfigError, match="unknown keys"):
            load_yaml(path)
