"""Configuration module — frozen dataclass built from YAML, env vars and CLI args."""

import argparse
import logging
import os
import re
from dataclasses import dataclass, fields

import yaml


class ConfigError(ValueError):
    """Configuration is missing a required value or holds an invalid one."""


@dataclass(frozen=True)
class Config:
    input_file: str = ""
    offset_file: str = "offset.json"
    error_file: str = "error.txt"
    brokers: tuple[str, ...] = ()
    schedule: str = ""
    publish_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def one_shot(self) -> bool:
        return not self.schedule


_ENV_VARS = {
    "input_file": "REPUSH_INPUT",
    "offset_file": "REPUSH_OFFSET_FILE",
    "error_file": "REPUSH_ERROR_FILE",
    "brokers": "REPUSH_BROKERS",
    "schedule": "REPUSH_SCHEDULE",
    "publish_timeout": "REPUSH_PUBLISH_TIMEOUT",
    "log_level": "REPUSH_LOG_LEVEL",
}


def parse_brokers(value) -> tuple[str, ...]:
    """Accept a list or a string of brokers separated by spaces or commas."""
    if isinstance(value, (list, tuple)):
        items = [str(v).strip() for v in value]
    else:
        items = re.split(r"[\s,]+", str(value))
    return tuple(item for item in items if item)


def load_yaml(path: str) -> dict:
    """Load a YAML mapping from *path*. The file must exist."""
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(Config)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown keys in {path}: {', '.join(unknown)}")
    return data


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Republish new NDJSON log lines to Kafka, resuming from a saved offset",
    )
    parser.add_argument("--config", type=str, default=None, help="YAML settings file")
    parser.add_argument("--input", dest="input_file", type=str, default=None,
                        help="Log file to read")
    parser.add_argument("--offset-file", type=str, default=None,
                        help="File holding the last processed line count")
    parser.add_argument("--error", dest="error_file", type=str, default=None,
                        help="File collecting lines that failed (strftime placeholders allowed)")
    parser.add_argument("--brokers", type=str, default=None,
                        help="Kafka brokers, separated by spaces or commas")
    parser.add_argument("--schedule", type=str, default=None,
                        help="Cron expression; run once when omitted")
    parser.add_argument("--publish-timeout", type=float, default=None)
    parser.add_argument("--log-level", type=str, default=None)
    return parser


def load_config(argv=None) -> Config:
    """Build Config from defaults <- YAML file <- env vars <- CLI args (highest priority).

    Pass argv for testability; when None, argparse reads sys.argv.
    """
    args = _build_parser().parse_args(argv)

    values: dict = {}
    config_path = args.config or os.environ.get("REPUSH_CONFIG")
    if config_path:
        values.update(load_yaml(config_path))

    for name, env_var in _ENV_VARS.items():
        if env_var in os.environ:
            values[name] = os.environ[env_var]

    for name in _ENV_VARS:
        cli_value = getattr(args, name)
        if cli_value is not None:
            values[name] = cli_value

    return _coerce(values)


def _coerce(values: dict) -> Config:
    kwargs = dict(values)
    if "brokers" in kwargs:
        kwargs["brokers"] = parse_brokers(kwargs["brokers"])
    if "publish_timeout" in kwargs:
        try:
            kwargs["publish_timeout"] = float(kwargs["publish_timeout"])
        except (TypeError, ValueError):
            raise ConfigError(f"publish_timeout must be a number, got {kwargs['publish_timeout']!r}")
    for name in ("input_file", "offset_file", "error_file", "schedule", "log_level"):
        if name in kwargs:
            kwargs[name] = "" if kwargs[name] is None else str(kwargs[name]).strip()

    config = Config(**kwargs)
    validate(config)
    return config


def validate(config: Config) -> None:
    if not config.input_file:
        raise ConfigError("an input log file is required (--input or REPUSH_INPUT)")
    if not config.brokers:
        raise ConfigError("at least one Kafka broker is required (--brokers or REPUSH_BROKERS)")
    if not config.offset_file:
        raise ConfigError("offset_file must not be empty")
    if not config.error_file:
        raise ConfigError("error_file must not be empty")
    if config.publish_timeout <= 0:
        raise ConfigError(f"publish_timeout must be positive, got {config.publish_timeout}")
    if not isinstance(logging.getLevelName(config.log_level.upper()), int):
        raise ConfigError(f"unknown log level: {config.log_level!r}")
