"""Decode one NDJSON log line into a routable record."""

import json
from dataclasses import dataclass, field

import jsonschema

RECORD_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["topic"],
    "properties": {
        "topic": {"type": "string", "minLength": 1},
    },
}

_validator = jsonschema.Draft202012Validator(RECORD_SCHEMA)


class ParseError(ValueError):
    """A log line could not be turned into a Record."""

    def __init__(self, line: str, reason: str):
        super().__init__(reason)
        self.line = line
        self.reason = reason


@dataclass(frozen=True)
class Record:
    topic: str
    payload: dict = field(default_factory=dict)

    @property
    def key(self) -> str | None:
        """Message key: the payload's ``message`` text, if it has one."""
        message = self.payload.get("message")
        return message if isinstance(message, str) else None


def parse_record(line: str) -> Record:
    """Parse *line* as a JSON object carrying a ``topic``.

    Raises ParseError for undecodable JSON or a missing/invalid topic.
    """
    try:
        data = json.loads(line)
    except (ValueError, RecursionError) as e:
        raise ParseError(line, f"invalid JSON: {e}") from e

    errors = list(_validator.iter_errors(data))
    if errors:
        raise ParseError(line, "; ".join(err.message for err in errors))

    return Record(topic=data["topic"], payload=data)
