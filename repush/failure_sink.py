"""Append-only side file for lines that could not be parsed or published."""

import logging
import os
from datetime import datetime

logger = logging.getLogger(__name__)


def resolve_failure_path(template: str, now: datetime | None = None) -> str:
    """Expand strftime placeholders, e.g. ``error-%Y%m%d.txt``."""
    if "%" not in template:
        return template
    return (now or datetime.now()).strftime(template)


class FailureSink:
    """Writes raw lines verbatim, one per line, never truncating the file.

    Opening is strict (an OSError propagates); writing is lenient, since a
    lost audit entry must not stop the pass.
    """

    def __init__(self, path: str):
        self._path = path
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._file = open(path, "a", encoding="utf-8")
        self._written = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def written(self) -> int:
        return self._written

    def record(self, raw_line: str) -> bool:
        """Append *raw_line*. Returns False (and logs) if the write failed."""
        if self._file is None:
            logger.error("Failure sink %s is closed, dropping line: %s", self._path, raw_line[:200])
            return False
        try:
            self._file.write(raw_line + "\n")
            self._file.flush()
        except OSError as e:
            logger.error("Write to failure sink %s failed: %s", self._path, e)
            return False
        self._written += 1
        return True

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
