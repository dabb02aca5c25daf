"""Persists the number of log lines already scanned.

State is a small JSON document (``{"lastLine": N}``) rewritten atomically
(tmp + fsync + os.replace). A missing file means nothing has been read yet;
a file with unreadable content is an error, never silently treated as zero.
"""

import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)

OFFSET_KEY = "lastLine"


class OffsetDecodeError(ValueError):
    """The offset file exists but does not hold a usable line count."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"cannot decode offset file {path}: {reason}")
        self.path = path
        self.reason = reason


class OffsetStore:
    def __init__(self, path: str):
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> int:
        """Return the persisted line count, or 0 if the file does not exist."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            logger.info("No offset file at %s, starting from line 0", self._path)
            return 0
        except UnicodeDecodeError as e:
            raise OffsetDecodeError(self._path, str(e)) from e

        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as e:
            raise OffsetDecodeError(self._path, str(e)) from e

        if not isinstance(data, dict) or OFFSET_KEY not in data:
            raise OffsetDecodeError(self._path, f"expected an object with {OFFSET_KEY!r}")

        value = data[OFFSET_KEY]
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise OffsetDecodeError(self._path, f"{OFFSET_KEY!r} is not an integer: {value!r}")
        if value < 0:
            raise OffsetDecodeError(self._path, f"{OFFSET_KEY!r} is negative: {value}")
        return value

    def store(self, offset: int) -> None:
        """Replace the file content with *offset*. I/O errors propagate."""
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")

        directory = os.path.dirname(self._path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".offset-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({OFFSET_KEY: offset}, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.debug("Stored offset %d in %s", offset, self._path)
