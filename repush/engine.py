"""Tail-and-republish engine: one pass over the log file per invocation.

A pass loads the stored line count, re-reads the log from the top, publishes
every line past that count, diverts unparseable or unpublishable lines to the
failure sink, and finally stores the total number of lines scanned.

The offset counts lines *scanned*, not lines delivered: a pass where every
publish failed still advances it, and the failures live in the sink.

The whole file is read on every pass (cost grows with file size, not with the
number of new lines). If the file shrinks below the stored count, the smaller
count is stored as-is.
"""

import logging
from dataclasses import dataclass

from repush.config import Config
from repush.failure_sink import FailureSink, resolve_failure_path
from repush.offset_store import OffsetStore
from repush.publisher import Publisher, PublishError
from repush.record import ParseError, parse_record

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    start_offset: int
    end_offset: int = 0
    published: int = 0
    parse_failures: int = 0
    publish_failures: int = 0
    sink_failures: int = 0

    @property
    def new_lines(self) -> int:
        return max(self.end_offset - self.start_offset, 0)

    @property
    def failed(self) -> int:
        return self.parse_failures + self.publish_failures


class TailRepublishEngine:
    def __init__(self, log_file: str, offset_store: OffsetStore, publisher: Publisher,
                 failure_file: str):
        self._log_file = log_file
        self._offsets = offset_store
        self._publisher = publisher
        self._failure_file = failure_file

    @classmethod
    def from_config(cls, config: Config, publisher: Publisher) -> "TailRepublishEngine":
        return cls(
            log_file=config.input_file,
            offset_store=OffsetStore(config.offset_file),
            publisher=publisher,
            failure_file=config.error_file,
        )

    def run_pass(self) -> PassResult:
        """Run one pass. Setup and offset-store errors propagate; per-line errors do not."""
        start = self._offsets.load()
        result = PassResult(start_offset=start)
        logger.info("Pass started: %s from line %d", self._log_file, start)

        with open(self._log_file, "r", encoding="utf-8", errors="replace", newline="\n") as log, \
                FailureSink(resolve_failure_path(self._failure_file)) as sink:
            line_counter = 0
            for raw in log:
                line_counter += 1
                if line_counter <= start:
                    continue
                self._process_line(raw.rstrip("\r\n"), line_counter, sink, result)

            result.end_offset = line_counter
            if line_counter < start:
                logger.warning("%s has %d lines, fewer than the stored offset %d",
                               self._log_file, line_counter, start)
            try:
                self._offsets.store(line_counter)
            except OSError as e:
                logger.error("Could not store offset %d in %s: %s",
                             line_counter, self._offsets.path, e)
                raise

        logger.info(
            "Pass finished: lines %d-%d, published=%d, parse_failures=%d, publish_failures=%d",
            start, result.end_offset, result.published,
            result.parse_failures, result.publish_failures,
        )
        return result

    def _process_line(self, line: str, line_no: int, sink: FailureSink,
                      result: PassResult) -> None:
        try:
            record = parse_record(line)
        except ParseError as e:
            logger.warning("Line %d: unparseable, %s", line_no, e.reason)
            result.parse_failures += 1
            self._divert(line, sink, result)
            return

        try:
            self._publisher.publish(record.topic, record)
        except PublishError as e:
            logger.warning("Line %d: %s", line_no, e)
            result.publish_failures += 1
            self._divert(line, sink, result)
            return

        result.published += 1
        logger.info("Published line %d to topic=%s key=%s", line_no, record.topic, record.key)

    @staticmethod
    def _divert(line: str, sink: FailureSink, result: PassResult) -> None:
        if not sink.record(line):
            result.sink_failures += 1
