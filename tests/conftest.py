"""Shared pytest fixtures for the repush test suite."""

from __future__ import annotations

import pytest

from repush.engine import TailRepublishEngine
from repush.offset_store import OffsetStore
from repush.publisher import Publisher
from tests.fakes import RecordingPublisher


@pytest.fixture()
def paths(tmp_path):
    return {
        "log": tmp_path / "app.log",
        "offset": tmp_path / "state" / "offset.json",
        "errors": tmp_path / "error.txt",
    }


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def make_engine(paths):
    def _make(publisher: Publisher) -> TailRepublishEngine:
        return TailRepublishEngine(
            log_file=str(paths["log"]),
            offset_store=OffsetStore(str(paths["offset"])),
            publisher=publisher,
            failure_file=str(paths["errors"]),
        )
    return _make
