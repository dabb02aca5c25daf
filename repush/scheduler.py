"""Recurring passes on an APScheduler background scheduler.

Schedule expressions follow the cron flavour operators already use with the
tool: 5-field crontab, 6-field crontab with leading seconds, ``@hourly``-style
descriptors, and ``@every <duration>`` with Go-style durations (``1h30m``).
"""

import logging
import re
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from repush.offset_store import OffsetDecodeError

logger = logging.getLogger(__name__)

_DESCRIPTORS = {
    "@yearly": {"month": 1, "day": 1, "hour": 0, "minute": 0, "second": 0},
    "@annually": {"month": 1, "day": 1, "hour": 0, "minute": 0, "second": 0},
    "@monthly": {"day": 1, "hour": 0, "minute": 0, "second": 0},
    "@weekly": {"day_of_week": "sun", "hour": 0, "minute": 0, "second": 0},
    "@daily": {"hour": 0, "minute": 0, "second": 0},
    "@midnight": {"hour": 0, "minute": 0, "second": 0},
    "@hourly": {"minute": 0, "second": 0},
}

_UNIT_SECONDS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|us|µs|ns|h|m|s)")


def parse_duration(text: str) -> float:
    """Parse a Go-style duration such as ``90s`` or ``1h15m`` into seconds."""
    text = text.strip()
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if not text or pos != len(text):
        raise ValueError(f"invalid duration: {text!r}")
    if total <= 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return total


def build_trigger(expression: str):
    """Translate a schedule expression into an APScheduler trigger."""
    expression = expression.strip()
    if not expression:
        raise ValueError("empty schedule expression")

    if expression.startswith("@every"):
        return IntervalTrigger(seconds=parse_duration(expression[len("@every"):]))

    if expression.startswith("@"):
        try:
            return CronTrigger(**_DESCRIPTORS[expression])
        except KeyError:
            raise ValueError(f"unknown schedule descriptor: {expression}") from None

    parts = ["*" if p == "?" else p for p in expression.split()]
    if len(parts) == 5:
        return CronTrigger.from_crontab(" ".join(parts))
    if len(parts) == 6:
        second, minute, hour, day, month, day_of_week = parts
        return CronTrigger(second=second, minute=minute, hour=hour, day=day,
                           month=month, day_of_week=day_of_week)
    raise ValueError(f"schedule needs 5 or 6 fields, got {len(parts)}: {expression!r}")


def _run_pass_logged(engine) -> None:
    """Run one pass; a fatal pass error is reported and the next tick retries."""
    try:
        engine.run_pass()
    except (OSError, OffsetDecodeError) as e:
        logger.error("Pass aborted: %s", e)


def run_schedule(engine, expression: str, shutdown_event: threading.Event,
                 scheduler: BackgroundScheduler | None = None) -> None:
    """Run passes on *expression* until *shutdown_event* is set.

    Passes never overlap: a tick that fires while a pass is running is
    skipped. Shutdown waits for an in-flight pass to finish.
    """
    trigger = build_trigger(expression)
    if scheduler is None:
        scheduler = BackgroundScheduler()
    scheduler.add_job(
        _run_pass_logged,
        trigger,
        args=[engine],
        id="repush-pass",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Scheduled passes with %r", expression)

    try:
        while not shutdown_event.is_set():
            shutdown_event.wait(1.0)
    finally:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")
