"""Entry point: republish new log lines once, or on a cron schedule."""

import logging
import signal
import sys
import threading

from kafka.errors import KafkaError

from repush.config import ConfigError, load_config
from repush.engine import TailRepublishEngine
from repush.offset_store import OffsetDecodeError
from repush.publisher import KafkaPublisher
from repush.scheduler import build_trigger, run_schedule

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(argv)
    except (ConfigError, OSError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1
    logging.getLogger().setLevel(config.log_level.upper())

    if not config.one_shot:
        try:
            build_trigger(config.schedule)
        except ValueError as e:
            logger.error("Invalid schedule %r: %s", config.schedule, e)
            return 1

    try:
        publisher = KafkaPublisher(config.brokers, timeout=config.publish_timeout)
    except KafkaError as e:
        logger.error("Connect to Kafka brokers %s failed: %s", ", ".join(config.brokers), e)
        return 1

    engine = TailRepublishEngine.from_config(config, publisher)
    try:
        if config.one_shot:
            try:
                engine.run_pass()
            except (OSError, OffsetDecodeError) as e:
                logger.error("Pass aborted: %s", e)
                return 1
            return 0

        shutdown_event = threading.Event()

        def handle_signal(signum, frame):
            logger.info("Received signal %d, shutting down...", signum)
            shutdown_event.set()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

        logger.info("Starting repush — file=%s, offset=%s, schedule=%s",
                    config.input_file, config.offset_file, config.schedule)
        run_schedule(engine, config.schedule, shutdown_event)
        return 0
    finally:
        publisher.close()


if __name__ == "__main__":
    sys.exit(main())
