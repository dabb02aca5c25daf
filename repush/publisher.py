"""Message-bus gateway: a narrow publish interface and its Kafka implementation."""

import abc
import json
import logging
import random

from kafka import KafkaProducer
from kafka.errors import KafkaError

from repush.record import Record

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """The bus did not acknowledge a record."""

    def __init__(self, topic: str, reason: str):
        super().__init__(f"publish to {topic!r} failed: {reason}")
        self.topic = topic
        self.reason = reason


class Publisher(abc.ABC):
    """Synchronous publish: returns once the bus acknowledged, else raises PublishError."""

    @abc.abstractmethod
    def publish(self, topic: str, record: Record) -> None:
        ...

    def close(self) -> None:
        """Release the underlying connection. Default is a no-op."""


def _random_partitioner(key_bytes, all_partitions, available_partitions):
    return random.choice(available_partitions or all_partitions)


def _serialize_key(key: str | None) -> bytes | None:
    return key.encode("utf-8") if key is not None else None


def _serialize_value(payload: dict) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class KafkaPublisher(Publisher):
    """Publishes records with kafka-python, waiting for all in-sync replicas.

    Constructing it without *producer* connects to *brokers* and raises the
    producer's KafkaError (e.g. NoBrokersAvailable) if none is reachable.
    """

    def __init__(self, brokers: list[str] | tuple[str, ...], timeout: float = 10.0,
                 producer: KafkaProducer | None = None):
        self._timeout = timeout
        if producer is None:
            producer = KafkaProducer(
                bootstrap_servers=list(brokers),
                acks="all",
                partitioner=_random_partitioner,
                key_serializer=_serialize_key,
                value_serializer=_serialize_value,
            )
            logger.info("Connected to Kafka brokers %s", ", ".join(brokers))
        self._producer = producer

    def publish(self, topic: str, record: Record) -> None:
        try:
            future = self._producer.send(topic, key=record.key, value=record.payload)
            metadata = future.get(timeout=self._timeout)
        except KafkaError as e:
            raise PublishError(topic, str(e) or type(e).__name__) from e
        logger.debug("Acked by %s partition=%s offset=%s",
                     metadata.topic, metadata.partition, metadata.offset)

    def close(self) -> None:
        try:
            self._producer.flush(timeout=self._timeout)
        except KafkaError as e:
            logger.warning("Flush before close failed: %s", e)
        try:
            self._producer.close(timeout=self._timeout)
        except KafkaError as e:
            logger.warning("Kafka producer close failed: %s", e)
            return
        logger.info("Kafka producer closed")
