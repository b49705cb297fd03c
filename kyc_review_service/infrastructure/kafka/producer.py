# Kafka Producer Utility
import asyncio
import logging
from typing import Any, Callable, List, Optional, Tuple

from confluent_kafka import Producer
from pydantic import BaseModel

from kyc_review_service.app.config import settings
from kyc_review_service.app.models import Submission
from kyc_review_service.app.observability import inject_trace_context_into_kafka_headers
from kyc_review_service.app.service.exceptions import ConfigurationError, KafkaProducerError
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.infrastructure.kafka.schemas import SubmissionChangedMessage

logger = logging.getLogger(__name__)

class KafkaProducerService:
    def __init__(self, bootstrap_servers: str, client_id: Optional[str] = None):
        # Idempotent delivery keeps per-submission messages in commit order across retries
        self.producer_config = {
            'bootstrap.servers': bootstrap_servers,
            'client.id': client_id or settings.SERVICE_NAME_API,
            'enable.idempotence': True,
        }
        self.producer = Producer(self.producer_config)
        self._cancelled = False
        self._poll_loop_task: Optional[asyncio.Task] = None
        logger.info(f"KafkaProducer initialized with servers: {bootstrap_servers}")

    def _delivery_report(self, err, msg):
        """ Called once for each message produced to indicate delivery result. """
        if err is not None:
            logger.error(f'Message delivery failed: Topic {msg.topic()} Key {msg.key()}: {err}')
        else:
            logger.info(f'Message delivered: Topic {msg.topic()} Key {msg.key()} Partition [{msg.partition()}] @ Offset {msg.offset()}')

    async def _poll_loop(self):
        """ Polls the producer for delivery reports. """
        while not self._cancelled:
            self.producer.poll(0) # Serve queued delivery callbacks without blocking the event loop
            await asyncio.sleep(0.1)
        logger.info("KafkaProducer poll loop stopped.")

    def produce_message(
        self,
        topic: str,
        message: BaseModel,
        key: Optional[str] = None,
        headers: Optional[List[Tuple[str, bytes]]] = None,
        callback: Optional[Callable[[Any, Any], None]] = None # err, msg
    ):
        """ Produces a Pydantic model message to a Kafka topic. """
        if self._cancelled:
            logger.warning(f"Producer is cancelled, not producing message to {topic}.")
            return

        value_json = message.model_dump_json()
        try:
            self.producer.produce(
                topic,
                value=value_json.encode('utf-8'),
                key=key.encode('utf-8') if key else None,
                headers=headers or None,
                callback=callback if callback else self._delivery_report
            )
            logger.debug(f"Message enqueued to topic {topic} (key: {key}): {value_json}")
        except BufferError as e:
            logger.error(f"Kafka producer queue full. Message to {topic} not produced. Error: {e}")
            raise KafkaProducerError(f"Kafka producer queue full for topic {topic}.") from e
        except Exception as e:
            logger.error(f"Error producing message to Kafka topic {topic}: {e}", exc_info=True)
            raise KafkaProducerError(f"Error producing message to topic {topic}: {e}") from e

    async def start_polling(self):
        if self._poll_loop_task is None or self._poll_loop_task.done():
            self._cancelled = False
            self._poll_loop_task = asyncio.create_task(self._poll_loop())
            logger.info("KafkaProducer polling started.")

    async def stop_polling(self):
        if self._poll_loop_task and not self._cancelled:
            self._cancelled = True
            try:
                await asyncio.wait_for(self._poll_loop_task, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("KafkaProducer poll loop did not stop in time.")
            self._poll_loop_task = None

    def flush(self, timeout: float = 10.0) -> int: # Return remaining messages
        """Wait for all messages in the Producer queue to be delivered. """
        remaining = self.producer.flush(timeout)
        if remaining > 0:
            logger.warning(f"{remaining} messages still in Kafka producer queue after flush timeout.")
        else:
            logger.info("All Kafka messages flushed successfully.")
        return remaining


class SubmissionChangePublisher:
    """Store subscriber publishing one SubmissionChangedMessage per commit, keyed by submission id."""

    def __init__(self, producer: KafkaProducerService, topic: Optional[str] = None):
        self.producer = producer
        self.topic = topic or settings.SUBMISSION_EVENTS_TOPIC
        self._unsubscribe: Optional[Callable[[], None]] = None

    def __call__(self, previous: Optional[Submission], current: Submission) -> None:
        message = SubmissionChangedMessage.from_commit(previous, current)
        self.producer.produce_message(
            self.topic,
            message,
            key=current.id,
            headers=inject_trace_context_into_kafka_headers(),
        )

    def attach(self, store: SubmissionStore) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = store.subscribe(self)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


_kafka_producer_instance: Optional[KafkaProducerService] = None

def get_kafka_producer() -> KafkaProducerService:
    global _kafka_producer_instance
    if _kafka_producer_instance is None:
        if not settings.KAFKA_BOOTSTRAP_SERVERS:
            logger.error("KAFKA_BOOTSTRAP_SERVERS not configured in settings. KafkaProducer cannot be initialized.")
            raise ConfigurationError("KAFKA_BOOTSTRAP_SERVERS not configured.")
        _kafka_producer_instance = KafkaProducerService(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS
        )
    return _kafka_producer_instance

async def startup_kafka_producer() -> Optional[KafkaProducerService]:
    if not settings.KAFKA_BOOTSTRAP_SERVERS:
        logger.info("KAFKA_BOOTSTRAP_SERVERS not set. Submission change feed disabled.")
        return None
    producer = get_kafka_producer()
    await producer.start_polling()
    return producer

async def shutdown_kafka_producer():
    if _kafka_producer_instance:
        logger.info("Flushing Kafka producer before shutdown...")
        _kafka_producer_instance.flush()
        await _kafka_producer_instance.stop_polling()
        logger.info("Kafka producer shutdown complete.")
    else:
        logger.info("Kafka producer was not initialized, skipping shutdown steps.")
