"""
Redis Streams consumer that drains the tourism topics into the database.

CONSUMPTION MODEL
=================

  XREADGROUP GROUP tourism-data-consumer <consumer> STREAMS tourism:<topic>... >

  - One consumer group across all topic streams, created on start
    (MKSTREAM, so the consumer can start before the producer)
  - Each message runs in its own transaction: commit on success,
    rollback on error
  - Every message is XACKed after handling, stored, skipped or failed.
    A malformed row is logged and dropped rather than redelivered forever.

Run with:  python -m greenlake.ingest.consumer
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import ResponseError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from greenlake.core.config import get_settings
from greenlake.core.logging import get_logger, setup_logging
from greenlake.core.metrics import record_ingest
from greenlake.db.session import AsyncSessionLocal
from greenlake.ingest import topics
from greenlake.ingest.handlers import HANDLERS, SKIPPED, STORED, EntityMap
from greenlake.services.cache_service import invalidate_hotel_cache

logger = get_logger(__name__)
settings = get_settings()


class IngestConsumer:

    def __init__(
        self,
        client: redis.Redis,
        session_factory: async_sessionmaker[AsyncSession],
        group: Optional[str] = None,
        consumer_name: Optional[str] = None,
    ):
        self.client = client
        self.session_factory = session_factory
        self.group = group or settings.INGEST_CONSUMER_GROUP
        self.consumer_name = consumer_name or settings.INGEST_CONSUMER_NAME
        self.entities = EntityMap()
        self.streams = {topics.stream_name(topic): ">" for topic in topics.ALL_TOPICS}
        self._running = False

    async def setup(self) -> None:
        for stream in self.streams:
            try:
                await self.client.xgroup_create(stream, self.group, id="0", mkstream=True)
                logger.info("consumer_group_created", stream=stream, group=self.group)
            except ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

        async with self.session_factory() as session:
            await self.entities.load(session)

    async def handle_message(self, topic: str, fields: Dict[str, Any]) -> str:
        """Store one message. Returns the outcome: stored, skipped or error."""
        handler = HANDLERS.get(topic)
        if handler is None:
            logger.warning("ingest_unknown_topic", topic=topic)
            record_ingest(topic, SKIPPED)
            return SKIPPED

        async with self.session_factory() as session:
            try:
                data = json.loads(fields["value"])
                outcome = await handler(session, self.entities, data)
                await session.commit()
            except Exception as e:
                await session.rollback()
                self.entities.reset()
                logger.error("ingest_message_failed", topic=topic, error=str(e))
                record_ingest(topic, "error")
                return "error"

        record_ingest(topic, outcome)
        logger.debug("ingest_message_handled", topic=topic, outcome=outcome)
        return outcome

    async def process_batch(self, block_ms: Optional[int] = None) -> int:
        """Read and handle one batch across all streams. Returns messages handled."""
        response: List[Tuple[str, List[Tuple[str, Dict[str, Any]]]]] = await self.client.xreadgroup(
            self.group,
            self.consumer_name,
            self.streams,
            count=settings.INGEST_BATCH_SIZE,
            block=settings.INGEST_BLOCK_MS if block_ms is None else block_ms,
        )
        if not response:
            return 0

        handled = 0
        hotel_data_changed = False
        for stream, messages in response:
            topic = topics.topic_from_stream(stream)
            for message_id, fields in messages:
                outcome = await self.handle_message(topic, fields)
                await self.client.xack(stream, self.group, message_id)
                handled += 1
                if outcome == STORED and topic in topics.HOTEL_TOPICS:
                    hotel_data_changed = True

        if hotel_data_changed:
            await invalidate_hotel_cache()

        logger.info("ingest_batch_processed", messages=handled)
        return handled

    async def run(self) -> None:
        await self.setup()
        self._running = True
        logger.info("ingest_consumer_started", group=self.group, consumer=self.consumer_name)

        while self._running:
            await self.process_batch()

        logger.info("ingest_consumer_stopped")

    def stop(self) -> None:
        self._running = False


async def main() -> None:
    setup_logging("ingest-consumer")
    client = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
    consumer = IngestConsumer(client, AsyncSessionLocal)
    try:
        await consumer.run()
    finally:
        await client.aclose()


def run_cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run_cli()
