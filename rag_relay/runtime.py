"""
Dispatches inbound messages to the relay concurrently.
"""

import asyncio
import logging
from typing import Dict

from .data_models import InboundMessage

logger = logging.getLogger(__name__)


class RelayDispatcher:
    """Runs one relay pipeline per message without letting channels block each other.

    Messages from the same channel are handled one after another in arrival
    order. Different channels run concurrently, up to ``max_concurrency``
    pipelines at once; further messages wait their turn instead of being
    dropped.
    """

    def __init__(self, relay, max_concurrency: int = 4):
        self.relay = relay
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._queues: Dict[int, asyncio.Queue] = {}
        self._workers: Dict[int, asyncio.Task] = {}
        self._closed = False

    @property
    def pending(self) -> int:
        """Messages queued but not yet started."""
        return sum(q.qsize() for q in self._queues.values())

    def submit(self, message: InboundMessage) -> bool:
        """Queue a message for its channel.

        Returns:
            bool: False if the dispatcher is closed and the message was not queued
        """
        if self._closed:
            logger.warning("Dispatcher closed, not handling message in %s", message.channel_id)
            return False

        queue = self._queues.get(message.channel_id)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[message.channel_id] = queue
            self._workers[message.channel_id] = asyncio.create_task(
                self._drain_channel(message.channel_id, queue)
            )
        queue.put_nowait(message)
        return True

    async def _drain_channel(self, channel_id: int, queue: asyncio.Queue) -> None:
        try:
            while True:
                try:
                    message = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                async with self._semaphore:
                    await self._run(message)
        finally:
            # No await between the empty check and here, so a concurrent
            # submit() either landed in the queue above or will start a new worker.
            self._queues.pop(channel_id, None)
            self._workers.pop(channel_id, None)

    async def _run(self, message: InboundMessage) -> None:
        try:
            outcome = await self.relay.handle(message)
        except Exception:
            logger.exception("Relay failed for message in %s", message.channel_id)
            return
        logger.debug("Message in %s finished as %s", message.channel_id, outcome.state.value)

    async def join(self) -> None:
        """Wait until every queued message has been handled."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()), return_exceptions=True)

    async def close(self) -> None:
        """Stop accepting messages and let in-flight work finish."""
        self._closed = True
        await self.join()
