"""In-process change feed of booking events, one channel per tenant"""

import asyncio
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Set
from uuid import UUID

import structlog

logger = structlog.get_logger()


class ChangeFeed:
    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[UUID, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, tenant_id: UUID) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[tenant_id].add(queue)
        logger.info("Change feed subscriber added", tenant_id=str(tenant_id))
        return queue

    def unsubscribe(self, tenant_id: UUID, queue: asyncio.Queue) -> None:
        subscribers = self._subscribers.get(tenant_id)
        if not subscribers:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[tenant_id]
        logger.info("Change feed subscriber removed", tenant_id=str(tenant_id))

    @contextmanager
    def subscription(self, tenant_id: UUID) -> Iterator[asyncio.Queue]:
        queue = self.subscribe(tenant_id)
        try:
            yield queue
        finally:
            self.unsubscribe(tenant_id, queue)

    def subscriber_count(self, tenant_id: UUID) -> int:
        return len(self._subscribers.get(tenant_id, ()))

    def publish(self, tenant_id: UUID, event: Dict[str, Any]) -> int:
        """Fan the event out to the tenant's subscribers; returns how many received it"""
        delivered = 0
        for queue in list(self._subscribers.get(tenant_id, ())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                # Slow consumer
                logger.warning("Change feed queue full, event dropped", tenant_id=str(tenant_id))
        return delivered


change_feed = ChangeFeed()
