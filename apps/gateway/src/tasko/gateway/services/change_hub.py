"""ChangeHub -- 内存中 Store 变更广播器

作为 AppStore 的订阅者接收 StoreChange，每个 SSE 连接持有一个 asyncio.Queue。
publish 为同步调用（Store 在提交后同步通知），队列已满的订阅者被移除。
"""

import asyncio

import structlog
from tasko.core.models import StoreChange

log = structlog.get_logger()


class ChangeHub:
    """Store 变更广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        self._subscribers: set[asyncio.Queue] = set()
        self._queue_maxsize = queue_maxsize

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self) -> asyncio.Queue:
        """订阅变更流

        Returns:
            asyncio.Queue 实例，新变更会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers.add(queue)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def publish(self, change: StoreChange) -> None:
        """向所有订阅者广播变更"""
        dead_queues = []
        for queue in self._subscribers:
            try:
                queue.put_nowait(change)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列
        for q in dead_queues:
            self._subscribers.discard(q)
        if dead_queues:
            log.warning("change_hub_subscribers_dropped", count=len(dead_queues))
