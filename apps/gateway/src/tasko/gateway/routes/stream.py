"""SSE 变更流路由

GET /api/stream: SSE 实时推送 Store 变更（StoreChange），支持按实体类型过滤，心跳保活。
"""

import asyncio

from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse
from tasko.core.config import SSE_HEARTBEAT_INTERVAL
from tasko.core.models import EntityType, StoreChange

from ..deps import get_change_hub

router = APIRouter()


def _change_to_sse(change: StoreChange) -> dict:
    return {
        "event": f"{change.entity.value}.{change.action.value}",
        "data": change.model_dump_json(),
    }


@router.get("/api/stream")
async def stream_changes(
    entity: list[EntityType] | None = Query(default=None, description="只推送这些实体类型"),
    change_hub=Depends(get_change_hub),
):
    """SSE 变更流端点

    1. 注册到 ChangeHub 监听 Store 变更
    2. 实时推送变更，事件名为 <entity>.<action>
    3. 心跳保活
    """
    wanted = set(entity) if entity else None
    queue = await change_hub.subscribe()

    async def event_generator():
        try:
            while True:
                try:
                    change = await asyncio.wait_for(queue.get(), timeout=SSE_HEARTBEAT_INTERVAL)
                except TimeoutError:
                    # 心跳保活
                    yield {"comment": "heartbeat"}
                    continue
                if wanted is None or change.entity in wanted:
                    yield _change_to_sse(change)
        finally:
            await change_hub.unsubscribe(queue)

    return EventSourceResponse(event_generator())
