"""同步台账路由

GET  /api/sync/failures: 失败台账（按 entity_id 可筛选）
POST /api/sync/retry: 重新提交全部失败操作
"""

from fastapi import APIRouter, Depends, Query

from ..deps import get_sync_queue

router = APIRouter()


@router.get("/api/sync/failures")
async def list_failures(
    entity_id: str | None = Query(default=None, description="按实体 ID 筛选"),
    sync_queue=Depends(get_sync_queue),
):
    failures = (
        sync_queue.failures_for(entity_id) if entity_id is not None else sync_queue.failures()
    )
    return {
        "pending": sync_queue.pending,
        "failures": [f.model_dump(mode="json") for f in failures],
    }


@router.post("/api/sync/retry")
async def retry_failures(sync_queue=Depends(get_sync_queue)):
    return {"resubmitted": sync_queue.retry_failed()}
