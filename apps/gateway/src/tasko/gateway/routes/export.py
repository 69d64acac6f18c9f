"""任务导出路由

GET /api/tasks/{task_id}/export?format=csv|json: 以附件形式下载任务导出
"""

from fastapi import APIRouter, Depends, Query
from starlette.responses import Response
from tasko.core.export import ExportFormat, export_filename, export_task

from ..deps import get_store
from ..responses import task_not_found

router = APIRouter()

_MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv; charset=utf-8",
    ExportFormat.JSON: "application/json; charset=utf-8",
}


@router.get("/api/tasks/{task_id}/export")
async def export(
    task_id: str,
    format: ExportFormat = Query(default=ExportFormat.CSV, description="导出格式"),
    store=Depends(get_store),
):
    task = store.get_task(task_id)
    if task is None:
        return task_not_found(task_id)

    filename = export_filename(task, format, store.now().date())
    return Response(
        content=export_task(task, store.users, format),
        media_type=_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
