"""任务路由

GET    /api/tasks               当前用户可见的任务列表，支持 project_id / status 筛选
POST   /api/tasks               新建任务（需要登录；会话检查失败返回 401）
GET    /api/tasks/{task_id}     任务详情
PATCH  /api/tasks/{task_id}     部分更新（仅请求体中出现的字段生效）
DELETE /api/tasks/{task_id}     删除任务
"""

from fastapi import APIRouter, Depends, Query
from starlette.responses import JSONResponse, Response
from tasko.core.models import TaskDraft, TaskPatch, TaskStatus
from tasko.core.workspace import tasks_for_user

from ..deps import get_store
from ..responses import error_response, not_signed_in, task_not_found

router = APIRouter()


@router.get("/api/tasks")
async def list_tasks(
    project_id: str | None = Query(default=None, description="按项目筛选"),
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    store=Depends(get_store),
):
    user = store.current_user
    if user is None:
        return not_signed_in()
    tasks = [
        t for t in tasks_for_user(store.state, user.id)
        if (project_id is None or t.project_id == project_id)
        and (status is None or t.status == status)
    ]
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.post("/api/tasks")
async def create_task(draft: TaskDraft, store=Depends(get_store)):
    if store.current_user is None:
        return not_signed_in()
    task = store.add_task(draft)
    if task is None:
        return error_response(
            401,
            "SESSION_REQUIRED",
            "Task creation abandoned: no authenticated session for the current user",
        )
    return JSONResponse(status_code=201, content=task.model_dump(mode="json"))


@router.get("/api/tasks/{task_id}")
async def get_task(task_id: str, store=Depends(get_store)):
    task = store.get_task(task_id)
    if task is None:
        return task_not_found(task_id)
    return task.model_dump(mode="json")


@router.patch("/api/tasks/{task_id}")
async def update_task(task_id: str, patch: TaskPatch, store=Depends(get_store)):
    task = store.update_task(task_id, patch)
    if task is None:
        return task_not_found(task_id)
    return task.model_dump(mode="json")


@router.delete("/api/tasks/{task_id}")
async def delete_task(task_id: str, store=Depends(get_store)):
    if not store.delete_task(task_id):
        return task_not_found(task_id)
    return Response(status_code=204)
