"""计时器路由

GET    /api/tasks/{task_id}/timer                    计时器状态
POST   /api/tasks/{task_id}/timer/start|pause|stop   状态流转
PATCH  /api/tasks/{task_id}/sessions/{session_id}    编辑已关闭会话
DELETE /api/tasks/{task_id}/sessions/{session_id}    删除会话

- 404: 任务或会话不存在
- 401: 未登录
- 409: 非法状态流转 / 编辑运行中会话
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.responses import Response

from ..deps import get_context
from ..responses import error_response, not_signed_in, task_not_found

router = APIRouter()


class TimerResponse(BaseModel):
    """计时器状态"""

    task_id: str
    state: str
    elapsed_seconds: int
    session_id: str | None
    time_spent: float | None
    cost: float


class SessionEditRequest(BaseModel):
    """会话编辑请求"""

    description: str | None = None
    duration: float | None = Field(default=None, ge=0.0, description="时长（分钟）")


def _timer_response(timer, store) -> dict:
    elapsed = timer.tick()
    task = store.get_task(timer.task_id)
    return TimerResponse(
        task_id=timer.task_id,
        state=timer.state.value,
        elapsed_seconds=elapsed,
        session_id=timer.session_id,
        time_spent=task.time_spent,
        cost=task.cost,
    ).model_dump()


@router.get("/api/tasks/{task_id}/timer")
async def get_timer(task_id: str, context=Depends(get_context)):
    task = context.store.get_task(task_id)
    if task is None:
        return task_not_found(task_id)
    timer = context.timers.timer_for(task_id)
    context.ensure_ticker(timer)
    return _timer_response(timer, context.store)


@router.post("/api/tasks/{task_id}/timer/{action}")
async def timer_action(task_id: str, action: str, context=Depends(get_context)):
    if action not in ("start", "pause", "stop"):
        return error_response(404, "UNKNOWN_TIMER_ACTION", f"Unknown timer action: {action}")
    if context.store.get_task(task_id) is None:
        return task_not_found(task_id)
    if context.store.current_user is None:
        return not_signed_in()

    timer = context.timers.timer_for(task_id)
    changed = getattr(timer, action)()
    if not changed:
        return error_response(
            409,
            "TIMER_TRANSITION_REJECTED",
            f"Cannot {action} timer in state {timer.state.value}",
        )
    context.ensure_ticker(timer)
    return _timer_response(timer, context.store)


@router.patch("/api/tasks/{task_id}/sessions/{session_id}")
async def edit_session(
    task_id: str,
    session_id: str,
    body: SessionEditRequest,
    context=Depends(get_context),
):
    task = context.store.get_task(task_id)
    if task is None:
        return task_not_found(task_id)
    record = next((r for r in task.time_tracking if r.id == session_id), None)
    if record is None:
        return error_response(404, "SESSION_NOT_FOUND", f"Session {session_id} does not exist")
    if record.is_open:
        return error_response(409, "SESSION_RUNNING", "A running session cannot be edited")

    updated = context.timers.timer_for(task_id).edit_session(
        session_id,
        description=body.description,
        duration=body.duration,
    )
    return updated.model_dump(mode="json")


@router.delete("/api/tasks/{task_id}/sessions/{session_id}")
async def delete_session(task_id: str, session_id: str, context=Depends(get_context)):
    if context.store.get_task(task_id) is None:
        return task_not_found(task_id)
    updated = context.timers.timer_for(task_id).delete_session(session_id)
    if updated is None:
        return error_response(404, "SESSION_NOT_FOUND", f"Session {session_id} does not exist")
    return Response(status_code=204)
