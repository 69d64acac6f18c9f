"""TraceMiddleware -- 为任务路由绑定 task_id

/api/tasks/{task_id}/... 下的所有日志携带 task_id。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# UUID 字符串长度
_ID_LENGTH = 36


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        parts = request.url.path.strip("/").split("/")
        # api / tasks / {task_id} / ...
        if len(parts) >= 3 and parts[:2] == ["api", "tasks"] and len(parts[2]) == _ID_LENGTH:
            structlog.contextvars.bind_contextvars(task_id=parts[2])

        return await call_next(request)
