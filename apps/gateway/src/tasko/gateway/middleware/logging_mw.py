"""LoggingMiddleware -- 请求级日志

每个请求绑定 request_id（沿用调用方传入的 X-Request-ID，否则生成 ULID）、
当前用户与耗时；5xx 响应以 error 级别记录。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(ULID())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        context = getattr(request.app.state, "context", None)
        user = context.store.current_user if context is not None else None
        if user is not None:
            structlog.contextvars.bind_contextvars(user_id=user.id)

        log = structlog.get_logger()
        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 1)

        emit = log.aerror if response.status_code >= 500 else log.ainfo
        await emit(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
