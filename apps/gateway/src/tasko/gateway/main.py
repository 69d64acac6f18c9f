"""FastAPI 应用主文件

app 创建 + lifespan 管理：远端后端 / 身份提供方 / 同步队列组装与关闭 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from tasko.core.config import get_db_path
from tasko.sync import load_sync_config

from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import export, health, invitations, session, stream, sync, tasks, timer
from .services.context import create_gateway_context

log = structlog.get_logger()

_ROUTERS = (
    (session, "session"),
    (tasks, "tasks"),
    (timer, "timer"),
    (export, "export"),
    (invitations, "invitations"),
    (sync, "sync"),
    (stream, "stream"),
    (health, "health"),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时组装运行时组件，关闭时停止同步队列并释放连接"""
    sync_config = load_sync_config()
    app.state.sync_config = sync_config
    app.state.context = await create_gateway_context(sync_config, get_db_path())
    log.info("gateway_started", backend=sync_config.backend)

    yield

    # 关闭：排空同步队列，关闭连接
    if getattr(app.state, "context", None) is not None:
        await app.state.context.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Tasko Gateway",
        version="0.1.0",
        description="Tasko 任务与工时管理 API",
        lifespan=lifespan,
    )

    setup_logging()
    # 后注册的中间件在外层：LoggingMiddleware 先于 TraceMiddleware 执行
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    for module, tag in _ROUTERS:
        app.include_router(module.router, tags=[tag])

    return app


# 默认 app 实例（ASGI 入口）
app = create_app()
