"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含远端后端连通性、同步队列状态与磁盘空间。
"""

import shutil

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. remote_backend: 远端后端连通性
    2. sync_queue: 同步 worker 是否运行，附带待处理数与失败数
    3. disk_space_mb: 磁盘剩余空间
    """
    checks: dict = {}
    all_ok = True
    context = request.app.state.context

    # 1. 远端后端连通性
    try:
        if await context.backend.health_check():
            checks["remote_backend"] = "ok"
        else:
            checks["remote_backend"] = "unreachable"
            all_ok = False
    except Exception as e:
        log.warning("health_check_error", error=str(e))
        checks["remote_backend"] = f"error: {str(e)}"
        all_ok = False

    # 2. 同步队列
    sync_queue = context.sync_queue
    if sync_queue.is_running:
        checks["sync_queue"] = "ok"
    else:
        checks["sync_queue"] = "stopped"
        all_ok = False
    checks["sync_pending"] = sync_queue.pending
    checks["sync_failures"] = len(sync_queue.failures())

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
