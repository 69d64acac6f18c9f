"""依赖注入模块 -- 通过 FastAPI Depends 注入运行时组件

GatewayContext 通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from tasko.core.store import AppStore
from tasko.sync import SyncQueue

from .services.change_hub import ChangeHub
from .services.context import GatewayContext


def get_context(request: Request) -> GatewayContext:
    """从 app.state 获取 GatewayContext 实例"""
    return request.app.state.context


def get_store(request: Request) -> AppStore:
    return request.app.state.context.store


def get_sync_queue(request: Request) -> SyncQueue:
    return request.app.state.context.sync_queue


def get_change_hub(request: Request) -> ChangeHub:
    return request.app.state.context.change_hub
