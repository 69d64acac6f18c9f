"""apps/gateway 测试配置 -- 绕过 lifespan 的 app + httpx AsyncClient fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tasko.sync import SyncConfig


@pytest_asyncio.fixture
async def gateway_context(tmp_path: Path):
    """sqlite 后端 + 自动注册身份提供方的运行时组件组"""
    from tasko.gateway.services.context import create_gateway_context

    db_path = str(tmp_path / "sqlite" / "gateway.db")
    os.environ["TASKO_DB_PATH"] = db_path
    context = await create_gateway_context(SyncConfig(), db_path)
    yield context
    await context.close()
    os.environ.pop("TASKO_DB_PATH", None)


@pytest_asyncio.fixture
async def app(gateway_context):
    """创建测试用 FastAPI app 实例"""
    from tasko.gateway.main import create_app

    application = create_app()
    # 手动初始化（绕过 lifespan）
    application.state.context = gateway_context
    yield application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def signed_in(client: AsyncClient) -> dict:
    """以 alice 登录，返回当前用户 JSON"""
    resp = await client.post(
        "/api/session",
        json={"email": "alice@example.com", "password": "pw"},
    )
    assert resp.status_code == 200
    return resp.json()


@pytest_asyncio.fixture
async def created_task(client: AsyncClient, signed_in: dict) -> dict:
    resp = await client.post(
        "/api/tasks",
        json={
            "title": "Landing page",
            "created_by_id": signed_in["id"],
            "assignee_id": signed_in["id"],
            "project_id": "project-1",
            "hourly_rate": 60,
        },
    )
    assert resp.status_code == 201
    return resp.json()
