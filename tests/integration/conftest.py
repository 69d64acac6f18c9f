"""集成测试共享 fixture"""

import contextlib
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tasko.sync import StaticSessionProvider, SyncConfig

ALICE_ID = "user-alice"


def _alice_sessions() -> StaticSessionProvider:
    sessions = StaticSessionProvider()
    sessions.register("alice@example.com", "pw", ALICE_ID)
    return sessions


@pytest_asyncio.fixture
async def open_gateway(tmp_path: Path) -> AsyncGenerator:
    """打开共享同一个 sqlite 文件的 Gateway 实例

    每次调用都是一次新的进程启动：新的 AppStore 与身份提供方，远端数据保留。
    返回 (context, client)。
    """
    from tasko.gateway.main import create_app
    from tasko.gateway.services.context import create_gateway_context

    db_path = str(tmp_path / "integration.db")
    async with contextlib.AsyncExitStack() as stack:

        async def _open():
            context = await create_gateway_context(
                SyncConfig(), db_path, sessions=_alice_sessions()
            )
            stack.push_async_callback(context.close)
            app = create_app()
            app.state.context = context
            client = await stack.enter_async_context(
                AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
            )
            return context, client

        yield _open
