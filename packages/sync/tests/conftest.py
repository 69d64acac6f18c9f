"""packages/sync 测试配置 -- SQLite 后端与会话 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from tasko.core.models import AuthSession, EntityType, SyncAction, SyncOperation
from tasko.sync import SqliteBackend, StaticSessionProvider

NOW = datetime(2025, 3, 5, 9, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def sqlite_backend(tmp_path: Path) -> AsyncGenerator[SqliteBackend, None]:
    """已初始化 schema 的临时 SQLite 后端"""
    backend = await SqliteBackend.open(str(tmp_path / "sync_test.db"))
    yield backend
    await backend.close()


@pytest.fixture
def signed_in() -> StaticSessionProvider:
    """已有 user-1 会话的身份提供方"""
    return StaticSessionProvider(session=AuthSession(user_id="user-1", email="alice@example.com"))


@pytest.fixture
def make_op():
    """构造 SyncOperation 的工厂"""

    def _make(
        action: SyncAction,
        entity_id: str,
        payload: dict | None = None,
        entity: EntityType = EntityType.TASK,
        actor_id: str | None = "user-1",
        op_id: str | None = None,
        submitted_at: datetime = NOW,
    ) -> SyncOperation:
        return SyncOperation(
            op_id=op_id or f"{action}-{entity_id}",
            entity=entity,
            action=action,
            entity_id=entity_id,
            actor_id=actor_id,
            payload=payload or {},
            submitted_at=submitted_at,
        )

    return _make


@pytest.fixture
def task_payload():
    """完整 Task 字段（Store 字段名）"""

    def _payload(task_id: str = "task-1", **overrides) -> dict:
        values = {
            "id": task_id,
            "title": "Landing page",
            "description": "",
            "status": "todo",
            "priority": "medium",
            "assignee_id": "user-1",
            "created_by_id": "user-1",
            "project_id": "project-1",
            "due_date": None,
            "created_at": NOW,
            "updated_at": NOW,
            "tags": ["web"],
            "time_estimate": None,
            "time_spent": None,
            "time_started": None,
            "time_tracking": [],
            "hourly_rate": 60.0,
            "cost": 0.0,
        }
        values.update(overrides)
        return values

    return _payload
