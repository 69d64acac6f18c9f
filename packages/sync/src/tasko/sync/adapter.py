"""RemoteSyncAdapter -- SyncOperation 到远端写入的适配

apply 在写入前检查会话：会话不存在或会话用户与操作提交者不一致时拒绝，
返回 refused 的 SyncResult（只是一致性检查，不是安全边界）。
后端错误以 SyncError 抛出，由 SyncQueue 记录。
"""

from typing import Any

import structlog
from pydantic import BaseModel, Field

from tasko.core.models import (
    Client,
    EntityType,
    Project,
    SyncAction,
    SyncOperation,
    Task,
    User,
)
from tasko.core.store import SessionSource

from .backends import RemoteBackend
from .mapping import entity_from_row, table_for, to_row

log = structlog.get_logger()


class SyncResult(BaseModel):
    """一次 apply 的结果"""

    op_id: str = Field(description="操作 ID")
    entity: EntityType = Field(description="实体类型")
    action: SyncAction = Field(description="写入动作")
    entity_id: str = Field(description="实体 ID")
    ok: bool = Field(description="是否已写入远端")
    refused: bool = Field(default=False, description="是否因会话检查被拒绝")
    reason: str | None = Field(default=None, description="拒绝原因")


class Workspace(BaseModel):
    """从远端加载的当前用户工作区"""

    tasks: list[Task] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    clients: list[Client] = Field(default_factory=list)


class RemoteSyncAdapter:
    """远端同步适配器"""

    def __init__(self, backend: RemoteBackend, sessions: SessionSource) -> None:
        self._backend = backend
        self._sessions = sessions

    @property
    def backend(self) -> RemoteBackend:
        return self._backend

    async def apply(self, op: SyncOperation) -> SyncResult:
        """执行一次远端写入

        Raises:
            SyncError: 后端写入失败
        """
        session = self._sessions.get_current_session()
        if session is None:
            log.warning(
                "sync_refused_no_session",
                op_id=op.op_id,
                entity=op.entity,
                entity_id=op.entity_id,
            )
            return self._result(op, ok=False, refused=True, reason="no_session")
        if session.user_id != op.actor_id:
            log.warning(
                "session_user_mismatch",
                op_id=op.op_id,
                entity=op.entity,
                entity_id=op.entity_id,
                actor_id=op.actor_id,
                session_user_id=session.user_id,
            )
            return self._result(op, ok=False, refused=True, reason="session_user_mismatch")

        table = table_for(op.entity)
        if op.action == SyncAction.INSERT:
            row = to_row(op.entity, op.payload)
            row.setdefault("id", op.entity_id)
            await self._backend.insert(table, row)
        elif op.action == SyncAction.UPDATE:
            await self._backend.update(table, op.entity_id, to_row(op.entity, op.payload))
        else:
            await self._backend.delete(table, op.entity_id)

        log.info(
            "sync_operation_applied",
            op_id=op.op_id,
            entity=op.entity,
            action=op.action,
            entity_id=op.entity_id,
        )
        return self._result(op, ok=True)

    async def load_workspace(self, user: User) -> Workspace:
        """加载用户工作区：负责或创建的任务，用户团队的项目与客户"""
        task_rows = await self._backend.select(
            table_for(EntityType.TASK),
            any_eq={"assignee_id": user.id, "created_by_id": user.id},
        )
        project_rows: list[dict[str, Any]] = []
        client_rows: list[dict[str, Any]] = []
        if user.team_id:
            project_rows = await self._backend.select(
                table_for(EntityType.PROJECT),
                eq={"team_id": user.team_id},
            )
            client_rows = await self._backend.select(
                table_for(EntityType.CLIENT),
                eq={"team_id": user.team_id},
            )

        workspace = Workspace(
            tasks=[entity_from_row(EntityType.TASK, r) for r in task_rows],
            projects=[entity_from_row(EntityType.PROJECT, r) for r in project_rows],
            clients=[entity_from_row(EntityType.CLIENT, r) for r in client_rows],
        )
        log.info(
            "workspace_loaded",
            user_id=user.id,
            tasks=len(workspace.tasks),
            projects=len(workspace.projects),
            clients=len(workspace.clients),
        )
        return workspace

    @staticmethod
    def _result(op: SyncOperation, **kwargs: Any) -> SyncResult:
        return SyncResult(
            op_id=op.op_id,
            entity=op.entity,
            action=op.action,
            entity_id=op.entity_id,
            **kwargs,
        )
