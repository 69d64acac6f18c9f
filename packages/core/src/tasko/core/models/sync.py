"""远端同步操作与 Store 变更通知模型

SyncOperation 由 Store 在本地提交之后生成，交给远端同步队列执行；
payload 使用 Store 的字段名，列名映射由同步适配器负责。
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from .enums import ChangeAction, EntityType


class SyncAction(StrEnum):
    """远端写入动作"""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class SyncOperation(BaseModel):
    """一次待同步的远端写入"""

    op_id: str = Field(description="操作 ID")
    entity: EntityType = Field(description="实体类型")
    action: SyncAction = Field(description="写入动作")
    entity_id: str = Field(description="实体 ID")
    actor_id: str | None = Field(default=None, description="提交时 Store 的当前用户 ID")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="变更字段（Store 字段名），insert 为完整实体，delete 为空",
    )
    submitted_at: datetime = Field(description="提交时间")


class StoreChange(BaseModel):
    """Store 变更通知"""

    entity: EntityType = Field(description="变更的实体集合")
    action: ChangeAction = Field(description="变更动作")
    entity_id: str | None = Field(default=None, description="实体 ID，批量替换时为空")
    ts: datetime = Field(description="变更时间")
