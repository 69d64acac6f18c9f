"""Store 字段 <-> 远端列 映射

每个实体一张显式映射表；to_row / from_row 为纯函数，未出现在输入中的字段不输出。

- time_tracking 以 JSON 字符串保存，记录内部使用 camelCase 键
- Project.task_ids 是本地派生索引，从不映射
- 时间统一序列化为 ISO 8601 字符串，枚举输出其 value
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from tasko.core.models import Client, EntityType, Project, Task, TimeTrackingRecord, User

from .exceptions import SyncError

# 实体 -> 远端表名
TABLES: dict[EntityType, str] = {
    EntityType.TASK: "tasks",
    EntityType.PROJECT: "projects",
    EntityType.CLIENT: "clients",
    EntityType.USER: "profiles",
}

TASK_COLUMNS: dict[str, str] = {
    "id": "id",
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "assignee_id": "assignee_id",
    "created_by_id": "created_by_id",
    "project_id": "project_id",
    "due_date": "due_date",
    "created_at": "created_at",
    "updated_at": "updated_at",
    "tags": "tags",
    "time_estimate": "time_estimate",
    "time_spent": "time_spent",
    "time_started": "time_started",
    "time_tracking": "time_tracking",
    "hourly_rate": "hourly_rate",
    "cost": "cost",
}

PROJECT_COLUMNS: dict[str, str] = {
    "id": "id",
    "name": "name",
    "description": "description",
    "team_id": "team_id",
    "client_id": "client_id",
    "category": "category",
    "created_at": "created_at",
    "budget": "budget",
    "hourly_rate": "hourly_rate",
    "revenue": "revenue",
}

CLIENT_COLUMNS: dict[str, str] = {
    "id": "id",
    "name": "name",
    "email": "email",
    "phone": "phone",
    "company": "company",
    "avatar": "avatar",
    "status": "status",
    "created_by_id": "created_by",
    "team_id": "team_id",
    "created_at": "created_at",
}

PROFILE_COLUMNS: dict[str, str] = {
    "id": "id",
    "name": "name",
    "email": "email",
    "avatar": "avatar",
    "role": "role",
    "theme": "theme",
    "hourly_rate": "hourly_rate",
    "team_id": "team_id",
    "created_at": "created_at",
    "updated_at": "updated_at",
}

COLUMNS: dict[EntityType, dict[str, str]] = {
    EntityType.TASK: TASK_COLUMNS,
    EntityType.PROJECT: PROJECT_COLUMNS,
    EntityType.CLIENT: CLIENT_COLUMNS,
    EntityType.USER: PROFILE_COLUMNS,
}

MODELS: dict[EntityType, type[BaseModel]] = {
    EntityType.TASK: Task,
    EntityType.PROJECT: Project,
    EntityType.CLIENT: Client,
    EntityType.USER: User,
}

# TimeTrackingRecord 字段 -> JSON 键
RECORD_KEYS: dict[str, str] = {
    "id": "id",
    "user_id": "userId",
    "start_time": "startTime",
    "end_time": "endTime",
    "duration": "duration",
    "description": "description",
}


def table_for(entity: EntityType) -> str:
    try:
        return TABLES[entity]
    except KeyError as e:
        raise SyncError(
            f"实体没有远端表: {entity}",
            code="unmapped_entity",
            recoverable=False,
        ) from e


def _columns_for(entity: EntityType) -> dict[str, str]:
    table_for(entity)
    return COLUMNS[entity]


def _to_cell(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def dump_time_tracking(records: list[Any] | None) -> str:
    """会话历史 -> camelCase JSON 字符串"""
    items = []
    for record in records or []:
        data = TimeTrackingRecord.model_validate(record).model_dump()
        items.append({RECORD_KEYS[k]: _to_cell(v) for k, v in data.items()})
    return json.dumps(items)


def load_time_tracking(raw: Any) -> list[dict[str, Any]]:
    """camelCase JSON（字符串或已解码列表）-> 会话记录字段字典"""
    if raw is None or raw == "":
        return []
    items = json.loads(raw) if isinstance(raw, str) else raw
    reverse = {v: k for k, v in RECORD_KEYS.items()}
    return [{reverse[k]: v for k, v in item.items() if k in reverse} for item in items]


def to_row(entity: EntityType, values: dict[str, Any]) -> dict[str, Any]:
    """Store 字段字典 -> 远端行；未映射字段（如 task_ids）被丢弃"""
    columns = _columns_for(entity)
    row: dict[str, Any] = {}
    for field, value in values.items():
        column = columns.get(field)
        if column is None:
            continue
        if field == "time_tracking":
            row[column] = dump_time_tracking(value)
        elif isinstance(value, list):
            row[column] = [_to_cell(v) for v in value]
        else:
            row[column] = _to_cell(value)
    return row


def from_row(entity: EntityType, row: dict[str, Any]) -> dict[str, Any]:
    """远端行 -> Store 字段字典；未知列被丢弃"""
    reverse = {column: field for field, column in _columns_for(entity).items()}
    values: dict[str, Any] = {}
    for column, value in row.items():
        field = reverse.get(column)
        if field is None:
            continue
        if field == "time_tracking":
            values[field] = load_time_tracking(value)
        else:
            values[field] = value
    return values


def entity_from_row(entity: EntityType, row: dict[str, Any]) -> Any:
    """远端行 -> 领域模型；NULL 列按模型默认值处理"""
    values = {k: v for k, v in from_row(entity, row).items() if v is not None}
    return MODELS[entity].model_validate(values)
