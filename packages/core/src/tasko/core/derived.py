"""派生字段计算 -- 所有变更路径统一调用的纯函数

- cost 由 time_spent 与 hourly_rate 推导，任一缺失或为 0 时为 0
- time_spent 在会话历史变更时由已关闭会话的 duration 求和重算（不做增量调整）
- Project.task_ids 反向索引随 Task.project_id 变化重建
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel

from .config import COST_DECIMALS
from .models.project import Project
from .models.task import Task, TaskDraft, TaskPatch, TimeTrackingRecord

M = TypeVar("M", bound=BaseModel)

# 会触发 cost 重算的 Task 字段
COST_INPUTS: frozenset[str] = frozenset({"time_spent", "hourly_rate", "time_tracking"})


def calculate_cost(time_spent: float | None, hourly_rate: float | None) -> float:
    """成本 = time_spent 小时数 × 小时费率，保留两位小数"""
    if not time_spent or not hourly_rate:
        return 0.0
    return round(time_spent / 60 * hourly_rate, COST_DECIMALS)


def closed_sessions(records: Iterable[TimeTrackingRecord]) -> list[TimeTrackingRecord]:
    return [r for r in records if r.end_time is not None]


def open_sessions(records: Iterable[TimeTrackingRecord]) -> list[TimeTrackingRecord]:
    return [r for r in records if r.end_time is None]


def total_time_spent(records: Iterable[TimeTrackingRecord]) -> float:
    """已关闭会话 duration 之和（分钟），运行中会话不计入"""
    return sum((r.duration for r in records if r.end_time is not None), 0.0)


def session_duration_minutes(start: datetime, end: datetime) -> float:
    """会话时长（分钟），时钟回拨时不为负"""
    return max(0.0, (end - start).total_seconds() / 60)


def build_task(draft: TaskDraft, task_id: str, now: datetime) -> Task:
    """由 TaskDraft 构建完整 Task 并计算派生字段"""
    values = draft.model_dump()
    if draft.time_tracking:
        values["time_spent"] = total_time_spent(draft.time_tracking)
    values["cost"] = calculate_cost(values["time_spent"], values["hourly_rate"])
    return Task(id=task_id, created_at=now, updated_at=now, **values)


def merge_task_patch(
    task: Task,
    patch: TaskPatch,
    now: datetime,
) -> tuple[Task, dict[str, Any]]:
    """合并 TaskPatch 并重算受影响的派生字段

    Returns:
        (合并后的 Task, 实际变更字段)，变更字段包含重算出的 time_spent / cost
        与 updated_at，用作远端部分更新的 payload
    """
    changes = patch.model_dump(exclude_unset=True)

    if "time_tracking" in changes:
        records = patch.time_tracking or []
        changes["time_tracking"] = [r.model_dump() for r in records]
        changes["time_spent"] = total_time_spent(records)

    if COST_INPUTS & changes.keys():
        time_spent = changes.get("time_spent", task.time_spent)
        hourly_rate = changes.get("hourly_rate", task.hourly_rate)
        changes["cost"] = calculate_cost(time_spent, hourly_rate)

    changes["updated_at"] = now
    merged = Task.model_validate({**task.model_dump(), **changes})
    return merged, changes


def merge_patch(
    model: M,
    patch: BaseModel,
    **stamps: Any,
) -> tuple[M, dict[str, Any]]:
    """通用部分更新合并（无派生字段的实体）

    Args:
        model: 当前实体
        patch: 部分更新，仅 model_fields_set 中的字段生效
        **stamps: 额外写入的字段（如 updated_at）

    Returns:
        (合并后的实体, 实际变更字段)
    """
    changes = {**patch.model_dump(exclude_unset=True), **stamps}
    merged = type(model).model_validate({**model.model_dump(), **changes})
    return merged, changes


def move_task_between_projects(
    projects: list[Project],
    task_id: str,
    project_id: str | None,
) -> list[Project]:
    """将 task_id 只保留在 project_id 对应项目的索引中

    project_id 为 None 时从所有项目索引中移除。未变化的项目原样返回。
    """
    result = []
    for project in projects:
        ids = project.task_ids
        if project.id == project_id:
            if task_id not in ids:
                ids = [*ids, task_id]
        elif task_id in ids:
            ids = [i for i in ids if i != task_id]
        result.append(
            project if ids is project.task_ids else project.model_copy(update={"task_ids": ids})
        )
    return result


def rebuild_project_index(projects: list[Project], tasks: list[Task]) -> list[Project]:
    """按 Task.project_id 全量重建所有项目的 task_ids"""
    by_project: dict[str, list[str]] = {}
    for task in tasks:
        by_project.setdefault(task.project_id, []).append(task.id)
    return [
        project.model_copy(update={"task_ids": by_project.get(project.id, [])})
        for project in projects
    ]
