"""任务导出 -- CSV / JSON 单向导出

CSV：任务元数据的标签/值行块，空行，会话历史表头与每条会话一行，所有单元格加引号。
JSON：task 对象（内联负责人与创建者）+ timeTracking 数组（内联会话用户）。
总耗时只统计已关闭会话。
"""

import csv
import io
import json
import re
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from .derived import total_time_spent
from .models.task import Task
from .models.user import User


class ExportFormat(StrEnum):
    CSV = "csv"
    JSON = "json"


def format_duration(minutes: float | None) -> str:
    """分钟数 -> MM:SS，满一小时为 HH:MM:SS；缺失或为负时为 00:00"""
    if minutes is None or minutes < 0:
        return "00:00"
    total_seconds = int(minutes * 60)
    hours, rest = divmod(total_seconds, 3600)
    mins, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{mins:02d}:{secs:02d}"
    return f"{mins:02d}:{secs:02d}"


def format_date(value: datetime | None) -> str:
    """日期显示格式，如 Mar 5, 2025；缺失时为 N/A"""
    if value is None:
        return "N/A"
    return f"{value:%b} {value.day}, {value.year}"


def _user_ref(user: User | None) -> dict[str, str] | None:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def export_task_csv(task: Task, users: list[User]) -> str:
    by_id = {u.id: u for u in users}
    assignee = by_id.get(task.assignee_id) if task.assignee_id else None
    creator = by_id.get(task.created_by_id)
    total = total_time_spent(task.time_tracking)

    rows: list[list[str]] = [
        ["Task Details"],
        ["Title", task.title],
        ["Description", task.description or "No description"],
        ["Status", task.status.value],
        ["Priority", task.priority.value],
        ["Assignee", assignee.name if assignee else "Unassigned"],
        ["Created By", creator.name if creator else "Unknown"],
        ["Created At", format_date(task.created_at)],
        ["Updated At", format_date(task.updated_at)],
        ["Due Date", format_date(task.due_date) if task.due_date else "No due date"],
        ["Total Time Spent", format_duration(total)],
        ["", ""],
        ["Time Tracking History"],
        ["User", "Start Time", "End Time", "Duration", "Description"],
    ]
    for record in task.time_tracking:
        user = by_id.get(record.user_id)
        rows.append([
            user.name if user else "Unknown User",
            format_date(record.start_time),
            format_date(record.end_time) if record.end_time else "In Progress",
            format_duration(record.duration),
            record.description or "",
        ])
    if not task.time_tracking:
        rows.append(["No time records"])

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def build_task_export(task: Task, users: list[User]) -> dict[str, Any]:
    """构建 JSON 导出的数据结构"""
    by_id = {u.id: u for u in users}
    total = total_time_spent(task.time_tracking)
    return {
        "task": {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "status": task.status.value,
            "priority": task.priority.value,
            "assignee": _user_ref(by_id.get(task.assignee_id) if task.assignee_id else None),
            "createdBy": _user_ref(by_id.get(task.created_by_id)),
            "createdAt": _isoformat(task.created_at),
            "updatedAt": _isoformat(task.updated_at),
            "dueDate": _isoformat(task.due_date),
            "totalTimeSpent": total,
            "totalTimeSpentFormatted": format_duration(total),
        },
        "timeTracking": [
            {
                "id": record.id,
                "user": _user_ref(by_id.get(record.user_id)),
                "startTime": _isoformat(record.start_time),
                "endTime": _isoformat(record.end_time),
                "duration": record.duration,
                "durationFormatted": format_duration(record.duration),
                "description": record.description,
            }
            for record in task.time_tracking
        ],
    }


def export_task_json(task: Task, users: list[User]) -> str:
    return json.dumps(build_task_export(task, users), indent=2, ensure_ascii=False)


def export_filename(task: Task, fmt: ExportFormat, today: date) -> str:
    """导出文件名：task-<slug>-<YYYY-MM-DD>.<ext>"""
    slug = re.sub(r"[^a-z0-9]", "-", task.title.lower())
    return f"task-{slug}-{today.isoformat()}.{fmt.value}"


def export_task(task: Task, users: list[User], fmt: ExportFormat) -> str:
    if fmt == ExportFormat.CSV:
        return export_task_csv(task, users)
    return export_task_json(task, users)
