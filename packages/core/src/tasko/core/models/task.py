"""Task Domain Model

cost 与 time_spent 是派生字段：cost 不可独立设置（TaskDraft / TaskPatch 中不存在），
time_spent 在提供会话历史时由已关闭会话的 duration 求和得到。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskPriority, TaskStatus
from .patch import PatchModel


class TimeTrackingRecord(BaseModel):
    """一次连续的工作区间

    end_time 缺失表示会话仍在进行中，不计入任何总时长。
    """

    id: str = Field(description="唯一标识")
    user_id: str = Field(description="记录工时的用户 ID")
    start_time: datetime = Field(description="开始时间")
    end_time: datetime | None = Field(default=None, description="结束时间，运行中为空")
    duration: float = Field(default=0.0, ge=0.0, description="时长（分钟），关闭时计算")
    description: str | None = Field(default=None, description="工作内容说明")

    @property
    def is_open(self) -> bool:
        return self.end_time is None


class Task(BaseModel):
    """Task 数据模型

    project_id 是项目关系的唯一拥有者，Project.task_ids 只是派生索引。
    """

    id: str = Field(description="唯一标识")
    title: str = Field(min_length=1, description="任务标题")
    description: str = Field(default="", description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="看板状态")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    assignee_id: str | None = Field(default=None, description="负责人（弱引用）")
    created_by_id: str = Field(description="创建者 ID")
    project_id: str = Field(description="所属项目 ID")
    due_date: datetime | None = Field(default=None, description="截止时间")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    tags: list[str] = Field(default_factory=list, description="标签")
    time_estimate: float | None = Field(default=None, ge=0.0, description="预估时长（分钟）")
    time_spent: float | None = Field(default=None, ge=0.0, description="累计耗时（分钟，派生）")
    time_started: datetime | None = Field(default=None, description="当前运行会话的开始时间")
    time_tracking: list[TimeTrackingRecord] = Field(
        default_factory=list,
        description="会话历史（有序）",
    )
    hourly_rate: float | None = Field(default=None, ge=0.0, description="小时费率")
    cost: float = Field(default=0.0, description="成本（派生，time_spent 小时数 × 费率）")


class TaskDraft(BaseModel):
    """新建 Task 的输入（无 ID、时间戳与派生字段）"""

    title: str = Field(min_length=1)
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee_id: str | None = None
    created_by_id: str
    project_id: str
    due_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    time_estimate: float | None = Field(default=None, ge=0.0)
    time_spent: float | None = Field(default=None, ge=0.0)
    time_started: datetime | None = None
    time_tracking: list[TimeTrackingRecord] = Field(default_factory=list)
    hourly_rate: float | None = Field(default=None, ge=0.0)


class TaskPatch(PatchModel):
    """Task 部分更新

    仅 model_fields_set 中的字段参与合并；显式传入 None 表示清空该字段。
    time_tracking 传入 None 等同于清空会话历史。
    """

    NON_NULLABLE = frozenset(
        {"title", "description", "status", "priority", "project_id", "tags"}
    )

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assignee_id: str | None = None
    project_id: str | None = None
    due_date: datetime | None = None
    tags: list[str] | None = None
    time_estimate: float | None = Field(default=None, ge=0.0)
    time_spent: float | None = Field(default=None, ge=0.0)
    time_started: datetime | None = None
    time_tracking: list[TimeTrackingRecord] | None = None
    hourly_rate: float | None = Field(default=None, ge=0.0)
