"""Project / Client Domain Model

Project.task_ids 是 Task.project_id 的反向索引，由 Store 维护，
不出现在 ProjectPatch 中，也不同步到远端。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ClientStatus, ProjectCategory
from .patch import PatchModel


class Project(BaseModel):
    """Project 数据模型 -- 归属 Team，可关联 Client"""

    id: str = Field(description="唯一标识")
    name: str = Field(min_length=1, description="项目名称")
    description: str = Field(default="", description="项目描述")
    team_id: str = Field(description="所属团队 ID")
    client_id: str | None = Field(default=None, description="关联客户 ID")
    category: ProjectCategory | None = Field(default=None, description="项目分类")
    created_at: datetime = Field(description="创建时间")
    task_ids: list[str] = Field(default_factory=list, description="任务 ID 反向索引")
    budget: float | None = Field(default=None, ge=0.0, description="预算")
    hourly_rate: float | None = Field(default=None, ge=0.0, description="默认小时费率")
    revenue: float | None = Field(default=None, description="收入")


class ProjectDraft(BaseModel):
    """新建 Project 的输入"""

    name: str = Field(min_length=1)
    description: str = ""
    team_id: str
    client_id: str | None = None
    category: ProjectCategory | None = None
    budget: float | None = Field(default=None, ge=0.0)
    hourly_rate: float | None = Field(default=None, ge=0.0)
    revenue: float | None = None


class ProjectPatch(PatchModel):
    """Project 部分更新"""

    NON_NULLABLE = frozenset({"name", "description", "team_id"})

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    team_id: str | None = None
    client_id: str | None = None
    category: ProjectCategory | None = None
    budget: float | None = Field(default=None, ge=0.0)
    hourly_rate: float | None = Field(default=None, ge=0.0)
    revenue: float | None = None


class Client(BaseModel):
    """Client 数据模型"""

    id: str = Field(description="唯一标识")
    name: str = Field(min_length=1, description="联系人名称")
    email: str = Field(description="邮箱")
    phone: str | None = Field(default=None, description="电话")
    company: str = Field(default="", description="公司")
    avatar: str | None = Field(default=None, description="头像 URL")
    status: ClientStatus = Field(default=ClientStatus.ACTIVE, description="状态")
    created_by_id: str | None = Field(default=None, description="创建者 ID")
    team_id: str | None = Field(default=None, description="所属团队 ID")
    created_at: datetime = Field(description="创建时间")


class ClientDraft(BaseModel):
    """新建 Client 的输入"""

    name: str = Field(min_length=1)
    email: str
    phone: str | None = None
    company: str = ""
    avatar: str | None = None
    status: ClientStatus = ClientStatus.ACTIVE
    created_by_id: str | None = None
    team_id: str | None = None


class ClientPatch(PatchModel):
    """Client 部分更新"""

    NON_NULLABLE = frozenset({"name", "email", "company", "status"})

    name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    avatar: str | None = None
    status: ClientStatus | None = None
    team_id: str | None = None
