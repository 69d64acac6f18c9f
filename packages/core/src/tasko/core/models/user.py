"""User / Team / AuthSession Domain Model"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ThemePreference, UserRole
from .patch import PatchModel


class User(BaseModel):
    """User 数据模型（远端 profiles 表）"""

    id: str = Field(description="唯一标识，与身份提供方 user id 一致")
    name: str = Field(description="显示名称")
    email: str = Field(description="邮箱")
    avatar: str | None = Field(default=None, description="头像 URL")
    role: UserRole = Field(default=UserRole.MEMBER, description="角色")
    theme: ThemePreference = Field(default=ThemePreference.SYSTEM, description="主题")
    hourly_rate: float | None = Field(default=None, ge=0.0, description="小时费率")
    team_id: str | None = Field(default=None, description="默认团队 ID")
    created_at: datetime | None = Field(default=None, description="创建时间")
    updated_at: datetime | None = Field(default=None, description="更新时间")


class UserDraft(BaseModel):
    """新建 User 的输入

    id 可选：来自身份提供方的用户沿用其 id，否则由 Store 生成。
    """

    id: str | None = None
    name: str
    email: str
    avatar: str | None = None
    role: UserRole = UserRole.MEMBER
    theme: ThemePreference = ThemePreference.SYSTEM
    hourly_rate: float | None = Field(default=None, ge=0.0)
    team_id: str | None = None


class UserPatch(PatchModel):
    """User 部分更新"""

    NON_NULLABLE = frozenset({"name", "email", "role", "theme"})

    name: str | None = None
    email: str | None = None
    avatar: str | None = None
    role: UserRole | None = None
    theme: ThemePreference | None = None
    hourly_rate: float | None = Field(default=None, ge=0.0)
    team_id: str | None = None


class Team(BaseModel):
    """Team 数据模型，成员以 user id 列表保存"""

    id: str = Field(description="唯一标识")
    name: str = Field(min_length=1, description="团队名称")
    description: str = Field(default="", description="团队描述")
    member_ids: list[str] = Field(default_factory=list, description="成员 user id")
    created_at: datetime = Field(description="创建时间")


class TeamDraft(BaseModel):
    """新建 Team 的输入"""

    name: str = Field(min_length=1)
    description: str = ""
    member_ids: list[str] = Field(default_factory=list)


class TeamPatch(PatchModel):
    """Team 部分更新"""

    NON_NULLABLE = frozenset({"name", "description", "member_ids"})

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    member_ids: list[str] | None = None


class AuthSession(BaseModel):
    """身份提供方返回的会话"""

    user_id: str = Field(description="已认证用户 ID")
    email: str = Field(default="", description="已认证邮箱")
    access_token: str = Field(default="", description="访问令牌")
