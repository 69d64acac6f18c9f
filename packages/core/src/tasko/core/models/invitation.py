"""Invitation Domain Model

token 为一次性随机串；expires_at 默认为创建时间 + INVITATION_TTL_DAYS。
过期判断只看 expires_at，与存储的 status 无关。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import InvitationStatus, UserRole
from .patch import PatchModel


class Invitation(BaseModel):
    """Invitation 数据模型"""

    id: str = Field(description="唯一标识")
    email: str = Field(description="受邀邮箱")
    name: str | None = Field(default=None, description="受邀人名称")
    team_id: str | None = Field(default=None, description="加入的团队 ID")
    project_id: str | None = Field(default=None, description="关联的项目 ID")
    role: UserRole = Field(default=UserRole.MEMBER, description="接受后的角色")
    status: InvitationStatus = Field(
        default=InvitationStatus.PENDING,
        description="存储的状态",
    )
    invited_by: str = Field(description="邀请人 user id")
    invited_at: datetime = Field(description="邀请时间")
    expires_at: datetime = Field(description="过期时间")
    token: str = Field(description="邀请链接 token")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def effective_status(self, now: datetime) -> InvitationStatus:
        """对外展示的状态：未接受且已过期的邀请视为 expired"""
        if self.status == InvitationStatus.PENDING and self.is_expired(now):
            return InvitationStatus.EXPIRED
        return self.status

    def is_acceptable(self, now: datetime) -> bool:
        return self.status == InvitationStatus.PENDING and not self.is_expired(now)


class InvitationDraft(BaseModel):
    """新建 Invitation 的输入

    expires_at 为空时按默认有效期计算。
    """

    email: str
    name: str | None = None
    team_id: str | None = None
    project_id: str | None = None
    role: UserRole = UserRole.MEMBER
    invited_by: str
    expires_at: datetime | None = None


class InvitationPatch(PatchModel):
    """Invitation 部分更新"""

    NON_NULLABLE = frozenset({"role", "status", "expires_at"})

    name: str | None = None
    role: UserRole | None = None
    status: InvitationStatus | None = None
    expires_at: datetime | None = None
