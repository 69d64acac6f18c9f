"""Tasko Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    VALID_TIMER_TRANSITIONS,
    ChangeAction,
    ClientStatus,
    EntityType,
    InvitationStatus,
    ProjectCategory,
    TaskPriority,
    TaskStatus,
    ThemePreference,
    TimerState,
    UserRole,
    validate_timer_transition,
)
from .invitation import Invitation, InvitationDraft, InvitationPatch
from .patch import PatchModel
from .project import (
    Client,
    ClientDraft,
    ClientPatch,
    Project,
    ProjectDraft,
    ProjectPatch,
)
from .sync import StoreChange, SyncAction, SyncOperation
from .task import Task, TaskDraft, TaskPatch, TimeTrackingRecord
from .user import AuthSession, Team, TeamDraft, TeamPatch, User, UserDraft, UserPatch

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "UserRole",
    "ThemePreference",
    "ClientStatus",
    "InvitationStatus",
    "ProjectCategory",
    "EntityType",
    "ChangeAction",
    # 计时器状态机
    "TimerState",
    "VALID_TIMER_TRANSITIONS",
    "validate_timer_transition",
    # Task
    "Task",
    "TaskDraft",
    "TaskPatch",
    "TimeTrackingRecord",
    # Project / Client
    "Project",
    "ProjectDraft",
    "ProjectPatch",
    "Client",
    "ClientDraft",
    "ClientPatch",
    # User / Team
    "User",
    "UserDraft",
    "UserPatch",
    "Team",
    "TeamDraft",
    "TeamPatch",
    "AuthSession",
    # Invitation
    "Invitation",
    "InvitationDraft",
    "InvitationPatch",
    # 部分更新
    "PatchModel",
    # 同步
    "SyncAction",
    "SyncOperation",
    "StoreChange",
]
