"""枚举定义

包含 Task 状态/优先级、用户角色与主题、客户与邀请状态、项目分类，
计时器 TimerState 状态机（VALID_TIMER_TRANSITIONS 合法流转映射），
以及 Store 变更通知使用的 EntityType / ChangeAction。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 看板状态"""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    TESTING = "testing"
    REOPEN = "reopen"
    DONE = "done"


class TaskPriority(StrEnum):
    """Task 优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(StrEnum):
    """用户角色"""

    ADMIN = "admin"
    MEMBER = "member"


class ThemePreference(StrEnum):
    """界面主题偏好"""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class ClientStatus(StrEnum):
    """客户状态"""

    ACTIVE = "active"
    INACTIVE = "inactive"


class InvitationStatus(StrEnum):
    """邀请状态（expired 也可由 expires_at 推导）"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class ProjectCategory(StrEnum):
    """项目分类"""

    WEB_DEVELOPMENT = "web-development"
    MOBILE_APP = "mobile-app"
    DESIGN = "design"
    MARKETING = "marketing"
    SEO = "seo"
    ECOMMERCE = "ecommerce"
    CONSULTING = "consulting"


class TimerState(StrEnum):
    """计时器状态机

    暂停与停止都回到 IDLE，不存在独立的 PAUSED 状态。
    """

    IDLE = "IDLE"
    RUNNING = "RUNNING"


# 计时器合法状态流转
VALID_TIMER_TRANSITIONS: dict[TimerState, set[TimerState]] = {
    TimerState.IDLE: {TimerState.RUNNING},
    TimerState.RUNNING: {TimerState.IDLE},
}


class EntityType(StrEnum):
    """Store 管理的实体集合"""

    TASK = "task"
    PROJECT = "project"
    CLIENT = "client"
    TEAM = "team"
    USER = "user"
    INVITATION = "invitation"
    SESSION = "session"


class ChangeAction(StrEnum):
    """Store 变更动作"""

    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"
    REPLACED = "replaced"


def validate_timer_transition(from_state: TimerState, to_state: TimerState) -> bool:
    """验证计时器状态流转是否合法

    Args:
        from_state: 当前状态
        to_state: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TIMER_TRANSITIONS.get(from_state, set())
    return to_state in allowed
