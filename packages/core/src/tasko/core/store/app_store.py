"""AppStore -- 本地优先的内存状态 Store

所有变更同步完成本地提交并通知订阅者，随后把远端写入作为 SyncOperation
交给 RemoteSync 在后台执行；远端失败不会回滚本地状态。

状态保存在不可变快照 StoreState 中，每次变更构建新列表并整体替换快照。
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..config import INVITATION_TTL_DAYS
from ..derived import (
    build_task,
    merge_patch,
    merge_task_patch,
    move_task_between_projects,
    rebuild_project_index,
)
from ..ids import new_id, new_token, utc_now
from ..models.enums import ChangeAction, EntityType, InvitationStatus, ThemePreference, UserRole
from ..models.invitation import Invitation, InvitationDraft, InvitationPatch
from ..models.project import Client, ClientDraft, ClientPatch, Project, ProjectDraft, ProjectPatch
from ..models.sync import StoreChange, SyncAction, SyncOperation
from ..models.task import Task, TaskDraft, TaskPatch
from ..models.user import Team, TeamDraft, TeamPatch, User, UserDraft, UserPatch
from .protocols import RemoteSync, SessionSource

log = structlog.get_logger()

StoreListener = Callable[[StoreChange], None]

# (实体, 动作, 实体 ID)
_Change = tuple[EntityType, ChangeAction, str | None]


class StoreState(BaseModel):
    """Store 状态快照"""

    model_config = ConfigDict(frozen=True)

    users: list[User] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    clients: list[Client] = Field(default_factory=list)
    invitations: list[Invitation] = Field(default_factory=list)
    current_user: User | None = None
    current_team: Team | None = None


def _find(items: Iterable[Any], item_id: str) -> Any | None:
    return next((item for item in items if item.id == item_id), None)


def _replace(items: list[Any], item: Any) -> list[Any]:
    return [item if existing.id == item.id else existing for existing in items]


def _without(items: list[Any], item_id: str) -> list[Any]:
    return [item for item in items if item.id != item_id]


class AppStore:
    """本地状态 Store

    协作方均通过构造参数显式注入：
    - sync: 远端同步提交接口，为 None 时只做本地变更
    - sessions: 身份会话来源，为 None 时新增操作只检查当前用户
    - clock: 时钟，测试中可替换
    """

    def __init__(
        self,
        sync: RemoteSync | None = None,
        sessions: SessionSource | None = None,
        clock: Callable[[], datetime] = utc_now,
        invitation_ttl_days: int = INVITATION_TTL_DAYS,
    ) -> None:
        self._state = StoreState()
        self._sync = sync
        self._sessions = sessions
        self._clock = clock
        self._invitation_ttl = timedelta(days=invitation_ttl_days)
        self._listeners: list[StoreListener] = []

    # ============================================================
    # 读取
    # ============================================================

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def users(self) -> list[User]:
        return self._state.users

    @property
    def teams(self) -> list[Team]:
        return self._state.teams

    @property
    def projects(self) -> list[Project]:
        return self._state.projects

    @property
    def tasks(self) -> list[Task]:
        return self._state.tasks

    @property
    def clients(self) -> list[Client]:
        return self._state.clients

    @property
    def invitations(self) -> list[Invitation]:
        return self._state.invitations

    @property
    def current_user(self) -> User | None:
        return self._state.current_user

    @property
    def current_team(self) -> Team | None:
        return self._state.current_team

    def now(self) -> datetime:
        """Store 使用的当前时间"""
        return self._clock()

    def get_user(self, user_id: str) -> User | None:
        user = _find(self._state.users, user_id)
        if user is None and self._state.current_user and self._state.current_user.id == user_id:
            return self._state.current_user
        return user

    def get_team(self, team_id: str) -> Team | None:
        return _find(self._state.teams, team_id)

    def get_project(self, project_id: str) -> Project | None:
        return _find(self._state.projects, project_id)

    def get_task(self, task_id: str) -> Task | None:
        return _find(self._state.tasks, task_id)

    def get_client(self, client_id: str) -> Client | None:
        return _find(self._state.clients, client_id)

    def get_invitation(self, invitation_id: str) -> Invitation | None:
        return _find(self._state.invitations, invitation_id)

    # ============================================================
    # 订阅
    # ============================================================

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """注册变更监听器，返回取消订阅函数"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ============================================================
    # 会话
    # ============================================================

    def set_current_user(self, user: User | None) -> None:
        self._commit(
            (EntityType.SESSION, ChangeAction.UPDATED, user.id if user else None),
            current_user=user,
        )
        log.info("current_user_set", user_id=user.id if user else None)

    def clear_current_user(self) -> None:
        self.set_current_user(None)

    def set_current_team(self, team: Team | None) -> None:
        self._commit(
            (EntityType.SESSION, ChangeAction.UPDATED, team.id if team else None),
            current_team=team,
        )

    # ============================================================
    # User
    # ============================================================

    def add_user(self, draft: UserDraft) -> User:
        now = self._clock()
        values = draft.model_dump()
        values["id"] = draft.id or new_id()
        user = User(**values, created_at=now, updated_at=now)
        self._commit(
            (EntityType.USER, ChangeAction.ADDED, user.id),
            users=[*self._state.users, user],
        )
        log.info("user_added", user_id=user.id)
        return user

    def update_user(self, user_id: str, patch: UserPatch) -> User | None:
        """更新用户并同步到远端 profiles 表

        当前用户的同一 id 记录一并更新。
        """
        user = self.get_user(user_id)
        if user is None:
            log.warning("user_not_found", user_id=user_id)
            return None

        updated, changes = merge_patch(user, patch, updated_at=self._clock())
        updates: dict[str, Any] = {"users": _replace(self._state.users, updated)}
        if self._state.current_user and self._state.current_user.id == user_id:
            updates["current_user"] = updated
        self._commit((EntityType.USER, ChangeAction.UPDATED, user_id), **updates)
        self._submit(EntityType.USER, SyncAction.UPDATE, user_id, changes)
        return updated

    def set_user_role(self, user_id: str, role: UserRole) -> User | None:
        return self.update_user(user_id, UserPatch(role=role))

    def set_user_hourly_rate(self, user_id: str, hourly_rate: float | None) -> User | None:
        return self.update_user(user_id, UserPatch(hourly_rate=hourly_rate))

    def set_user_theme(self, user_id: str, theme: ThemePreference) -> User | None:
        return self.update_user(user_id, UserPatch(theme=theme))

    def delete_user(self, user_id: str) -> bool:
        """删除用户

        以下情况拒绝删除（记录 warning 并返回 False）：
        - 该用户是当前用户
        - 该用户是任一任务的负责人
        - 该用户是任一团队的成员
        """
        state = self._state
        reason = None
        if state.current_user and state.current_user.id == user_id:
            reason = "current_user"
        elif any(task.assignee_id == user_id for task in state.tasks):
            reason = "has_assigned_tasks"
        elif any(user_id in team.member_ids for team in state.teams):
            reason = "team_member"

        if reason is not None:
            log.warning("user_delete_rejected", user_id=user_id, reason=reason)
            return False

        if _find(state.users, user_id) is None:
            log.warning("user_not_found", user_id=user_id)
            return False

        self._commit(
            (EntityType.USER, ChangeAction.DELETED, user_id),
            users=_without(state.users, user_id),
        )
        log.info("user_deleted", user_id=user_id)
        return True

    # ============================================================
    # Team
    # ============================================================

    def add_team(self, draft: TeamDraft) -> Team:
        team = Team(id=new_id(), created_at=self._clock(), **draft.model_dump())
        self._commit(
            (EntityType.TEAM, ChangeAction.ADDED, team.id),
            teams=[*self._state.teams, team],
        )
        log.info("team_added", team_id=team.id)
        return team

    def update_team(self, team_id: str, patch: TeamPatch) -> Team | None:
        team = self.get_team(team_id)
        if team is None:
            log.warning("team_not_found", team_id=team_id)
            return None
        updated, _ = merge_patch(team, patch)
        self._put_team(updated)
        return updated

    def delete_team(self, team_id: str) -> bool:
        if self.get_team(team_id) is None:
            log.warning("team_not_found", team_id=team_id)
            return False
        updates: dict[str, Any] = {"teams": _without(self._state.teams, team_id)}
        if self._state.current_team and self._state.current_team.id == team_id:
            updates["current_team"] = None
        self._commit((EntityType.TEAM, ChangeAction.DELETED, team_id), **updates)
        log.info("team_deleted", team_id=team_id)
        return True

    def add_member_to_team(self, team_id: str, user_id: str) -> Team | None:
        """添加团队成员；用户或团队不存在时记录 error 并不做变更"""
        if self.get_user(user_id) is None:
            log.error("team_member_user_not_found", team_id=team_id, user_id=user_id)
            return None
        team = self.get_team(team_id)
        if team is None:
            log.error("team_not_found", team_id=team_id)
            return None
        if user_id in team.member_ids:
            return team
        updated = team.model_copy(update={"member_ids": [*team.member_ids, user_id]})
        self._put_team(updated)
        return updated

    def remove_member_from_team(self, team_id: str, user_id: str) -> Team | None:
        team = self.get_team(team_id)
        if team is None:
            log.warning("team_not_found", team_id=team_id)
            return None
        updated = team.model_copy(
            update={"member_ids": [m for m in team.member_ids if m != user_id]},
        )
        self._put_team(updated)
        return updated

    def _put_team(self, team: Team) -> None:
        updates: dict[str, Any] = {"teams": _replace(self._state.teams, team)}
        if self._state.current_team and self._state.current_team.id == team.id:
            updates["current_team"] = team
        self._commit((EntityType.TEAM, ChangeAction.UPDATED, team.id), **updates)

    # ============================================================
    # Project
    # ============================================================

    def add_project(self, draft: ProjectDraft) -> Project | None:
        if not self._can_add(EntityType.PROJECT):
            return None

        project = Project(id=new_id(), created_at=self._clock(), **draft.model_dump())
        self._commit(
            (EntityType.PROJECT, ChangeAction.ADDED, project.id),
            projects=[*self._state.projects, project],
        )
        log.info("project_added", project_id=project.id, team_id=project.team_id)
        self._submit(
            EntityType.PROJECT,
            SyncAction.INSERT,
            project.id,
            project.model_dump(exclude={"task_ids"}),
        )
        return project

    def update_project(self, project_id: str, patch: ProjectPatch) -> Project | None:
        project = self.get_project(project_id)
        if project is None:
            log.warning("project_not_found", project_id=project_id)
            return None

        updated, changes = merge_patch(project, patch)
        self._commit(
            (EntityType.PROJECT, ChangeAction.UPDATED, project_id),
            projects=_replace(self._state.projects, updated),
        )
        self._submit(EntityType.PROJECT, SyncAction.UPDATE, project_id, changes)
        return updated

    def delete_project(self, project_id: str) -> bool:
        """删除项目及其所有任务"""
        project = self.get_project(project_id)
        if project is None:
            log.warning("project_not_found", project_id=project_id)
            return False

        owned = set(project.task_ids) | {
            t.id for t in self._state.tasks if t.project_id == project_id
        }
        removed = [t.id for t in self._state.tasks if t.id in owned]
        self._commit(
            (EntityType.PROJECT, ChangeAction.DELETED, project_id),
            *[(EntityType.TASK, ChangeAction.DELETED, task_id) for task_id in removed],
            projects=_without(self._state.projects, project_id),
            tasks=[t for t in self._state.tasks if t.id not in owned],
        )
        log.info("project_deleted", project_id=project_id, task_count=len(removed))

        for task_id in removed:
            self._submit(EntityType.TASK, SyncAction.DELETE, task_id)
        self._submit(EntityType.PROJECT, SyncAction.DELETE, project_id)
        return True

    # ============================================================
    # Task
    # ============================================================

    def add_task(self, draft: TaskDraft) -> Task | None:
        """新建任务：计算派生字段、加入项目索引并提交远端 insert

        没有当前用户、没有会话或会话用户与当前用户不一致时放弃。
        """
        if not self._can_add(EntityType.TASK, require_session_match=True):
            return None

        task = build_task(draft, new_id(), self._clock())
        self._commit(
            (EntityType.TASK, ChangeAction.ADDED, task.id),
            tasks=[*self._state.tasks, task],
            projects=move_task_between_projects(self._state.projects, task.id, task.project_id),
        )
        log.info("task_added", task_id=task.id, project_id=task.project_id)
        self._submit(EntityType.TASK, SyncAction.INSERT, task.id, task.model_dump())
        return task

    def update_task(self, task_id: str, patch: TaskPatch) -> Task | None:
        """合并部分更新并重算派生字段

        远端 update 只包含实际变更的字段及重算出的派生字段。
        """
        task = self.get_task(task_id)
        if task is None:
            log.warning("task_not_found", task_id=task_id)
            return None

        updated, changes = merge_task_patch(task, patch, self._clock())
        updates: dict[str, Any] = {"tasks": _replace(self._state.tasks, updated)}
        if updated.project_id != task.project_id:
            updates["projects"] = move_task_between_projects(
                self._state.projects, task_id, updated.project_id,
            )
        self._commit((EntityType.TASK, ChangeAction.UPDATED, task_id), **updates)
        self._submit(EntityType.TASK, SyncAction.UPDATE, task_id, changes)
        return updated

    def delete_task(self, task_id: str) -> bool:
        if self.get_task(task_id) is None:
            log.warning("task_not_found", task_id=task_id)
            return False

        self._commit(
            (EntityType.TASK, ChangeAction.DELETED, task_id),
            tasks=_without(self._state.tasks, task_id),
            projects=move_task_between_projects(self._state.projects, task_id, None),
        )
        log.info("task_deleted", task_id=task_id)
        self._submit(EntityType.TASK, SyncAction.DELETE, task_id)
        return True

    # ============================================================
    # Client
    # ============================================================

    def add_client(self, draft: ClientDraft) -> Client | None:
        if not self._can_add(EntityType.CLIENT):
            return None

        values = draft.model_dump()
        if values["created_by_id"] is None:
            values["created_by_id"] = self._state.current_user.id
        client = Client(id=new_id(), created_at=self._clock(), **values)
        self._commit(
            (EntityType.CLIENT, ChangeAction.ADDED, client.id),
            clients=[*self._state.clients, client],
        )
        log.info("client_added", client_id=client.id)
        self._submit(EntityType.CLIENT, SyncAction.INSERT, client.id, client.model_dump())
        return client

    def update_client(self, client_id: str, patch: ClientPatch) -> Client | None:
        client = self.get_client(client_id)
        if client is None:
            log.warning("client_not_found", client_id=client_id)
            return None

        updated, changes = merge_patch(client, patch)
        self._commit(
            (EntityType.CLIENT, ChangeAction.UPDATED, client_id),
            clients=_replace(self._state.clients, updated),
        )
        self._submit(EntityType.CLIENT, SyncAction.UPDATE, client_id, changes)
        return updated

    def delete_client(self, client_id: str) -> bool:
        """删除客户，并清空关联项目的 client_id"""
        if self.get_client(client_id) is None:
            log.warning("client_not_found", client_id=client_id)
            return False

        detached = [p.id for p in self._state.projects if p.client_id == client_id]
        projects = [
            p.model_copy(update={"client_id": None}) if p.client_id == client_id else p
            for p in self._state.projects
        ]
        self._commit(
            (EntityType.CLIENT, ChangeAction.DELETED, client_id),
            *[(EntityType.PROJECT, ChangeAction.UPDATED, pid) for pid in detached],
            clients=_without(self._state.clients, client_id),
            projects=projects,
        )
        log.info("client_deleted", client_id=client_id, detached_projects=len(detached))

        for project_id in detached:
            self._submit(EntityType.PROJECT, SyncAction.UPDATE, project_id, {"client_id": None})
        self._submit(EntityType.CLIENT, SyncAction.DELETE, client_id)
        return True

    # ============================================================
    # Invitation
    # ============================================================

    def create_invitation(self, draft: InvitationDraft) -> Invitation:
        now = self._clock()
        invitation = Invitation(
            id=new_id(),
            invited_at=now,
            token=new_token(),
            **draft.model_dump(exclude={"expires_at"}),
            expires_at=draft.expires_at or now + self._invitation_ttl,
        )
        self._commit(
            (EntityType.INVITATION, ChangeAction.ADDED, invitation.id),
            invitations=[*self._state.invitations, invitation],
        )
        log.info(
            "invitation_created",
            invitation_id=invitation.id,
            team_id=invitation.team_id,
            expires_at=invitation.expires_at.isoformat(),
        )
        return invitation

    def update_invitation(
        self,
        invitation_id: str,
        patch: InvitationPatch,
    ) -> Invitation | None:
        invitation = self.get_invitation(invitation_id)
        if invitation is None:
            log.warning("invitation_not_found", invitation_id=invitation_id)
            return None
        updated, _ = merge_patch(invitation, patch)
        self._commit(
            (EntityType.INVITATION, ChangeAction.UPDATED, invitation_id),
            invitations=_replace(self._state.invitations, updated),
        )
        return updated

    def delete_invitation(self, invitation_id: str) -> bool:
        if self.get_invitation(invitation_id) is None:
            log.warning("invitation_not_found", invitation_id=invitation_id)
            return False
        self._commit(
            (EntityType.INVITATION, ChangeAction.DELETED, invitation_id),
            invitations=_without(self._state.invitations, invitation_id),
        )
        return True

    def find_invitation(self, token: str) -> Invitation | None:
        return next((i for i in self._state.invitations if i.token == token), None)

    def accept_invitation(self, token: str) -> User | None:
        """接受邀请：创建用户、加入团队并把邀请标记为 accepted

        邀请不存在、非 pending 或已过期时返回 None。
        """
        invitation = self.find_invitation(token)
        if invitation is None:
            log.warning("invitation_token_unknown")
            return None

        now = self._clock()
        if not invitation.is_acceptable(now):
            log.warning(
                "invitation_not_acceptable",
                invitation_id=invitation.id,
                status=invitation.effective_status(now),
            )
            return None

        user = User(
            id=new_id(),
            name=invitation.name or invitation.email.split("@")[0],
            email=invitation.email,
            role=invitation.role,
            theme=ThemePreference.SYSTEM,
            team_id=invitation.team_id,
            created_at=now,
            updated_at=now,
        )
        accepted = invitation.model_copy(update={"status": InvitationStatus.ACCEPTED})
        changes: list[_Change] = [
            (EntityType.USER, ChangeAction.ADDED, user.id),
            (EntityType.INVITATION, ChangeAction.UPDATED, invitation.id),
        ]
        updates: dict[str, Any] = {
            "users": [*self._state.users, user],
            "invitations": _replace(self._state.invitations, accepted),
        }

        team = self.get_team(invitation.team_id) if invitation.team_id else None
        if team is not None:
            joined = team.model_copy(update={"member_ids": [*team.member_ids, user.id]})
            updates["teams"] = _replace(self._state.teams, joined)
            if self._state.current_team and self._state.current_team.id == team.id:
                updates["current_team"] = joined
            changes.append((EntityType.TEAM, ChangeAction.UPDATED, team.id))

        self._commit(*changes, **updates)
        log.info("invitation_accepted", invitation_id=invitation.id, user_id=user.id)
        return user

    # ============================================================
    # 批量加载
    # ============================================================

    def hydrate(
        self,
        *,
        tasks: list[Task] | None = None,
        projects: list[Project] | None = None,
        clients: list[Client] | None = None,
        users: list[User] | None = None,
    ) -> None:
        """用远端加载结果整体替换集合，并重建项目任务索引"""
        updates: dict[str, Any] = {}
        changes: list[_Change] = []
        for entity, name, items in (
            (EntityType.TASK, "tasks", tasks),
            (EntityType.PROJECT, "projects", projects),
            (EntityType.CLIENT, "clients", clients),
            (EntityType.USER, "users", users),
        ):
            if items is not None:
                updates[name] = list(items)
                changes.append((entity, ChangeAction.REPLACED, None))

        updates["projects"] = rebuild_project_index(
            updates.get("projects", self._state.projects),
            updates.get("tasks", self._state.tasks),
        )
        self._commit(*changes, **updates)
        log.info(
            "store_hydrated",
            tasks=len(self._state.tasks),
            projects=len(self._state.projects),
            clients=len(self._state.clients),
        )

    # ============================================================
    # 内部
    # ============================================================

    def _can_add(self, entity: EntityType, *, require_session_match: bool = False) -> bool:
        user = self._state.current_user
        if user is None:
            log.warning("add_abandoned_no_user", entity=entity)
            return False
        if self._sessions is None:
            return True

        session = self._sessions.get_current_session()
        if session is None:
            log.warning("add_abandoned_no_session", entity=entity, user_id=user.id)
            return False
        if require_session_match and session.user_id != user.id:
            log.warning(
                "session_user_mismatch",
                entity=entity,
                local_user_id=user.id,
                session_user_id=session.user_id,
            )
            return False
        return True

    def _commit(self, *changes: _Change, **updates: Any) -> None:
        self._state = self._state.model_copy(update=updates)
        ts = self._clock()
        for entity, action, entity_id in changes:
            self._notify(
                StoreChange(entity=entity, action=action, entity_id=entity_id, ts=ts),
            )

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                log.exception(
                    "store_listener_failed",
                    entity=change.entity,
                    action=change.action,
                )

    def _submit(
        self,
        entity: EntityType,
        action: SyncAction,
        entity_id: str,
        payload: dict[str, Any] | None = None,
    ) -> None:
        if self._sync is None:
            return
        current = self._state.current_user
        op = SyncOperation(
            op_id=new_id(),
            entity=entity,
            action=action,
            entity_id=entity_id,
            actor_id=current.id if current else None,
            payload=payload or {},
            submitted_at=self._clock(),
        )
        self._sync.submit(op)
