"""工作区查询 -- 基于 StoreState 快照的只读过滤

用户可见范围：
- 任务：自己创建或负责的任务，以及所在团队项目下的任务
- 项目：用户所在团队的项目
- 客户：自己创建的客户，以及所在团队的客户
"""

from typing import Literal

from .models.enums import UserRole
from .models.project import Client, Project
from .models.task import Task
from .models.user import User
from .store import StoreState

ResourceType = Literal["task", "project", "client"]


def _team_of_user(state: StoreState, user_id: str) -> str | None:
    current = state.current_user
    if current is not None and current.id == user_id:
        return current.team_id
    user = next((u for u in state.users if u.id == user_id), None)
    return user.team_id if user else None


def _is_member(state: StoreState, team_id: str, user_id: str) -> bool:
    team = next((t for t in state.teams if t.id == team_id), None)
    return team is not None and user_id in team.member_ids


def tasks_for_user(state: StoreState, user_id: str) -> list[Task]:
    team_id = _team_of_user(state, user_id)
    team_projects = {p.id for p in state.projects if team_id and p.team_id == team_id}
    return [
        t for t in state.tasks
        if t.created_by_id == user_id
        or t.assignee_id == user_id
        or t.project_id in team_projects
    ]


def projects_for_user(state: StoreState, user_id: str) -> list[Project]:
    return [p for p in state.projects if _is_member(state, p.team_id, user_id)]


def clients_for_user(state: StoreState, user_id: str) -> list[Client]:
    team_id = _team_of_user(state, user_id)
    return [
        c for c in state.clients
        if c.created_by_id == user_id or (team_id is not None and c.team_id == team_id)
    ]


def tasks_for_team(state: StoreState, team_id: str) -> list[Task]:
    team_projects = {p.id for p in state.projects if p.team_id == team_id}
    return [t for t in state.tasks if t.project_id in team_projects]


def projects_for_team(state: StoreState, team_id: str) -> list[Project]:
    return [p for p in state.projects if p.team_id == team_id]


def clients_for_team(state: StoreState, team_id: str) -> list[Client]:
    return [c for c in state.clients if c.team_id == team_id]


def current_user_workspace(state: StoreState) -> dict[str, list]:
    """当前用户的工作区；未登录时三类均为空"""
    user = state.current_user
    if user is None:
        return {"tasks": [], "projects": [], "clients": []}
    return {
        "tasks": tasks_for_user(state, user.id),
        "projects": projects_for_user(state, user.id),
        "clients": clients_for_user(state, user.id),
    }


def has_access_to_resource(
    state: StoreState,
    user_id: str,
    resource_type: ResourceType,
    resource_id: str,
) -> bool:
    """资源访问判断

    task: 创建者或负责人；project: 项目所属团队成员；client: 创建者。
    """
    if resource_type == "task":
        task = next((t for t in state.tasks if t.id == resource_id), None)
        return task is not None and user_id in (task.created_by_id, task.assignee_id)
    if resource_type == "project":
        project = next((p for p in state.projects if p.id == resource_id), None)
        return project is not None and _is_member(state, project.team_id, user_id)
    if resource_type == "client":
        client = next((c for c in state.clients if c.id == resource_id), None)
        return client is not None and client.created_by_id == user_id
    return False


def get_team_members(state: StoreState, team_id: str) -> list[User]:
    team = next((t for t in state.teams if t.id == team_id), None)
    if team is None:
        return []
    by_id = {u.id: u for u in state.users}
    return [by_id[m] for m in team.member_ids if m in by_id]


def is_current_user_admin(state: StoreState) -> bool:
    return state.current_user is not None and state.current_user.role == UserRole.ADMIN


def is_current_user_in_team(state: StoreState, team_id: str) -> bool:
    user = state.current_user
    return user is not None and _is_member(state, team_id, user.id)
