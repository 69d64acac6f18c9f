"""packages/core 测试配置 -- 可控时钟、同步记录器与已登录 Store fixture"""

from datetime import UTC, datetime, timedelta

import pytest
from tasko.core.models import (
    AuthSession,
    ProjectDraft,
    SyncOperation,
    TaskDraft,
    TeamDraft,
    UserDraft,
)
from tasko.core.store import AppStore

T0 = datetime(2025, 3, 5, 9, 0, tzinfo=UTC)


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingSync:
    """记录提交的 SyncOperation，不做远端写入"""

    def __init__(self) -> None:
        self.ops: list[SyncOperation] = []

    def submit(self, op: SyncOperation) -> None:
        self.ops.append(op)


class FakeSessions:
    """可直接设置的会话来源"""

    def __init__(self, session: AuthSession | None = None) -> None:
        self.session = session

    def get_current_session(self) -> AuthSession | None:
        return self.session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sync() -> RecordingSync:
    return RecordingSync()


@pytest.fixture
def sessions() -> FakeSessions:
    return FakeSessions()


@pytest.fixture
def store(sync: RecordingSync, sessions: FakeSessions, clock: FakeClock) -> AppStore:
    return AppStore(sync=sync, sessions=sessions, clock=clock)


@pytest.fixture
def alice(store: AppStore, sessions: FakeSessions):
    """已登录的当前用户（会话与当前用户一致）"""
    user = store.add_user(UserDraft(name="Alice", email="alice@example.com", hourly_rate=60.0))
    sessions.session = AuthSession(user_id=user.id, email=user.email)
    store.set_current_user(user)
    return user


@pytest.fixture
def team(store: AppStore, alice):
    team = store.add_team(TeamDraft(name="Studio", member_ids=[alice.id]))
    store.set_current_team(team)
    return team


@pytest.fixture
def project(store: AppStore, team):
    return store.add_project(ProjectDraft(name="Website", team_id=team.id))


@pytest.fixture
def task(store: AppStore, alice, project):
    return store.add_task(
        TaskDraft(
            title="Landing page",
            created_by_id=alice.id,
            assignee_id=alice.id,
            project_id=project.id,
            hourly_rate=60.0,
        )
    )
