"""派生字段纯函数测试

测试内容：
1. cost = round(time_spent / 60 * hourly_rate, 2)，任一缺失时为 0
2. time_spent 只统计已关闭会话
3. merge_task_patch 按变更字段重算派生字段，返回最小变更集
4. 项目任务索引维护
"""

from datetime import UTC, datetime, timedelta

from tasko.core.derived import (
    build_task,
    calculate_cost,
    merge_patch,
    merge_task_patch,
    move_task_between_projects,
    rebuild_project_index,
    session_duration_minutes,
    total_time_spent,
)
from tasko.core.models import (
    Project,
    ProjectPatch,
    TaskDraft,
    TaskPatch,
    TimeTrackingRecord,
)

NOW = datetime(2025, 3, 5, 9, 0, tzinfo=UTC)


def _closed(record_id: str, minutes: float) -> TimeTrackingRecord:
    return TimeTrackingRecord(
        id=record_id,
        user_id="u-1",
        start_time=NOW,
        end_time=NOW + timedelta(minutes=minutes),
        duration=minutes,
    )


def _open(record_id: str) -> TimeTrackingRecord:
    return TimeTrackingRecord(id=record_id, user_id="u-1", start_time=NOW)


def _project(project_id: str, task_ids: list[str] | None = None) -> Project:
    return Project(
        id=project_id,
        name=project_id,
        team_id="team-1",
        created_at=NOW,
        task_ids=task_ids or [],
    )


class TestCalculateCost:
    def test_two_hours_at_sixty(self):
        assert calculate_cost(120, 60) == 120.00

    def test_rounded_to_cents(self):
        assert calculate_cost(7, 10) == 1.17

    def test_missing_inputs_give_zero(self):
        assert calculate_cost(None, 60) == 0.0
        assert calculate_cost(120, None) == 0.0
        assert calculate_cost(0, 60) == 0.0


class TestSessionTotals:
    def test_open_sessions_excluded(self):
        records = [_closed("a", 10), _open("b"), _closed("c", 15)]
        assert total_time_spent(records) == 25

    def test_empty_history(self):
        assert total_time_spent([]) == 0.0

    def test_duration_never_negative(self):
        assert session_duration_minutes(NOW, NOW - timedelta(minutes=3)) == 0.0
        assert session_duration_minutes(NOW, NOW + timedelta(seconds=90)) == 1.5


class TestBuildTask:
    def test_history_drives_time_spent_and_cost(self):
        draft = TaskDraft(
            title="Design",
            created_by_id="u-1",
            project_id="p-1",
            time_spent=999,
            time_tracking=[_closed("a", 30), _closed("b", 60)],
            hourly_rate=40,
        )
        task = build_task(draft, "t-1", NOW)
        assert task.time_spent == 90
        assert task.cost == 60.0
        assert task.created_at == task.updated_at == NOW

    def test_plain_time_spent_kept_without_history(self):
        draft = TaskDraft(
            title="Design",
            created_by_id="u-1",
            project_id="p-1",
            time_spent=120,
            hourly_rate=60,
        )
        task = build_task(draft, "t-1", NOW)
        assert task.time_spent == 120
        assert task.cost == 120.0


class TestMergeTaskPatch:
    def _task(self):
        draft = TaskDraft(
            title="Design",
            created_by_id="u-1",
            project_id="p-1",
            time_tracking=[_closed("a", 10)],
            hourly_rate=60,
        )
        return build_task(draft, "t-1", NOW)

    def test_title_change_does_not_touch_cost(self):
        later = NOW + timedelta(minutes=1)
        merged, changes = merge_task_patch(self._task(), TaskPatch(title="Redesign"), later)
        assert merged.title == "Redesign"
        assert changes == {"title": "Redesign", "updated_at": later}

    def test_history_change_recomputes_time_spent_and_cost(self):
        task = self._task()
        patch = TaskPatch(time_tracking=[*task.time_tracking, _closed("b", 20)])
        merged, changes = merge_task_patch(task, patch, NOW)
        assert merged.time_spent == 30
        assert merged.cost == 30.0
        assert changes["time_spent"] == 30
        assert changes["cost"] == 30.0
        assert len(changes["time_tracking"]) == 2

    def test_rate_change_recomputes_cost_only(self):
        merged, changes = merge_task_patch(self._task(), TaskPatch(hourly_rate=120), NOW)
        assert merged.cost == 20.0
        assert "time_spent" not in changes

    def test_clearing_history_resets_time_spent(self):
        merged, changes = merge_task_patch(self._task(), TaskPatch(time_tracking=None), NOW)
        assert merged.time_tracking == []
        assert merged.time_spent == 0.0
        assert merged.cost == 0.0

    def test_same_edit_twice_is_idempotent(self):
        task = self._task()
        edited = [task.time_tracking[0].model_copy(update={"duration": 45})]
        once, _ = merge_task_patch(task, TaskPatch(time_tracking=edited), NOW)
        twice, _ = merge_task_patch(once, TaskPatch(time_tracking=edited), NOW)
        assert once.time_spent == twice.time_spent == 45


class TestMergePatch:
    def test_only_set_fields_applied(self):
        project = _project("p-1")
        merged, changes = merge_patch(project, ProjectPatch(budget=500.0))
        assert merged.budget == 500.0
        assert merged.name == "p-1"
        assert changes == {"budget": 500.0}

    def test_stamps_included(self):
        project = _project("p-1")
        _, changes = merge_patch(project, ProjectPatch(), revenue=10.0)
        assert changes == {"revenue": 10.0}


class TestProjectIndex:
    def test_move_between_projects(self):
        projects = [_project("p-1", ["t-1"]), _project("p-2")]
        moved = move_task_between_projects(projects, "t-1", "p-2")
        assert moved[0].task_ids == []
        assert moved[1].task_ids == ["t-1"]

    def test_unchanged_projects_returned_as_is(self):
        projects = [_project("p-1", ["t-9"]), _project("p-2")]
        moved = move_task_between_projects(projects, "t-1", "p-2")
        assert moved[0] is projects[0]

    def test_remove_from_all(self):
        projects = [_project("p-1", ["t-1", "t-2"])]
        assert move_task_between_projects(projects, "t-1", None)[0].task_ids == ["t-2"]

    def test_rebuild_from_tasks(self):
        tasks = [
            build_task(TaskDraft(title="a", created_by_id="u", project_id="p-2"), "t-1", NOW),
            build_task(TaskDraft(title="b", created_by_id="u", project_id="p-2"), "t-2", NOW),
        ]
        rebuilt = rebuild_project_index([_project("p-1", ["stale"]), _project("p-2")], tasks)
        assert rebuilt[0].task_ids == []
        assert rebuilt[1].task_ids == ["t-1", "t-2"]
