"""Domain Models 单元测试

测试内容：
1. 枚举序列化/反序列化
2. Pydantic 模型默认值与校验
3. 部分更新只携带显式设置的字段
4. Invitation 过期判断只看 expires_at
"""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError
from tasko.core.models import (
    ClientPatch,
    Invitation,
    InvitationPatch,
    InvitationStatus,
    Project,
    ProjectPatch,
    Task,
    TaskPatch,
    TaskPriority,
    TaskStatus,
    TeamPatch,
    ThemePreference,
    TimeTrackingRecord,
    User,
    UserPatch,
    UserRole,
)

NOW = datetime(2025, 3, 5, 9, 0, tzinfo=UTC)


def _invitation(**overrides) -> Invitation:
    values = {
        "id": "inv-1",
        "email": "bob@example.com",
        "invited_by": "u-1",
        "invited_at": NOW,
        "expires_at": NOW + timedelta(days=7),
        "token": "tok",
    }
    values.update(overrides)
    return Invitation(**values)


class TestEnums:
    """枚举值与字符串互转"""

    def test_task_status_values(self):
        assert TaskStatus.TODO == "todo"
        assert TaskStatus.IN_PROGRESS == "in-progress"
        assert TaskStatus("reopen") == TaskStatus.REOPEN
        assert len(TaskStatus) == 6

    def test_priority_and_role(self):
        assert TaskPriority("high") == TaskPriority.HIGH
        assert UserRole.ADMIN == "admin"
        assert ThemePreference.SYSTEM == "system"

    def test_invalid_status_rejected(self):
        with pytest.raises(ValueError):
            TaskStatus("archived")


class TestTaskModel:
    """Task 模型默认值与校验"""

    def test_defaults(self):
        task = Task(
            id="t-1",
            title="Write copy",
            created_by_id="u-1",
            project_id="p-1",
            created_at=NOW,
            updated_at=NOW,
        )
        assert task.status == TaskStatus.TODO
        assert task.priority == TaskPriority.MEDIUM
        assert task.time_tracking == []
        assert task.time_spent is None
        assert task.cost == 0.0

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            Task(
                id="t-1",
                title="",
                created_by_id="u-1",
                project_id="p-1",
                created_at=NOW,
                updated_at=NOW,
            )

    def test_negative_hourly_rate_rejected(self):
        with pytest.raises(ValidationError):
            TaskPatch(hourly_rate=-1.0)

    def test_json_roundtrip_keeps_history(self):
        record = TimeTrackingRecord(
            id="s-1",
            user_id="u-1",
            start_time=NOW,
            end_time=NOW + timedelta(minutes=10),
            duration=10.0,
        )
        task = Task(
            id="t-1",
            title="Write copy",
            created_by_id="u-1",
            project_id="p-1",
            created_at=NOW,
            updated_at=NOW,
            time_tracking=[record],
        )
        restored = Task.model_validate_json(task.model_dump_json())
        assert restored.time_tracking[0] == record


class TestTimeTrackingRecord:
    def test_open_record(self):
        record = TimeTrackingRecord(id="s-1", user_id="u-1", start_time=NOW)
        assert record.is_open
        assert record.duration == 0.0

    def test_closed_record(self):
        record = TimeTrackingRecord(
            id="s-1",
            user_id="u-1",
            start_time=NOW,
            end_time=NOW + timedelta(minutes=5),
            duration=5.0,
        )
        assert not record.is_open

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            TimeTrackingRecord(id="s-1", user_id="u-1", start_time=NOW, duration=-1)


class TestPartialPatch:
    """部分更新只包含显式传入的字段"""

    def test_unset_fields_excluded(self):
        patch = TaskPatch(title="New title")
        assert patch.model_dump(exclude_unset=True) == {"title": "New title"}

    def test_explicit_none_is_kept(self):
        patch = TaskPatch(assignee_id=None)
        assert patch.model_dump(exclude_unset=True) == {"assignee_id": None}

    @pytest.mark.parametrize("field", ["title", "status", "priority", "project_id", "tags"])
    def test_required_task_field_cannot_be_cleared(self, field):
        with pytest.raises(ValidationError, match=field):
            TaskPatch(**{field: None})

    def test_required_fields_of_other_entities_cannot_be_cleared(self):
        with pytest.raises(ValidationError):
            ProjectPatch(name=None)
        with pytest.raises(ValidationError):
            ClientPatch(status=None)
        with pytest.raises(ValidationError):
            TeamPatch(member_ids=None)
        with pytest.raises(ValidationError):
            UserPatch(theme=None)
        with pytest.raises(ValidationError):
            InvitationPatch(expires_at=None)

    def test_optional_fields_can_be_cleared(self):
        assert ProjectPatch(client_id=None).model_fields_set == {"client_id"}
        assert UserPatch(team_id=None, hourly_rate=None).model_fields_set == {
            "team_id",
            "hourly_rate",
        }


class TestInvitationExpiry:
    """过期只看 expires_at，与存储的 status 无关"""

    def test_pending_not_expired(self):
        inv = _invitation()
        assert inv.effective_status(NOW) == InvitationStatus.PENDING
        assert inv.is_acceptable(NOW)

    def test_expired_after_eight_days(self):
        inv = _invitation()
        later = NOW + timedelta(days=8)
        assert inv.is_expired(later)
        assert inv.effective_status(later) == InvitationStatus.EXPIRED
        assert not inv.is_acceptable(later)

    @pytest.mark.parametrize("status", [InvitationStatus.ACCEPTED, InvitationStatus.EXPIRED])
    def test_expired_regardless_of_stored_status(self, status):
        inv = _invitation(expires_at=NOW - timedelta(seconds=1), status=status)
        assert inv.is_expired(NOW)
        assert not inv.is_acceptable(NOW)
        assert inv.effective_status(NOW) == status

    def test_stored_expired_status_without_elapsed_expiry(self):
        """存储为 expired 但 expires_at 未到：is_expired 仍为 False，但不可接受"""
        inv = _invitation(status=InvitationStatus.EXPIRED)
        assert not inv.is_expired(NOW)
        assert not inv.is_acceptable(NOW)

    def test_accepted_invitation_not_acceptable(self):
        inv = _invitation(status=InvitationStatus.ACCEPTED)
        assert inv.effective_status(NOW) == InvitationStatus.ACCEPTED
        assert not inv.is_acceptable(NOW)


class TestUserAndProject:
    def test_user_defaults(self):
        user = User(id="u-1", name="Alice", email="alice@example.com")
        assert user.role == UserRole.MEMBER
        assert user.theme == ThemePreference.SYSTEM

    def test_project_task_ids_default_empty(self):
        project = Project(id="p-1", name="Website", team_id="team-1", created_at=NOW)
        assert project.task_ids == []
