"""邀请流程测试

测试内容：
1. 默认有效期 = 创建时间 + 7 天
2. 接受邀请创建用户并加入团队
3. 过期 / 已接受 / 未知 token 不可接受
"""

from datetime import timedelta

from tasko.core.models import (
    InvitationDraft,
    InvitationPatch,
    InvitationStatus,
    ThemePreference,
    UserRole,
)


def _draft(inviter_id: str, team_id: str | None = None, **kwargs) -> InvitationDraft:
    return InvitationDraft(
        email="bob@example.com",
        invited_by=inviter_id,
        team_id=team_id,
        **kwargs,
    )


class TestCreateInvitation:
    def test_default_expiry_is_seven_days(self, store, alice, clock):
        inv = store.create_invitation(_draft(alice.id))
        assert inv.invited_at == clock.now
        assert inv.expires_at == clock.now + timedelta(days=7)
        assert inv.status == InvitationStatus.PENDING
        assert inv.token

    def test_explicit_expiry_kept(self, store, alice, clock):
        expires = clock.now + timedelta(days=1)
        inv = store.create_invitation(_draft(alice.id, expires_at=expires))
        assert inv.expires_at == expires

    def test_tokens_unique(self, store, alice):
        first = store.create_invitation(_draft(alice.id))
        second = store.create_invitation(_draft(alice.id))
        assert first.token != second.token
        assert store.find_invitation(second.token).id == second.id

    def test_invitations_not_synced(self, store, sync, alice):
        before = len(sync.ops)
        store.create_invitation(_draft(alice.id))
        assert len(sync.ops) == before


class TestAcceptInvitation:
    def test_accept_creates_member(self, store, alice, team):
        inv = store.create_invitation(_draft(alice.id, team.id, role=UserRole.ADMIN))
        user = store.accept_invitation(inv.token)

        assert user.name == "bob"
        assert user.email == "bob@example.com"
        assert user.role == UserRole.ADMIN
        assert user.theme == ThemePreference.SYSTEM
        assert user.team_id == team.id
        assert user.id in store.get_team(team.id).member_ids
        assert user.id in store.current_team.member_ids
        assert store.get_invitation(inv.id).status == InvitationStatus.ACCEPTED

    def test_invited_name_used(self, store, alice):
        inv = store.create_invitation(_draft(alice.id, name="Robert"))
        assert store.accept_invitation(inv.token).name == "Robert"

    def test_expired_rejected(self, store, alice, clock):
        inv = store.create_invitation(_draft(alice.id))
        clock.advance(days=8)
        assert store.accept_invitation(inv.token) is None
        assert store.get_invitation(inv.id).effective_status(clock.now) == InvitationStatus.EXPIRED

    def test_second_accept_rejected(self, store, alice):
        inv = store.create_invitation(_draft(alice.id))
        assert store.accept_invitation(inv.token) is not None
        users_after_first = len(store.users)
        assert store.accept_invitation(inv.token) is None
        assert len(store.users) == users_after_first

    def test_unknown_token(self, store, alice):
        assert store.accept_invitation("nope") is None


class TestUpdateDeleteInvitation:
    def test_update_role(self, store, alice):
        inv = store.create_invitation(_draft(alice.id))
        updated = store.update_invitation(inv.id, InvitationPatch(role=UserRole.ADMIN))
        assert updated.role == UserRole.ADMIN

    def test_delete(self, store, alice):
        inv = store.create_invitation(_draft(alice.id))
        assert store.delete_invitation(inv.id)
        assert store.find_invitation(inv.token) is None
        assert store.delete_invitation(inv.id) is False
