"""SessionService -- 登录 / 登出流程

登录：身份提供方认证 -> 解析或创建 profile -> 设为当前用户 -> 加载工作区并 hydrate。
工作区加载失败只记录日志，登录仍然成功（本地为空工作区）。
"""

import structlog
from tasko.core.models import EntityType, User, UserDraft
from tasko.sync import SyncError, entity_from_row, to_row

from .context import GatewayContext

log = structlog.get_logger()


class SessionService:
    """登录会话业务服务"""

    def __init__(self, context: GatewayContext) -> None:
        self._ctx = context

    async def sign_in(self, email: str, password: str) -> User:
        """登录并加载工作区

        Raises:
            IdentityError: 身份提供方拒绝登录
        """
        session = await self._ctx.sessions.sign_in(email, password)
        user = await self._resolve_user(session.user_id, session.email or email)
        self._ctx.store.set_current_user(user)

        try:
            workspace = await self._ctx.adapter.load_workspace(user)
        except SyncError as e:
            log.warning("workspace_load_failed", user_id=user.id, **e.to_dict())
        else:
            self._ctx.store.hydrate(
                tasks=workspace.tasks,
                projects=workspace.projects,
                clients=workspace.clients,
            )
        return user

    async def sign_out(self) -> None:
        await self._ctx.sessions.sign_out()
        self._ctx.store.clear_current_user()

    async def _resolve_user(self, user_id: str, email: str) -> User:
        store = self._ctx.store
        user = store.get_user(user_id)
        if user is not None:
            return user

        try:
            rows = await self._ctx.backend.select("profiles", eq={"id": user_id})
        except SyncError as e:
            log.warning("profile_load_failed", user_id=user_id, **e.to_dict())
            rows = []

        if rows:
            user = entity_from_row(EntityType.USER, rows[0])
            store.hydrate(users=[*store.users, user])
            return user

        user = store.add_user(UserDraft(id=user_id, name=email.split("@")[0], email=email))
        try:
            await self._ctx.backend.insert("profiles", to_row(EntityType.USER, user.model_dump()))
        except SyncError as e:
            log.warning("profile_create_failed", user_id=user_id, **e.to_dict())
        return user
