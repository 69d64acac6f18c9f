"""身份会话提供方

只封装"当前会话"与"登录 / 登出"两类调用，不实现认证协议本身。
get_current_session 为同步调用，返回进程内缓存的会话，供 AppStore 在变更前检查。
"""

import httpx
import structlog

from tasko.core.ids import new_id
from tasko.core.models import AuthSession

from .exceptions import IdentityError

log = structlog.get_logger()


class StaticSessionProvider:
    """进程内身份提供方（开发与测试使用）

    账号以 email -> (password, user_id) 注册在内存中。auto_register 为 True 时，
    未注册的邮箱首次登录即以该密码注册。
    """

    def __init__(
        self,
        session: AuthSession | None = None,
        auto_register: bool = False,
    ) -> None:
        self._session = session
        self._auto_register = auto_register
        self._accounts: dict[str, tuple[str, str]] = {}

    def register(self, email: str, password: str, user_id: str) -> None:
        self._accounts[email.lower()] = (password, user_id)

    def set_session(self, session: AuthSession | None) -> None:
        self._session = session

    def get_current_session(self) -> AuthSession | None:
        return self._session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        if self._auto_register and email.lower() not in self._accounts:
            self.register(email, password, new_id())
        account = self._accounts.get(email.lower())
        if account is None or account[0] != password:
            raise IdentityError("邮箱或密码错误", status_code=400)
        self._session = AuthSession(user_id=account[1], email=email)
        log.info("identity_signed_in", user_id=account[1])
        return self._session

    async def sign_out(self) -> None:
        self._session = None


class RestIdentityProvider:
    """REST 身份提供方 -- /auth/v1/token?grant_type=password"""

    def __init__(
        self,
        base_url: str,
        anon_key: str = "",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._session: AuthSession | None = None
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/auth/v1",
            timeout=timeout_s,
            transport=transport,
        )

    def get_current_session(self) -> AuthSession | None:
        return self._session

    def access_token(self) -> str | None:
        """当前会话的 access_token，供 RestBackend 作为 Bearer token"""
        return self._session.access_token if self._session else None

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """密码登录

        Raises:
            IdentityError: 凭证错误、身份服务不可达或响应格式不正确
        """
        try:
            resp = await self._client.post(
                "/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers={"apikey": self._anon_key},
            )
        except httpx.HTTPError as e:
            raise IdentityError(f"身份服务不可达: {self._base_url} -- {e}") from e

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            message = body.get("error_description") or body.get("msg") or "登录失败"
            raise IdentityError(message, status_code=resp.status_code)

        try:
            body = resp.json()
            session = AuthSession(
                user_id=body["user"]["id"],
                email=body["user"].get("email", email),
                access_token=body["access_token"],
            )
        except (ValueError, KeyError, TypeError) as e:
            raise IdentityError("身份服务响应格式不正确") from e

        self._session = session
        log.info("identity_signed_in", user_id=session.user_id)
        return session

    async def sign_out(self) -> None:
        """登出：清除本地会话，并通知身份服务吊销 token"""
        session, self._session = self._session, None
        if session is None or not session.access_token:
            return
        try:
            await self._client.post(
                "/logout",
                headers={
                    "apikey": self._anon_key,
                    "Authorization": f"Bearer {session.access_token}",
                },
            )
        except httpx.HTTPError as e:
            log.warning("identity_sign_out_failed", error=str(e))

    async def close(self) -> None:
        await self._client.aclose()
