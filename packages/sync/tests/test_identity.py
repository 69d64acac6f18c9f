"""身份提供方测试

测试内容：
1. StaticSessionProvider 注册 / 自动注册 / 凭证错误
2. RestIdentityProvider 密码登录、错误映射、登出（httpx.MockTransport）
"""

import json

import httpx
import pytest
from tasko.sync import IdentityError, RestIdentityProvider, StaticSessionProvider


class TestStaticSessionProvider:
    async def test_registered_account(self):
        provider = StaticSessionProvider()
        provider.register("alice@example.com", "secret", "user-1")
        session = await provider.sign_in("Alice@example.com", "secret")
        assert session.user_id == "user-1"
        assert provider.get_current_session() == session

    async def test_wrong_password(self):
        provider = StaticSessionProvider()
        provider.register("alice@example.com", "secret", "user-1")
        with pytest.raises(IdentityError) as exc_info:
            await provider.sign_in("alice@example.com", "wrong")
        assert exc_info.value.status_code == 400
        assert provider.get_current_session() is None

    async def test_unknown_account_without_auto_register(self):
        with pytest.raises(IdentityError):
            await StaticSessionProvider().sign_in("nobody@example.com", "x")

    async def test_auto_register_keeps_identity(self):
        provider = StaticSessionProvider(auto_register=True)
        first = await provider.sign_in("bob@example.com", "pw")
        await provider.sign_out()
        assert provider.get_current_session() is None
        second = await provider.sign_in("bob@example.com", "pw")
        assert first.user_id == second.user_id


def _auth_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/auth/v1/token":
        assert request.url.params["grant_type"] == "password"
        assert request.headers["apikey"] == "anon"
        body = json.loads(request.content)
        if body["password"] != "secret":
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
            )
        return httpx.Response(
            200,
            json={
                "access_token": "jwt-abc",
                "user": {"id": "user-1", "email": body["email"]},
            },
        )
    if request.url.path == "/auth/v1/logout":
        assert request.headers["Authorization"] == "Bearer jwt-abc"
        return httpx.Response(204)
    return httpx.Response(404)


class TestRestIdentityProvider:
    async def test_password_grant(self):
        provider = RestIdentityProvider(
            "http://auth.test",
            anon_key="anon",
            transport=httpx.MockTransport(_auth_handler),
        )
        session = await provider.sign_in("alice@example.com", "secret")
        assert session.user_id == "user-1"
        assert session.access_token == "jwt-abc"
        assert provider.access_token() == "jwt-abc"
        await provider.close()

    async def test_invalid_credentials(self):
        provider = RestIdentityProvider(
            "http://auth.test",
            anon_key="anon",
            transport=httpx.MockTransport(_auth_handler),
        )
        with pytest.raises(IdentityError) as exc_info:
            await provider.sign_in("alice@example.com", "wrong")
        assert exc_info.value.status_code == 400
        assert "Invalid login credentials" in str(exc_info.value)
        assert provider.get_current_session() is None
        await provider.close()

    async def test_unreachable(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        provider = RestIdentityProvider("http://auth.test", transport=httpx.MockTransport(refuse))
        with pytest.raises(IdentityError):
            await provider.sign_in("alice@example.com", "secret")
        await provider.close()

    async def test_malformed_response(self):
        provider = RestIdentityProvider(
            "http://auth.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True})),
        )
        with pytest.raises(IdentityError):
            await provider.sign_in("alice@example.com", "secret")
        await provider.close()

    async def test_sign_out_clears_session(self):
        provider = RestIdentityProvider(
            "http://auth.test",
            anon_key="anon",
            transport=httpx.MockTransport(_auth_handler),
        )
        await provider.sign_in("alice@example.com", "secret")
        await provider.sign_out()
        assert provider.get_current_session() is None
        assert provider.access_token() is None
        await provider.close()
