"""RemoteBackend 的 REST 实现 -- PostgREST 兼容 API

请求路径 /rest/v1/<table>，携带 apikey 头与 Bearer token；
有身份会话时使用会话 access_token，否则使用匿名密钥。
"""

from collections.abc import Callable
from typing import Any

import httpx
import structlog

from ..exceptions import RemoteUnreachableError, SyncError

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# 连接类异常类型集合（触发 RemoteUnreachableError）
_CONNECTION_ERROR_TYPES = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.TimeoutException,
    httpx.NetworkError,
)

TokenSource = Callable[[], str | None]


class RestBackend:
    """PostgREST 兼容远端后端"""

    def __init__(
        self,
        base_url: str,
        anon_key: str = "",
        timeout_s: float = 10.0,
        token_source: TokenSource | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: 远端基础 URL（不含 /rest/v1）
            anon_key: 匿名访问密钥
            timeout_s: 请求超时（秒）
            token_source: 返回当前会话 access_token 的函数
            transport: 自定义 httpx 传输层（测试注入 MockTransport）
        """
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._token_source = token_source
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/rest/v1",
            timeout=timeout_s,
            transport=transport,
        )

    async def insert(self, table: str, row: dict[str, Any]) -> None:
        await self._request("POST", f"/{table}", json=row)

    async def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        if not values:
            return
        await self._request("PATCH", f"/{table}", params={"id": f"eq.{row_id}"}, json=values)

    async def delete(self, table: str, row_id: str) -> None:
        await self._request("DELETE", f"/{table}", params={"id": f"eq.{row_id}"})

    async def select(
        self,
        table: str,
        *,
        eq: dict[str, Any] | None = None,
        any_eq: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {"select": "*"}
        for column, value in (eq or {}).items():
            params[column] = f"eq.{value}"
        if any_eq:
            params["or"] = "(" + ",".join(f"{c}.eq.{v}" for c, v in any_eq.items()) + ")"
        response = await self._request("GET", f"/{table}", params=params)
        return response.json()

    async def health_check(self) -> bool:
        """GET /rest/v1/，5xx 或不可达时返回 False

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            resp = await self._client.get(
                "/",
                headers=self._headers(),
                timeout=HEALTH_CHECK_TIMEOUT_S,
            )
            return resp.status_code < 500
        except Exception as e:
            log.warning("rest_health_check_failed", remote_url=self._base_url, error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()

    # ============================================================
    # 内部
    # ============================================================

    def _headers(self) -> dict[str, str]:
        token = self._token_source() if self._token_source else None
        return {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {token or self._anon_key}",
            "Prefer": "return=minimal",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(),
            )
        except _CONNECTION_ERROR_TYPES as e:
            raise RemoteUnreachableError(remote_url=self._base_url, original_error=e) from e
        except httpx.HTTPError as e:
            raise SyncError("远端请求失败", code="http_error", detail=str(e)) from e

        if response.status_code >= 400:
            raise _error_from_response(response)
        return response


def _error_from_response(response: httpx.Response) -> SyncError:
    """把 PostgREST 错误体 {code, message, details, hint} 转为 SyncError"""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    return SyncError(
        body.get("message") or f"HTTP {response.status_code}",
        code=str(body.get("code") or response.status_code),
        detail=body.get("details"),
        hint=body.get("hint"),
        recoverable=response.status_code >= 500 or response.status_code == 429,
    )
