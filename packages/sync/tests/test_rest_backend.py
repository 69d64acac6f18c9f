"""RestBackend 测试（httpx.MockTransport）

测试内容：
1. PostgREST 请求格式：路径、过滤参数、apikey 与 Bearer 头
2. 错误体映射为 SyncError，5xx / 429 可恢复
3. 连接失败 -> RemoteUnreachableError
4. health_check 不抛异常
"""

import json

import httpx
import pytest
from tasko.sync import RemoteUnreachableError, RestBackend, SyncError


class Recorder:
    """记录请求并返回预设响应"""

    def __init__(self, response: httpx.Response | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.response = response or httpx.Response(201)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


def _backend(handler, token: str | None = None) -> RestBackend:
    return RestBackend(
        "http://db.test/",
        anon_key="anon",
        token_source=lambda: token,
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    async def test_insert(self):
        recorder = Recorder()
        backend = _backend(recorder, token="jwt-abc")
        await backend.insert("tasks", {"id": "t-1", "title": "x"})

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/tasks"
        assert json.loads(request.content) == {"id": "t-1", "title": "x"}
        assert request.headers["apikey"] == "anon"
        assert request.headers["Authorization"] == "Bearer jwt-abc"
        assert request.headers["Prefer"] == "return=minimal"
        await backend.close()

    async def test_anon_key_used_without_session(self):
        recorder = Recorder()
        backend = _backend(recorder)
        await backend.delete("tasks", "t-1")

        request = recorder.requests[0]
        assert request.method == "DELETE"
        assert request.url.params["id"] == "eq.t-1"
        assert request.headers["Authorization"] == "Bearer anon"
        await backend.close()

    async def test_update_filters_by_id(self):
        recorder = Recorder(httpx.Response(204))
        backend = _backend(recorder)
        await backend.update("projects", "p-1", {"client_id": None})

        request = recorder.requests[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.p-1"
        assert json.loads(request.content) == {"client_id": None}
        await backend.close()

    async def test_empty_update_skipped(self):
        recorder = Recorder()
        backend = _backend(recorder)
        await backend.update("projects", "p-1", {})
        assert recorder.requests == []
        await backend.close()

    async def test_select_filters(self):
        recorder = Recorder(httpx.Response(200, json=[{"id": "t-1"}]))
        backend = _backend(recorder)
        rows = await backend.select(
            "tasks",
            eq={"project_id": "p-1"},
            any_eq={"assignee_id": "u-1", "created_by_id": "u-1"},
        )

        params = recorder.requests[0].url.params
        assert rows == [{"id": "t-1"}]
        assert params["select"] == "*"
        assert params["project_id"] == "eq.p-1"
        assert params["or"] == "(assignee_id.eq.u-1,created_by_id.eq.u-1)"
        await backend.close()


class TestErrors:
    async def test_error_body_mapped(self):
        response = httpx.Response(
            409,
            json={
                "code": "23505",
                "message": "duplicate key value",
                "details": "Key (id)=(t-1) already exists.",
                "hint": None,
            },
        )
        backend = _backend(Recorder(response))
        with pytest.raises(SyncError) as exc_info:
            await backend.insert("tasks", {"id": "t-1"})
        error = exc_info.value
        assert error.code == "23505"
        assert error.message == "duplicate key value"
        assert error.detail == "Key (id)=(t-1) already exists."
        assert error.recoverable is False
        await backend.close()

    async def test_server_error_recoverable(self):
        backend = _backend(Recorder(httpx.Response(503, text="unavailable")))
        with pytest.raises(SyncError) as exc_info:
            await backend.insert("tasks", {"id": "t-1"})
        assert exc_info.value.code == "503"
        assert exc_info.value.recoverable is True
        await backend.close()

    async def test_rate_limited_recoverable(self):
        backend = _backend(Recorder(httpx.Response(429, json={"message": "slow down"})))
        with pytest.raises(SyncError) as exc_info:
            await backend.delete("tasks", "t-1")
        assert exc_info.value.recoverable is True
        await backend.close()

    async def test_connection_refused(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        backend = _backend(refuse)
        with pytest.raises(RemoteUnreachableError) as exc_info:
            await backend.insert("tasks", {"id": "t-1"})
        assert exc_info.value.code == "remote_unreachable"
        assert exc_info.value.remote_url == "http://db.test"
        await backend.close()


class TestHealthCheck:
    async def test_healthy(self):
        backend = _backend(Recorder(httpx.Response(200, json={})))
        assert await backend.health_check()
        await backend.close()

    async def test_server_error_unhealthy(self):
        backend = _backend(Recorder(httpx.Response(500)))
        assert not await backend.health_check()
        await backend.close()

    async def test_unreachable_unhealthy(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        backend = _backend(refuse)
        assert not await backend.health_check()
        await backend.close()
