"""任务导出路由测试"""

import json

from httpx import AsyncClient


class TestExportRoute:
    async def test_csv_download(self, client: AsyncClient, created_task):
        resp = await client.get(f"/api/tasks/{created_task['id']}/export")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        disposition = resp.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="task-landing-page-')
        assert disposition.endswith('.csv"')
        assert resp.text.startswith('"Task Details"')
        assert '"Assignee","alice"' in resp.text

    async def test_json_download(self, client: AsyncClient, created_task):
        resp = await client.get(
            f"/api/tasks/{created_task['id']}/export",
            params={"format": "json"},
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        data = json.loads(resp.text)
        assert data["task"]["id"] == created_task["id"]
        assert data["task"]["createdBy"]["email"] == "alice@example.com"
        assert data["timeTracking"] == []

    async def test_unknown_format(self, client: AsyncClient, created_task):
        resp = await client.get(
            f"/api/tasks/{created_task['id']}/export",
            params={"format": "xml"},
        )
        assert resp.status_code == 422

    async def test_unknown_task(self, client: AsyncClient, signed_in):
        resp = await client.get("/api/tasks/nope/export")
        assert resp.status_code == 404
