"""RemoteBackend Protocol 接口定义

表级 insert / update / delete / select 操作，行使用远端列名。
所有实现把底层错误包装为 SyncError。
"""

from typing import Any, Protocol


class RemoteBackend(Protocol):
    """远端持久化后端接口"""

    async def insert(self, table: str, row: dict[str, Any]) -> None:
        """插入一行"""
        ...

    async def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        """按 id 部分更新一行（仅给出的列）"""
        ...

    async def delete(self, table: str, row_id: str) -> None:
        """按 id 删除一行"""
        ...

    async def select(
        self,
        table: str,
        *,
        eq: dict[str, Any] | None = None,
        any_eq: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """查询行

        Args:
            table: 表名
            eq: 全部需满足的等值条件（AND）
            any_eq: 满足其一即可的等值条件（OR）
        """
        ...

    async def health_check(self) -> bool:
        """检查远端可达性，不抛出异常"""
        ...

    async def close(self) -> None:
        """释放连接"""
        ...
