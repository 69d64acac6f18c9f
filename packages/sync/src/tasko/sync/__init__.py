"""Tasko Sync -- 远端同步层

packages/sync 的公开接口导出。
"""

from .adapter import RemoteSyncAdapter, SyncResult, Workspace

# 后端
from .backends import RemoteBackend, RestBackend, SqliteBackend
from .backends.rest_backend import TokenSource

# 配置
from .config import SyncConfig, load_sync_config

# 异常
from .exceptions import IdentityError, RemoteUnreachableError, SyncError
from .identity import RestIdentityProvider, StaticSessionProvider
from .mapping import entity_from_row, from_row, to_row
from .queue import SyncFailure, SyncQueue


async def create_backend(
    config: SyncConfig,
    db_path: str,
    token_source: TokenSource | None = None,
) -> RemoteBackend:
    """按配置创建远端后端

    Args:
        config: Sync 配置
        db_path: sqlite 后端使用的数据库文件路径
        token_source: rest 后端使用的 access_token 来源

    Returns:
        RemoteBackend 实例
    """
    if config.backend == "rest":
        return RestBackend(
            base_url=config.remote_url,
            anon_key=config.anon_key.get_secret_value(),
            timeout_s=config.timeout_s,
            token_source=token_source,
        )
    return await SqliteBackend.open(db_path)


__all__ = [
    "RemoteSyncAdapter",
    "SyncResult",
    "Workspace",
    "SyncQueue",
    "SyncFailure",
    "RemoteBackend",
    "RestBackend",
    "SqliteBackend",
    "create_backend",
    "StaticSessionProvider",
    "RestIdentityProvider",
    "SyncConfig",
    "load_sync_config",
    "SyncError",
    "RemoteUnreachableError",
    "IdentityError",
    "to_row",
    "from_row",
    "entity_from_row",
]
