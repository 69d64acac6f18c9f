"""远端持久化后端

SqliteBackend 用于开发与测试，RestBackend 对接 PostgREST 兼容 API。
"""

from .protocol import RemoteBackend
from .rest_backend import RestBackend
from .sqlite_backend import SqliteBackend
from .sqlite_init import init_db

__all__ = [
    "RemoteBackend",
    "RestBackend",
    "SqliteBackend",
    "init_db",
]
