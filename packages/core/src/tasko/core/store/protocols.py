"""Store 协作方 Protocol 接口定义

AppStore 只依赖这两个结构化接口，远端同步与身份会话的具体实现位于 tasko.sync，
core 包不反向依赖 sync 包。
"""

from typing import Protocol

from ..models.sync import SyncOperation
from ..models.user import AuthSession


class RemoteSync(Protocol):
    """远端同步提交接口

    submit 必须立即返回：远端写入在后台执行，调用方从不等待结果。
    """

    def submit(self, op: SyncOperation) -> None:
        """提交一次远端写入"""
        ...


class SessionSource(Protocol):
    """身份会话查询接口"""

    def get_current_session(self) -> AuthSession | None:
        """返回当前已认证会话，未登录时返回 None"""
        ...
