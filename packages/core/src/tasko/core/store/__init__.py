"""Tasko Core Store -- 本地优先内存状态

AppStore 是唯一的应用状态入口；远端同步与身份会话通过 Protocol 注入。
"""

from .app_store import AppStore, StoreListener, StoreState
from .protocols import RemoteSync, SessionSource

__all__ = [
    "AppStore",
    "StoreState",
    "StoreListener",
    "RemoteSync",
    "SessionSource",
]
