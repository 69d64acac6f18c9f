"""GatewayContext -- Gateway 运行时组件组

一个进程只有一个 AppStore；远端后端、身份提供方、同步队列、变更广播与计时器
注册表都围绕它组装，在 lifespan 中创建与关闭。
"""

import asyncio
import contextlib

import structlog
from tasko.core.models import ChangeAction, EntityType, StoreChange
from tasko.core.store import AppStore, SessionSource
from tasko.core.timer import TaskTimer, TimerRegistry
from tasko.sync import (
    RemoteBackend,
    RemoteSyncAdapter,
    RestIdentityProvider,
    StaticSessionProvider,
    SyncConfig,
    SyncQueue,
    create_backend,
)

from .change_hub import ChangeHub

log = structlog.get_logger()


class GatewayContext:
    """Gateway 运行时组件组 -- 共享同一个 AppStore"""

    def __init__(
        self,
        store: AppStore,
        sessions: SessionSource,
        backend: RemoteBackend,
        adapter: RemoteSyncAdapter,
        sync_queue: SyncQueue,
        change_hub: ChangeHub,
        timers: TimerRegistry,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.backend = backend
        self.adapter = adapter
        self.sync_queue = sync_queue
        self.change_hub = change_hub
        self.timers = timers
        self._tickers: dict[str, asyncio.Task] = {}
        self._unsubscribers = [
            store.subscribe(change_hub.publish),
            store.subscribe(self._on_store_change),
        ]

    @property
    def active_tickers(self) -> list[str]:
        """仍在运行的 tick 循环对应的 task_id"""
        return [task_id for task_id, t in self._tickers.items() if not t.done()]

    def ensure_ticker(self, timer: TaskTimer) -> None:
        """为运行中的计时器启动后台 tick 循环（已在运行时不重复启动）"""
        if not timer.is_running:
            return
        ticker = self._tickers.get(timer.task_id)
        if ticker is not None and not ticker.done():
            return
        self._tickers[timer.task_id] = asyncio.create_task(
            timer.run(),
            name=f"tasko-timer-{timer.task_id}",
        )

    def cancel_ticker(self, task_id: str) -> None:
        ticker = self._tickers.pop(task_id, None)
        if ticker is not None and not ticker.done():
            ticker.cancel()
            log.info("timer_ticker_cancelled", task_id=task_id)

    def _on_store_change(self, change: StoreChange) -> None:
        if change.entity == EntityType.TASK and change.action == ChangeAction.DELETED:
            self.cancel_ticker(change.entity_id)

    async def close(self) -> None:
        """停止 tick 循环与同步队列，释放连接"""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self.timers.close()
        for ticker in self._tickers.values():
            ticker.cancel()
        for ticker in self._tickers.values():
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
        self._tickers.clear()

        await self.sync_queue.stop()
        await self.backend.close()
        if isinstance(self.sessions, RestIdentityProvider):
            await self.sessions.close()
        log.info("gateway_context_closed")


async def create_gateway_context(
    config: SyncConfig,
    db_path: str,
    sessions: SessionSource | None = None,
) -> GatewayContext:
    """按配置组装运行时组件

    Args:
        config: Sync 配置（决定远端后端与身份提供方类型）
        db_path: sqlite 后端数据库文件路径
        sessions: 自定义身份提供方，为空时按配置创建

    Returns:
        GatewayContext 实例（同步队列已启动）
    """
    if sessions is None:
        if config.backend == "rest":
            sessions = RestIdentityProvider(
                base_url=config.remote_url,
                anon_key=config.anon_key.get_secret_value(),
                timeout_s=config.timeout_s,
            )
        else:
            sessions = StaticSessionProvider(auto_register=True)

    token_source = sessions.access_token if isinstance(sessions, RestIdentityProvider) else None
    backend = await create_backend(config, db_path, token_source=token_source)
    adapter = RemoteSyncAdapter(backend, sessions)
    sync_queue = SyncQueue(adapter)
    sync_queue.start()

    store = AppStore(sync=sync_queue, sessions=sessions)
    context = GatewayContext(
        store=store,
        sessions=sessions,
        backend=backend,
        adapter=adapter,
        sync_queue=sync_queue,
        change_hub=ChangeHub(),
        timers=TimerRegistry(store),
    )
    log.info("gateway_context_created", backend=config.backend)
    return context
