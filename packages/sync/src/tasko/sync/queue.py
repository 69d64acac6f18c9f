"""SyncQueue -- 远端写入后台队列与失败台账

单个 worker 按提交顺序消费 asyncio.Queue，保证同一实体 insert 先于 update。
调用方 submit 后立即返回，从不等待远端结果；失败（后端错误或会话检查拒绝）
记录在按 entity_id 索引的台账中，可通过 retry_failed() 重新提交。
"""

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel, Field

from tasko.core.ids import utc_now
from tasko.core.models import SyncOperation

from .adapter import RemoteSyncAdapter
from .exceptions import SyncError

log = structlog.get_logger()


class SyncFailure(BaseModel):
    """失败台账条目"""

    op: SyncOperation = Field(description="失败的操作")
    error: dict[str, Any] = Field(description="code / message / detail / hint / recoverable")
    attempts: int = Field(default=1, description="已尝试次数")
    failed_at: datetime = Field(description="最近一次失败时间")


class SyncQueue:
    """远端写入队列（实现 RemoteSync 接口）"""

    def __init__(
        self,
        adapter: RemoteSyncAdapter,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._adapter = adapter
        self._clock = clock
        self._queue: asyncio.Queue[SyncOperation] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._failures: dict[str, list[SyncFailure]] = {}
        self._attempts: dict[str, int] = {}
        self.applied_count = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def submit(self, op: SyncOperation) -> None:
        """入队，立即返回"""
        self._queue.put_nowait(op)
        log.debug(
            "sync_operation_submitted",
            op_id=op.op_id,
            entity=op.entity,
            action=op.action,
            entity_id=op.entity_id,
        )

    def start(self) -> None:
        """启动 worker（幂等）"""
        if self.is_running:
            return
        self._worker = asyncio.create_task(self._run(), name="tasko-sync-queue")
        log.info("sync_queue_started")

    async def drain(self) -> None:
        """等待所有已提交的操作处理完毕"""
        await self._queue.join()

    async def stop(self, drain: bool = True) -> None:
        """停止 worker

        Args:
            drain: 是否先处理完队列中剩余的操作
        """
        if drain and self.is_running:
            await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        log.info("sync_queue_stopped", pending=self.pending)

    # ============================================================
    # 失败台账
    # ============================================================

    def failures(self) -> list[SyncFailure]:
        """全部失败条目，按失败时间排序"""
        items = [f for entries in self._failures.values() for f in entries]
        return sorted(items, key=lambda f: f.failed_at)

    def failures_for(self, entity_id: str) -> list[SyncFailure]:
        return list(self._failures.get(entity_id, []))

    def retry_failed(self) -> int:
        """把台账中的操作按原提交顺序重新入队，返回重新提交的数量"""
        ops = sorted(
            (f.op for entries in self._failures.values() for f in entries),
            key=lambda op: op.submitted_at,
        )
        self._failures.clear()
        for op in ops:
            self.submit(op)
        log.info("sync_failures_resubmitted", count=len(ops))
        return len(ops)

    # ============================================================
    # 内部
    # ============================================================

    async def _run(self) -> None:
        while True:
            op = await self._queue.get()
            try:
                await self._process(op)
            finally:
                self._queue.task_done()

    async def _process(self, op: SyncOperation) -> None:
        self._attempts[op.op_id] = self._attempts.get(op.op_id, 0) + 1
        try:
            result = await self._adapter.apply(op)
        except SyncError as e:
            log.error(
                "sync_operation_failed",
                op_id=op.op_id,
                entity=op.entity,
                action=op.action,
                entity_id=op.entity_id,
                **e.to_dict(),
            )
            self._record_failure(op, e.to_dict())
            return
        except Exception as e:
            log.exception(
                "sync_operation_crashed",
                op_id=op.op_id,
                entity=op.entity,
                entity_id=op.entity_id,
            )
            self._record_failure(
                op,
                SyncError(str(e), code="unexpected_error", recoverable=False).to_dict(),
            )
            return

        if result.refused:
            self._record_failure(
                op,
                SyncError(
                    "远端写入被会话检查拒绝",
                    code=result.reason or "refused",
                ).to_dict(),
            )
            return

        self._attempts.pop(op.op_id, None)
        self.applied_count += 1

    def _record_failure(self, op: SyncOperation, error: dict[str, Any]) -> None:
        failure = SyncFailure(
            op=op,
            error=error,
            attempts=self._attempts.get(op.op_id, 1),
            failed_at=self._clock(),
        )
        self._failures.setdefault(op.entity_id, []).append(failure)
