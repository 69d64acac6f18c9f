"""任务计时引擎 -- 每个任务一个 TaskTimer

状态机只有 IDLE / RUNNING 两个状态：Start 进入 RUNNING，Pause 与 Stop 都回到 IDLE，
区别仅在于 Stop 把显示计数归零。

会话历史的所有写入都经由 AppStore.update_task，time_spent 与 cost 由 Store 统一重算；
显示计数 = 已关闭会话总时长 + 当前会话的墙钟耗时，运行中会话不计入 time_spent。
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

import structlog

from .config import TIMER_CHECKPOINT_INTERVAL_S, TIMER_TICK_INTERVAL_S
from .derived import open_sessions, session_duration_minutes, total_time_spent
from .ids import new_id
from .models.enums import ChangeAction, EntityType, TimerState, validate_timer_transition
from .models.sync import StoreChange
from .models.task import Task, TaskPatch, TimeTrackingRecord
from .store import AppStore

log = structlog.get_logger()

TickCallback = Callable[[int], None]


def _closed_seconds(task: Task) -> int:
    return round(total_time_spent(task.time_tracking) * 60)


class TaskTimer:
    """单个任务的计时引擎

    构造时从任务的会话历史恢复：存在未关闭会话时接管最近的一条并进入 RUNNING，
    更早的未关闭会话（来自其他设备）在被接管会话的开始时间关闭。
    """

    def __init__(
        self,
        store: AppStore,
        task_id: str,
        *,
        tick_interval: float = TIMER_TICK_INTERVAL_S,
        checkpoint_interval: float = TIMER_CHECKPOINT_INTERVAL_S,
    ) -> None:
        self._store = store
        self.task_id = task_id
        self._tick_interval = tick_interval
        self._checkpoint_interval = checkpoint_interval
        self.state = TimerState.IDLE
        self._session_id: str | None = None
        self._anchor: datetime | None = None
        self._last_checkpoint: datetime | None = None
        self._elapsed_seconds = 0
        self._restore()

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING

    @property
    def session_id(self) -> str | None:
        """当前运行会话的 ID"""
        return self._session_id

    @property
    def elapsed_seconds(self) -> int:
        """最近一次计算的显示计数（秒）"""
        return self._elapsed_seconds

    # ============================================================
    # 状态流转
    # ============================================================

    def start(self) -> bool:
        """开始计时（IDLE -> RUNNING）

        任务或当前用户不存在时不做任何事。任务已有未关闭会话时接管该会话，
        不会创建第二条。
        """
        task = self._task()
        user = self._store.current_user
        if task is None or user is None:
            log.warning(
                "timer_start_ignored",
                task_id=self.task_id,
                has_task=task is not None,
                has_user=user is not None,
            )
            return False
        if not self._can_transition(TimerState.RUNNING):
            return False

        existing = open_sessions(task.time_tracking)
        if existing:
            record = max(existing, key=lambda r: r.start_time)
            if task.time_started != record.start_time:
                self._store.update_task(self.task_id, TaskPatch(time_started=record.start_time))
            self._adopt(record)
            log.info("timer_session_resumed", task_id=self.task_id, session_id=record.id)
            return True

        now = self._store.now()
        record = TimeTrackingRecord(id=new_id(), user_id=user.id, start_time=now)
        self._store.update_task(
            self.task_id,
            TaskPatch(time_tracking=[*task.time_tracking, record], time_started=now),
        )
        self._adopt(record)
        log.info(
            "timer_started",
            task_id=self.task_id,
            session_id=record.id,
            user_id=user.id,
        )
        return True

    def pause(self) -> bool:
        """暂停（RUNNING -> IDLE），显示计数保留已关闭会话总时长"""
        task = self._close_running("timer_paused")
        if task is None:
            return False
        self._elapsed_seconds = _closed_seconds(task)
        return True

    def stop(self) -> bool:
        """停止（RUNNING -> IDLE），显示计数归零"""
        if self._close_running("timer_stopped") is None:
            return False
        self._elapsed_seconds = 0
        return True

    # ============================================================
    # 显示与 checkpoint
    # ============================================================

    def tick(self) -> int:
        """刷新显示计数；运行中且到达间隔时顺带执行 checkpoint

        任务已不存在或运行中会话已在外部关闭时回到 IDLE。
        """
        task = self._task()
        if self.is_running and not self._session_still_open(task):
            self.release()
        if task is None or not self.is_running or self._anchor is None:
            return self._elapsed_seconds
        closed_seconds = _closed_seconds(task)

        now = self._store.now()
        running = max(0.0, (now - self._anchor).total_seconds())
        self._elapsed_seconds = int(closed_seconds + running)

        if (
            self._last_checkpoint is not None
            and (now - self._last_checkpoint).total_seconds() >= self._checkpoint_interval
        ):
            self.checkpoint()
        return self._elapsed_seconds

    def checkpoint(self) -> Task | None:
        """把运行中会话的已耗时长写入其 duration（会话保持未关闭）"""
        task = self._task()
        if task is None or not self.is_running or self._anchor is None:
            return None

        now = self._store.now()
        minutes = session_duration_minutes(self._anchor, now)
        records = [
            r.model_copy(update={"duration": minutes}) if r.id == self._session_id else r
            for r in task.time_tracking
        ]
        self._last_checkpoint = now
        log.debug("timer_checkpoint", task_id=self.task_id, minutes=round(minutes, 2))
        return self._store.update_task(self.task_id, TaskPatch(time_tracking=records))

    async def run(self, on_tick: TickCallback | None = None) -> None:
        """运行中每 tick_interval 秒刷新一次，回到 IDLE 后返回"""
        while self.is_running:
            await asyncio.sleep(self._tick_interval)
            if not self.is_running:
                break
            seconds = self.tick()
            if on_tick is not None:
                on_tick(seconds)

    # ============================================================
    # 会话历史编辑
    # ============================================================

    def edit_session(
        self,
        session_id: str,
        *,
        description: str | None = None,
        duration: float | None = None,
    ) -> Task | None:
        """修改已关闭会话的说明和/或时长，time_spent 随之按全量重算"""
        task = self._task()
        if task is None:
            return None
        record = next((r for r in task.time_tracking if r.id == session_id), None)
        if record is None:
            log.warning("timer_session_not_found", task_id=self.task_id, session_id=session_id)
            return None
        if record.is_open:
            log.warning("timer_session_still_open", task_id=self.task_id, session_id=session_id)
            return None

        changes: dict = {}
        if description is not None:
            changes["description"] = description
        if duration is not None:
            changes["duration"] = duration
        edited = TimeTrackingRecord.model_validate({**record.model_dump(), **changes})
        records = [edited if r.id == session_id else r for r in task.time_tracking]
        updated = self._store.update_task(self.task_id, TaskPatch(time_tracking=records))
        self._refresh_idle_display(updated)
        log.info("timer_session_edited", task_id=self.task_id, session_id=session_id)
        return updated

    def delete_session(self, session_id: str) -> Task | None:
        """删除一条会话；删除的是运行中会话时回到 IDLE"""
        task = self._task()
        if task is None:
            return None
        if not any(r.id == session_id for r in task.time_tracking):
            log.warning("timer_session_not_found", task_id=self.task_id, session_id=session_id)
            return None

        records = [r for r in task.time_tracking if r.id != session_id]
        if session_id == self._session_id:
            patch = TaskPatch(time_tracking=records, time_started=None)
            self._go_idle()
        else:
            patch = TaskPatch(time_tracking=records)
        updated = self._store.update_task(self.task_id, patch)
        self._refresh_idle_display(updated)
        log.info("timer_session_deleted", task_id=self.task_id, session_id=session_id)
        return updated

    def release(self) -> None:
        """放弃运行中会话的跟踪并回到 IDLE，不写入 Store"""
        if not self.is_running:
            return
        log.info("timer_released", task_id=self.task_id, session_id=self._session_id)
        self._go_idle()
        task = self._task()
        self._elapsed_seconds = _closed_seconds(task) if task is not None else 0

    def reset(self) -> Task | None:
        """清空会话历史与 time_spent，回到 IDLE"""
        if self._task() is None:
            return None
        if self.is_running:
            self._go_idle()
        updated = self._store.update_task(
            self.task_id,
            TaskPatch(time_tracking=[], time_started=None),
        )
        self._elapsed_seconds = 0
        log.info("timer_reset", task_id=self.task_id)
        return updated

    # ============================================================
    # 内部
    # ============================================================

    def _task(self) -> Task | None:
        return self._store.get_task(self.task_id)

    def _session_still_open(self, task: Task | None) -> bool:
        if task is None:
            return False
        return any(r.id == self._session_id and r.is_open for r in task.time_tracking)

    def _can_transition(self, to_state: TimerState) -> bool:
        if validate_timer_transition(self.state, to_state):
            return True
        log.debug(
            "timer_transition_ignored",
            task_id=self.task_id,
            from_state=self.state,
            to_state=to_state,
        )
        return False

    def _restore(self) -> None:
        task = self._task()
        if task is None:
            return
        self._elapsed_seconds = _closed_seconds(task)

        existing = open_sessions(task.time_tracking)
        if not existing:
            return
        adopted = max(existing, key=lambda r: r.start_time)
        if len(existing) > 1:
            records = [
                r.model_copy(update={
                    "end_time": adopted.start_time,
                    "duration": session_duration_minutes(r.start_time, adopted.start_time),
                })
                if r.is_open and r.id != adopted.id
                else r
                for r in task.time_tracking
            ]
            self._store.update_task(
                self.task_id,
                TaskPatch(time_tracking=records, time_started=adopted.start_time),
            )
            log.warning(
                "timer_duplicate_sessions_closed",
                task_id=self.task_id,
                adopted_session_id=adopted.id,
                closed=len(existing) - 1,
            )
        self._adopt(adopted)
        log.info("timer_restored", task_id=self.task_id, session_id=adopted.id)

    def _adopt(self, record: TimeTrackingRecord) -> None:
        self.state = TimerState.RUNNING
        self._session_id = record.id
        self._anchor = record.start_time
        self._last_checkpoint = self._store.now()
        self.tick()

    def _go_idle(self) -> None:
        self.state = TimerState.IDLE
        self._session_id = None
        self._anchor = None
        self._last_checkpoint = None

    def _close_running(self, event: str) -> Task | None:
        task = self._task()
        if task is None or self._store.current_user is None:
            log.warning("timer_close_ignored", task_id=self.task_id, reason="no_task_or_user")
            return None
        if not self._can_transition(TimerState.IDLE):
            return None

        now = self._store.now()
        session_id = self._session_id
        records = [
            r.model_copy(update={
                "end_time": now,
                "duration": session_duration_minutes(r.start_time, now),
            })
            if r.id == session_id and r.is_open
            else r
            for r in task.time_tracking
        ]
        self._go_idle()
        updated = self._store.update_task(
            self.task_id,
            TaskPatch(time_tracking=records, time_started=None),
        )
        log.info(event, task_id=self.task_id, session_id=session_id)
        return updated or task

    def _refresh_idle_display(self, task: Task | None) -> None:
        if task is not None and not self.is_running:
            self._elapsed_seconds = _closed_seconds(task)


class TimerRegistry:
    """按 task_id 缓存 TaskTimer，保证每个任务只有一个计时引擎

    订阅 Store 变更：任务被删除（包括项目删除的级联）时释放并移除对应的计时器。
    """

    def __init__(
        self,
        store: AppStore,
        *,
        tick_interval: float = TIMER_TICK_INTERVAL_S,
        checkpoint_interval: float = TIMER_CHECKPOINT_INTERVAL_S,
    ) -> None:
        self._store = store
        self._tick_interval = tick_interval
        self._checkpoint_interval = checkpoint_interval
        self._timers: dict[str, TaskTimer] = {}
        self._unsubscribe = store.subscribe(self._on_store_change)

    def timer_for(self, task_id: str) -> TaskTimer:
        timer = self._timers.get(task_id)
        if timer is None:
            timer = TaskTimer(
                self._store,
                task_id,
                tick_interval=self._tick_interval,
                checkpoint_interval=self._checkpoint_interval,
            )
            self._timers[task_id] = timer
        return timer

    def discard(self, task_id: str) -> None:
        timer = self._timers.pop(task_id, None)
        if timer is not None:
            timer.release()

    def running(self) -> list[TaskTimer]:
        return [t for t in self._timers.values() if t.is_running]

    def close(self) -> None:
        """取消 Store 订阅"""
        self._unsubscribe()

    def _on_store_change(self, change: StoreChange) -> None:
        if (
            change.entity == EntityType.TASK
            and change.action == ChangeAction.DELETED
            and change.entity_id is not None
        ):
            self.discard(change.entity_id)
