"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、邀请有效期、计时器节拍与 checkpoint 间隔等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKO_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径（sqlite 远端后端使用）"""
    return os.environ.get(
        "TASKO_DB_PATH",
        str(_get_base_dir() / "sqlite" / "tasko.db"),
    )


# 邀请有效期（天）
INVITATION_TTL_DAYS: int = int(os.environ.get("TASKO_INVITATION_TTL_DAYS", "7"))

# 计时器显示刷新间隔（秒）
TIMER_TICK_INTERVAL_S: float = float(
    os.environ.get("TASKO_TIMER_TICK_INTERVAL_S", "1")
)

# 运行中会话的 checkpoint 持久化间隔（秒）
TIMER_CHECKPOINT_INTERVAL_S: float = float(
    os.environ.get("TASKO_TIMER_CHECKPOINT_INTERVAL_S", "60")
)

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("TASKO_SSE_HEARTBEAT_INTERVAL", "15")
)

# 成本保留小数位
COST_DECIMALS: int = 2
