"""ID 与时钟工具

实体 ID 使用 ULID 生成（时间有序），以 UUID 形式表示以匹配远端 uuid 主键。
"""

import secrets
from datetime import UTC, datetime

from ulid import ULID


def new_id() -> str:
    """生成 UUID 形式的实体 ID"""
    return str(ULID().to_uuid())


def new_token() -> str:
    """生成一次性邀请 token（URL 安全）"""
    return secrets.token_urlsafe(24)


def utc_now() -> datetime:
    """默认时钟：当前 UTC 时间"""
    return datetime.now(UTC)
