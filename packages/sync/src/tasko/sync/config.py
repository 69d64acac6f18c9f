"""SyncConfig -- 远端同步配置加载

从环境变量加载远端后端类型、地址、匿名密钥与超时。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()


class SyncConfig(BaseModel):
    """Sync 包配置 -- 从环境变量加载

    环境变量:
        TASKO_SYNC_BACKEND: 远端后端类型（sqlite/rest）
        TASKO_REMOTE_URL: REST 后端基础 URL
        TASKO_REMOTE_ANON_KEY: REST 后端匿名访问密钥
        TASKO_REMOTE_TIMEOUT_S: 请求超时（秒，默认 10）
    """

    backend: Literal["sqlite", "rest"] = Field(
        default="sqlite",
        description="远端后端类型：sqlite（本地文件）/ rest（PostgREST 兼容 API）",
    )
    remote_url: str = Field(
        default="http://localhost:54321",
        description="REST 后端基础 URL",
    )
    anon_key: SecretStr = Field(
        default=SecretStr(""),
        description="REST 后端匿名访问密钥（apikey 头）",
    )
    timeout_s: float = Field(
        default=10.0,
        gt=0,
        description="远端请求超时（秒）",
    )


def load_sync_config() -> SyncConfig:
    """从环境变量加载 Sync 配置

    环境变量映射:
        TASKO_SYNC_BACKEND -> backend (默认 "sqlite")
        TASKO_REMOTE_URL -> remote_url (默认 "http://localhost:54321")
        TASKO_REMOTE_ANON_KEY -> anon_key (默认 "")
        TASKO_REMOTE_TIMEOUT_S -> timeout_s (默认 10)

    Returns:
        SyncConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKO_SYNC_BACKEND"):
        if val in ("sqlite", "rest"):
            kwargs["backend"] = val
        else:
            log.warning(
                "invalid_sync_backend_config",
                env_var="TASKO_SYNC_BACKEND",
                value=val,
                fallback="sqlite",
            )

    if val := os.environ.get("TASKO_REMOTE_URL"):
        kwargs["remote_url"] = val.rstrip("/")

    if val := os.environ.get("TASKO_REMOTE_ANON_KEY"):
        kwargs["anon_key"] = SecretStr(val)

    if val := os.environ.get("TASKO_REMOTE_TIMEOUT_S"):
        try:
            timeout = float(val)
            if timeout <= 0:
                raise ValueError(val)
            kwargs["timeout_s"] = timeout
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="TASKO_REMOTE_TIMEOUT_S",
                value=val,
                fallback=10.0,
            )

    return SyncConfig(**kwargs)
