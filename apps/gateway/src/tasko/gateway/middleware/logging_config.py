"""structlog 配置模块

dev 模式：pretty print 可读输出；json 模式：结构化 JSON 输出。
凭证类字段（password / access_token / anon_key）在渲染前统一脱敏。
"""

import logging
import os

import structlog

# 渲染前脱敏的字段
REDACTED_KEYS: frozenset[str] = frozenset({"password", "access_token", "anon_key", "apikey"})

# 第三方库默认只输出 WARNING 及以上
_NOISY_LOGGERS = ("aiosqlite", "httpx", "httpcore", "sse_starlette")


def redact_secrets(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 与标准库 logging

    Args:
        log_format: "json" 或 "dev"，为空时读取 TASKO_LOG_FORMAT（默认 dev）
        log_level: 日志级别，为空时读取 TASKO_LOG_LEVEL（默认 INFO）
    """
    log_format = log_format or os.environ.get("TASKO_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("TASKO_LOG_LEVEL", "INFO")
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
