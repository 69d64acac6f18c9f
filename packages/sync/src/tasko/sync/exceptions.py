"""Sync 异常体系

远端持久化错误统一包装为 SyncError（code / message / detail / hint），
底层异常（httpx、aiosqlite）通过 raise ... from e 保留。
"""


class SyncError(Exception):
    """远端同步基础异常"""

    def __init__(
        self,
        message: str,
        code: str = "sync_error",
        detail: str | None = None,
        hint: str | None = None,
        recoverable: bool = True,
    ) -> None:
        """
        Args:
            message: 错误描述
            code: 错误码（远端返回的 code 或本地分类）
            detail: 远端返回的详细信息
            hint: 远端返回的修复提示
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.detail = detail
        self.hint = hint
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, str | bool | None]:
        return {
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
            "hint": self.hint,
            "recoverable": self.recoverable,
        }


class RemoteUnreachableError(SyncError):
    """远端不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, remote_url: str, original_error: Exception) -> None:
        """
        Args:
            remote_url: 尝试连接的远端地址
            original_error: 原始异常
        """
        super().__init__(
            f"远端不可达: {remote_url} -- {original_error}",
            code="remote_unreachable",
            recoverable=True,
        )
        self.remote_url = remote_url
        self.original_error = original_error


class IdentityError(Exception):
    """身份提供方错误（登录失败、会话无效）"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
