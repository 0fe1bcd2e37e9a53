"""
节点进程管理的异常。只在 supervisor 内部抛出，在 start() / stop() 边界转换为结果对象。
"""

from __future__ import annotations

from pathlib import Path


class SupervisorError(Exception):
    """节点管理异常基类。"""


class ExecutableNotFound(SupervisorError):
    def __init__(self, path: Path):
        super().__init__(f"Daemon not found at: {path}")
        self.path = path


class SpawnError(SupervisorError):
    """进程创建失败。"""


class ProcessExitedUnexpectedly(SupervisorError):
    def __init__(self, code: int | None, signal: int | None = None):
        if signal is not None:
            message = f"Daemon exited unexpectedly (signal {signal})"
        else:
            message = f"Daemon exited unexpectedly (code {code})"
        super().__init__(message)
        self.code = code
        self.signal = signal
