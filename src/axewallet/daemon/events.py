"""
文件功能：
    节点事件通道：状态、日志、钱包结果三类事件推送给唯一的观察者。

公开接口：
    - NodeObserver: 观察者协议
    - EventChannel: 单观察者事件通道（不缓存，后订阅者收不到之前的事件）
    - EventRecorder: 记录最新状态与最近日志的观察者，供 HTTP 接口查询
"""

from __future__ import annotations

from collections import deque
from typing import List, Protocol

from loguru import logger

from .schemas import LogEvent, NodeState, StatusEvent, WalletEvent, WalletOutcome


class NodeObserver(Protocol):
    def on_status(self, event: StatusEvent) -> None: ...

    def on_log(self, event: LogEvent) -> None: ...

    def on_wallet(self, event: WalletEvent) -> None: ...


class EventChannel:
    def __init__(self, log=logger) -> None:
        self._observer: NodeObserver | None = None
        self._log = log.bind(category="DAEMON")

    @property
    def observer(self) -> NodeObserver | None:
        return self._observer

    def subscribe(self, observer: NodeObserver) -> None:
        """注册观察者，替换之前的观察者。"""
        self._observer = observer

    def unsubscribe(self) -> None:
        self._observer = None

    def _deliver(self, handler_name: str, event) -> None:
        observer = self._observer
        if observer is None:
            return
        try:
            getattr(observer, handler_name)(event)
        except Exception as e:
            # 观察者异常不影响进程管理
            self._log.warning(f"事件观察者处理 {handler_name} 失败：{e}")

    def emit_status(self, status: NodeState, error: str | None = None) -> None:
        self._deliver("on_status", StatusEvent(status=status, error=error))

    def emit_log(self, line: str) -> None:
        self._deliver("on_log", LogEvent(line=line))

    def emit_wallet(
        self,
        wallet: str | None = None,
        outcome: WalletOutcome | None = None,
        error: str | None = None,
    ) -> None:
        self._deliver("on_wallet", WalletEvent(wallet=wallet, outcome=outcome, error=error))


class EventRecorder:
    """保存最近一次状态、钱包事件以及一段日志尾部。"""

    def __init__(self, max_lines: int = 500) -> None:
        self.last_status: StatusEvent | None = None
        self.last_wallet: WalletEvent | None = None
        self._lines: deque[LogEvent] = deque(maxlen=max_lines)

    def on_status(self, event: StatusEvent) -> None:
        self.last_status = event

    def on_log(self, event: LogEvent) -> None:
        self._lines.append(event)

    def on_wallet(self, event: WalletEvent) -> None:
        self.last_wallet = event

    def tail(self, limit: int = 100) -> List[LogEvent]:
        if limit <= 0:
            return []
        return list(self._lines)[-limit:]
