"""
节点进程管理服务。

负责启动、停止和监控 superaxecoind 进程，并通过事件通道报告状态与输出。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from loguru import logger

from ...rpc.schemas import RpcConfig
from ..errors import ExecutableNotFound, ProcessExitedUnexpectedly, SpawnError, SupervisorError
from ..events import EventChannel
from ..schemas import NodeOptions, NodeState, NodeStatus, StartResult, StopResult
from .node_setup import bootstrap_config, get_default_data_dir, resolve_executable_path


# 强制结束后等待进程回收的上限
KILL_GRACE_S = 5.0


@dataclass
class NodeProcessHandle:
    process: asyncio.subprocess.Process
    pid: int
    running: bool = True
    pumps: List[asyncio.Task] = field(default_factory=list)


@dataclass
class ExitInfo:
    code: int | None
    signal: int | None


class NodeSupervisor:
    """节点进程的唯一所有者。

    状态只通过 _set_state() 修改；start() 与 stop() 由同一把锁串行化，
    因此同时发起的 start / stop 会依次执行而不会交错。
    """

    def __init__(self, options: NodeOptions | None = None, log=logger, events: EventChannel | None = None):
        self.options = options or NodeOptions()
        self.data_dir = Path(self.options.data_dir or get_default_data_dir())
        self.events = events or EventChannel(log)
        self.last_exit: ExitInfo | None = None
        self._base_log = log
        self._log = log.bind(category="DAEMON")
        self._state = NodeState.STOPPED
        self._handle: NodeProcessHandle | None = None
        self._exit_task: asyncio.Task | None = None
        self._rpc_config: RpcConfig | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> NodeState:
        return self._state

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> NodeProcessHandle | None:
        return self._handle

    @property
    def rpc_config(self) -> RpcConfig | None:
        return self._rpc_config

    def executable_path(self) -> Path:
        if self.options.daemon_path:
            return Path(self.options.daemon_path)
        return resolve_executable_path()

    def bootstrap_config(self) -> RpcConfig:
        config = bootstrap_config(self.data_dir, self.options.network, log=self._base_log)
        self._rpc_config = config
        return config

    def build_args(self) -> List[str]:
        return [
            f"-datadir={self.data_dir}",
            "-printtoconsole=0",
            *self.options.passthrough_args(),
        ]

    def status(self) -> NodeStatus:
        handle = self._handle
        return NodeStatus(
            state=self._state,
            running=handle is not None,
            pid=handle.pid if handle else None,
            data_dir=str(self.data_dir),
            executable=str(self.executable_path()),
            rpc_port=self._rpc_config.port if self._rpc_config else None,
            last_exit_code=self.last_exit.code if self.last_exit else None,
            last_signal=self.last_exit.signal if self.last_exit else None,
        )

    def _set_state(self, state: NodeState, error: str | None = None) -> None:
        self._state = state
        if error:
            self._log.bind(data={"error": error}).info(f"状态变化: {state.value}")
        else:
            self._log.info(f"状态变化: {state.value}")
        self.events.emit_status(state, error)

    def _emit_log(self, line: str) -> None:
        self._log.debug(line)
        self.events.emit_log(line)

    async def start(self) -> StartResult:
        """启动节点；已在运行时直接返回成功。"""
        async with self._lock:
            if self._handle is not None:
                return StartResult(
                    success=True, config=self._rpc_config, message="Daemon already running", already_running=True
                )
            try:
                return await self._start_locked()
            except SupervisorError as e:
                self._log.error(f"启动节点失败：{e}")
                return StartResult(success=False, error=str(e))

    async def _start_locked(self) -> StartResult:
        executable = self.executable_path()
        if not executable.exists():
            raise ExecutableNotFound(executable)

        try:
            rpc_config = self.bootstrap_config()
        except OSError as e:
            raise SupervisorError(f"初始化节点配置失败: {e}") from e

        args = self.build_args()
        self._log.bind(data={"path": str(executable), "dataDir": str(self.data_dir)}).info("启动节点")
        self._emit_log(f"Daemon arguments: {' '.join(args)}")

        self._set_state(NodeState.STARTING)
        try:
            process = await asyncio.create_subprocess_exec(
                str(executable),
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self._set_state(NodeState.ERROR, str(e))
            self._set_state(NodeState.STOPPED)
            raise SpawnError(str(e)) from e

        handle = NodeProcessHandle(process=process, pid=process.pid)
        handle.pumps = [
            asyncio.create_task(self._pump(process.stdout, "[daemon]")),
            asyncio.create_task(self._pump(process.stderr, "[daemon error]")),
        ]
        self._handle = handle
        self._exit_task = asyncio.create_task(self._watch_exit(handle))
        self._log.info(f"节点进程已启动，PID: {process.pid}")

        # 以固定等待作为就绪判断，不探测 RPC
        await asyncio.sleep(self.options.settle_delay_s)
        if self._handle is not handle:
            exit_info = self.last_exit or ExitInfo(None, None)
            raise ProcessExitedUnexpectedly(exit_info.code, exit_info.signal)

        self._set_state(NodeState.RUNNING)
        return StartResult(success=True, config=rpc_config)

    async def _pump(self, stream: asyncio.StreamReader | None, prefix: str) -> None:
        if stream is None:
            return
        while True:
            try:
                line = await stream.readline()
            except ValueError as e:
                self._log.warning(f"节点输出行过长，已丢弃：{e}")
                continue
            if not line:
                break
            text = line.decode("utf-8", errors="replace").strip()
            if text:
                self._emit_log(f"{prefix} {text}")

    async def _watch_exit(self, handle: NodeProcessHandle) -> None:
        returncode = await handle.process.wait()
        if handle.pumps:
            await asyncio.wait(handle.pumps, timeout=1.0)

        code, signal = (None, -returncode) if returncode < 0 else (returncode, None)
        self.last_exit = ExitInfo(code=code, signal=signal)
        handle.running = False
        if self._handle is handle:
            self._handle = None

        self._log.bind(data={"exitCode": code, "signal": signal}).info("节点已退出")
        self._emit_log(f"Daemon exited with code {code}, signal {signal}")

        requested = self._state is NodeState.STOPPING
        if not requested and (code != 0 or signal is not None or self._state is NodeState.STARTING):
            self._set_state(NodeState.ERROR, str(ProcessExitedUnexpectedly(code, signal)))
        self._set_state(NodeState.STOPPED)

    async def stop(self) -> StopResult:
        """停止节点：先请求正常退出，超时后强制结束。总会返回。"""
        async with self._lock:
            handle = self._handle
            exit_task = self._exit_task
            if handle is None or exit_task is None:
                return StopResult(message="Daemon not running")

            self._log.info("正在停止节点...")
            self._set_state(NodeState.STOPPING)
            try:
                handle.process.terminate()
            except ProcessLookupError:
                pass

            try:
                await asyncio.wait_for(asyncio.shield(exit_task), timeout=self.options.stop_timeout_s)
            except asyncio.TimeoutError:
                self._log.warning(f"节点未在 {self.options.stop_timeout_s} 秒内退出，强制结束")
                try:
                    handle.process.kill()
                except ProcessLookupError:
                    pass
                try:
                    await asyncio.wait_for(asyncio.shield(exit_task), timeout=KILL_GRACE_S)
                except asyncio.TimeoutError:
                    self._log.error(f"强制结束后进程仍未回收，PID: {handle.pid}")
                return StopResult(forced=True, message="Daemon force stopped")

            return StopResult(message="Daemon stopped")
