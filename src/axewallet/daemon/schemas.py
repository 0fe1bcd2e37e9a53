"""
文件功能：
    定义节点进程管理相关的公开数据模型（Pydantic）。

公开接口：
    - NodeState: 节点状态枚举
    - StatusEvent / LogEvent / WalletEvent: 推送给观察者的事件
    - WalletOutcome: 钱包就绪流程的结果分类
    - StartResult / StopResult / StartupResult: start / stop / 启动编排的返回值
    - NodeStatus: 节点状态查询结果
    - NodeOptions: 启动节点所需的选项（由配置构造）

内部方法：
    无
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field

from ..rpc.schemas import RpcConfig


def _now() -> datetime:
    return datetime.now(timezone.utc)


class NodeState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class WalletOutcome(str, Enum):
    ALREADY_LOADED = "already_loaded"
    LOADED_EXISTING = "loaded_existing"
    CREATED_NEW = "created_new"


class StatusEvent(BaseModel):
    """节点状态变化通知。"""

    status: NodeState
    error: str | None = None
    at: datetime = Field(default_factory=_now)


class LogEvent(BaseModel):
    """一行节点输出或管理日志。"""

    line: str
    at: datetime = Field(default_factory=_now)


class WalletEvent(BaseModel):
    """钱包就绪流程的结果通知：成功时带钱包名与结果分类，失败时带错误信息。"""

    wallet: str | None = None
    outcome: WalletOutcome | None = None
    error: str | None = None
    at: datetime = Field(default_factory=_now)


class StartResult(BaseModel):
    success: bool = Field(description="是否启动成功（或已在运行）")
    config: RpcConfig | None = Field(default=None, description="成功时的 RPC 配置")
    error: str | None = Field(default=None, description="失败原因")
    message: str | None = Field(default=None, description="附加说明")
    already_running: bool = Field(default=False, description="调用前节点已在运行，本次未启动新进程")


class StopResult(BaseModel):
    success: bool = Field(default=True, description="stop 总是最终成功")
    forced: bool = Field(default=False, description="是否超时后强制结束")
    message: str = Field(description="结果说明")


class StartupResult(BaseModel):
    success: bool
    config: RpcConfig | None = None
    wallet: str | None = Field(default=None, description="当前激活的钱包")
    outcome: WalletOutcome | None = None
    error: str | None = None


class NodeStatus(BaseModel):
    """节点运行状态。"""

    state: NodeState = Field(description="当前状态")
    running: bool = Field(description="是否正在运行")
    pid: int | None = Field(default=None, description="运行中的进程 PID")
    data_dir: str = Field(description="节点数据目录")
    executable: str = Field(description="节点可执行文件路径")
    rpc_port: int | None = Field(default=None, description="RPC 端口（完成配置初始化后可知）")
    last_exit_code: int | None = Field(default=None, description="上一次退出码")
    last_signal: int | None = Field(default=None, description="上一次导致退出的信号")


class NodeOverview(BaseModel):
    """状态查询接口的返回：进程状态 + 最近一次事件 + 当前钱包。"""

    node: NodeStatus
    last_status: StatusEvent | None = None
    last_wallet: WalletEvent | None = None
    wallet: str | None = None


class NodeOptions(BaseModel):
    """启动节点所需的选项，等价于解析后的命令行参数。"""

    network: str = "mainnet"
    data_dir: Path | None = None
    daemon_path: Path | None = None
    daemon_args: List[str] = Field(default_factory=list)
    rpc_port: int | None = None
    rpc_user: str | None = None
    rpc_password: str | None = None
    default_wallet: str = "default_wallet"
    settle_delay_s: float = 2.0
    stop_timeout_s: float = 30.0
    wallet_delay_s: float = 3.0
    rpc_timeout_s: float = 30.0

    @classmethod
    def from_config(cls, cfg) -> "NodeOptions":
        return cls(
            network=cfg.node_network,
            data_dir=Path(cfg.node_data_dir).expanduser() if cfg.node_data_dir else None,
            daemon_path=Path(cfg.node_daemon_path).expanduser() if cfg.node_daemon_path else None,
            daemon_args=list(cfg.node_daemon_args),
            rpc_port=cfg.rpc_port,
            rpc_user=cfg.rpc_user,
            rpc_password=cfg.rpc_password,
            default_wallet=cfg.default_wallet,
            settle_delay_s=cfg.settle_delay_s,
            stop_timeout_s=cfg.stop_timeout_s,
            wallet_delay_s=cfg.wallet_delay_s,
            rpc_timeout_s=cfg.rpc_timeout_s,
        )

    def passthrough_args(self) -> List[str]:
        """透传给节点的参数；非主网时补上网络选择参数。"""
        args = list(self.daemon_args)
        if self.network != "mainnet":
            flag = f"-{self.network}"
            if flag not in args and f"-{flag}" not in args:
                args.insert(0, flag)
        return args

    def apply_rpc_overrides(self, config: RpcConfig) -> RpcConfig:
        """用调用方的 RPC 覆盖项替换配置文件中的对应值。"""
        updates = {}
        if self.rpc_port:
            updates["port"] = self.rpc_port
        if self.rpc_user:
            updates["user"] = self.rpc_user
        if self.rpc_password:
            updates["password"] = self.rpc_password
        return config.model_copy(update=updates) if updates else config
