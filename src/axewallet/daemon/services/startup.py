"""
启动编排服务。

启动节点 → 用返回的凭据构造新的 RpcClient → 确保有可用的钱包上下文。
结果通过与节点状态相同的事件通道上报。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from ...rpc.client import RpcClient
from ...rpc.errors import RpcError
from ...rpc.schemas import RpcConfig
from ..events import EventChannel
from ..schemas import NodeOptions, NodeState, StartupResult, StopResult, WalletOutcome
from .node_process import NodeSupervisor


DEFAULT_WALLET = "default_wallet"


@dataclass
class WalletResolution:
    wallet: str | None
    outcome: WalletOutcome | None = None
    error: str | None = None


async def ensure_wallet_loaded(
    client: RpcClient,
    events: EventChannel,
    wallet_name: str = DEFAULT_WALLET,
    log=logger,
) -> WalletResolution:
    """确保节点上有一个已加载的钱包，并设置为客户端的钱包上下文。

    1. 已有加载的钱包：使用第一个；
    2. 否则尝试加载默认钱包；
    3. 加载失败（不区分原因）则创建同名钱包。

    每条路径只设置一次上下文、只发出一次钱包事件，不重试。
    """
    log = log.bind(category="WALLET")
    try:
        log.info("检查已加载的钱包...")
        wallets = await client.call("listwallets")
        if wallets:
            name = wallets[0]
            log.info(f"钱包已加载: {name}")
            return _adopt(client, events, name, WalletOutcome.ALREADY_LOADED)

        log.info(f"尝试加载钱包: {wallet_name}")
        try:
            await client.call("loadwallet", [wallet_name])
        except RpcError as e:
            # 加载失败即视为钱包不存在，转为创建
            log.info(f"加载钱包失败（{e.message}），创建新钱包: {wallet_name}")
        else:
            log.info(f"已加载现有钱包: {wallet_name}")
            return _adopt(client, events, wallet_name, WalletOutcome.LOADED_EXISTING)

        await client.call("createwallet", [wallet_name])
        log.info(f"已创建新钱包: {wallet_name}")
        return _adopt(client, events, wallet_name, WalletOutcome.CREATED_NEW)
    except RpcError as e:
        log.bind(data={"error": e.message}).error("确保钱包加载失败")
        events.emit_wallet(error=e.message)
        return WalletResolution(wallet=None, error=e.message)


def _adopt(client: RpcClient, events: EventChannel, name: str, outcome: WalletOutcome) -> WalletResolution:
    client.set_wallet(name)
    events.emit_wallet(wallet=name, outcome=outcome)
    return WalletResolution(wallet=name, outcome=outcome)


class StartupOrchestrator:
    def __init__(
        self,
        supervisor: NodeSupervisor,
        options: NodeOptions | None = None,
        client_factory: Callable[..., RpcClient] = RpcClient,
        log=logger,
    ) -> None:
        self.supervisor = supervisor
        self.options = options or supervisor.options
        self._client_factory = client_factory
        self._base_log = log
        self._log = log.bind(category="APP")
        self._client: RpcClient | None = None
        self._outcome: WalletOutcome | None = None

    @property
    def events(self) -> EventChannel:
        return self.supervisor.events

    @property
    def client(self) -> RpcClient:
        """当前 RPC 客户端；节点启动前按配置文件与覆盖项构造。"""
        if self._client is None:
            config = self.supervisor.rpc_config or self.supervisor.bootstrap_config()
            self._client = self._make_client(config)
        return self._client

    @property
    def wallet(self) -> str | None:
        return self._client.get_wallet() if self._client else None

    def _make_client(self, config: RpcConfig) -> RpcClient:
        config = self.options.apply_rpc_overrides(config)
        self._base_log.bind(category="CONFIG", data=config.redacted()).info("RPC 配置已加载")
        return self._client_factory(config, timeout=self.options.rpc_timeout_s, log=self._base_log)

    async def start(self) -> StartupResult:
        self._log.info("启动节点")
        result = await self.supervisor.start()
        if not result.success or result.config is None:
            error = result.error or "Daemon start failed"
            self._log.bind(data={"error": error}).error("节点启动失败")
            self.events.emit_status(NodeState.ERROR, error)
            return StartupResult(success=False, error=error)

        if result.already_running and self._client is not None:
            # 保留当前客户端与钱包上下文
            self._log.info("节点已在运行")
            client = self._client
            return StartupResult(
                success=True,
                config=client.config,
                wallet=client.get_wallet(),
                outcome=self._outcome,
            )

        self._log.info("节点启动成功")
        client = self._make_client(result.config)
        self._client = client
        self._outcome = None

        if self.options.wallet_delay_s > 0:
            await asyncio.sleep(self.options.wallet_delay_s)
        resolution = await ensure_wallet_loaded(
            client, self.events, self.options.default_wallet, log=self._base_log
        )
        self._outcome = resolution.outcome
        return StartupResult(
            success=resolution.error is None,
            config=client.config,
            wallet=resolution.wallet,
            outcome=resolution.outcome,
            error=resolution.error,
        )

    async def shutdown(self) -> StopResult:
        """停止节点；宿主进程退出前必须等待本方法返回。"""
        self._log.info("关闭请求，先停止节点")
        return await self.supervisor.stop()
