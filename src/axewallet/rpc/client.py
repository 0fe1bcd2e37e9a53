"""
文件功能：
    节点 JSON-RPC 客户端：每次调用独立发起一次 HTTP POST，按钱包上下文决定请求路径。

公开接口：
    - RpcClient: RPC 客户端
    - WALLET_METHODS: 需要路由到 /wallet/<name> 的方法名集合
    - is_wallet_method(method) -> bool

内部方法：
    - _next_request_id() -> int: 生成请求 id

说明：
    - 不复用连接、不重试、不排队；并发调用互不阻塞，也不保证先后顺序。
    - 所有失败都抛出 RpcError 的子类，调用方可用 to_info() 转为数据。
"""

from __future__ import annotations

import itertools
import json
import time
from typing import Any, Iterable, Mapping
from urllib.parse import quote

import httpx
from loguru import logger

from .errors import (
    RpcApplicationError,
    RpcConnectionError,
    RpcProtocolError,
    RpcTimeout,
)
from .schemas import RpcConfig


DEFAULT_TIMEOUT_S = 30.0

WALLET_METHODS = frozenset(
    {
        "getwalletinfo",
        "getbalance",
        "getnewaddress",
        "listaddressgroupings",
        "getaddressinfo",
        "listreceivedbyaddress",
        "listtransactions",
        "gettransaction",
        "sendtoaddress",
        "signmessage",
        "verifymessage",
        "encryptwallet",
        "walletpassphrase",
        "walletlock",
        "walletpassphrasechange",
        "backupwallet",
        "listunspent",
        "createrawtransaction",
        "fundrawtransaction",
        "signrawtransactionwithwallet",
        "settxfee",
        "getaddressesbylabel",
        "listlabels",
        "setlabel",
        "importaddress",
        "importprivkey",
        "dumpprivkey",
        "dumpwallet",
        "importwallet",
        "keypoolrefill",
        "getrawchangeaddress",
        "abandontransaction",
        "abortrescan",
        "addmultisigaddress",
        "bumpfee",
        "createwallet",
        "loadwallet",
        "unloadwallet",
        "listwallets",
        "listwalletdir",
        "listreceivedbylabel",
        "lockunspent",
        "listlockunspent",
        "rescanblockchain",
        "sethdseed",
        "walletcreatefundedpsbt",
        "walletprocesspsbt",
    }
)

_request_ids = itertools.count(int(time.time() * 1000))


def _next_request_id() -> int:
    return next(_request_ids)


def is_wallet_method(method: str) -> bool:
    return method in WALLET_METHODS


class RpcClient:
    """节点 JSON-RPC 客户端。"""

    def __init__(
        self,
        config: RpcConfig | Mapping[str, Any] | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
        log=logger,
    ) -> None:
        if config is None:
            config = RpcConfig()
        elif not isinstance(config, RpcConfig):
            # 缺省或空值字段回落到默认值
            config = RpcConfig(**{k: v for k, v in config.items() if v not in (None, "", 0)})
        self.config = config
        self.timeout = timeout
        self._transport = transport
        self._wallet: str | None = None
        self._log = log.bind(category="RPC")

    def set_wallet(self, name: str | None) -> None:
        self._wallet = name or None

    def get_wallet(self) -> str | None:
        return self._wallet

    def request_path(self, method: str) -> str:
        if self._wallet and is_wallet_method(method):
            return f"/wallet/{quote(self._wallet, safe='')}"
        return "/"

    def _build_payload(self, method: str, params: Iterable[Any] | None) -> dict[str, Any]:
        return {
            "jsonrpc": "1.0",
            "id": _next_request_id(),
            "method": method,
            "params": list(params or []),
        }

    async def call(self, method: str, params: Iterable[Any] | None = None) -> Any:
        """发起一次 RPC 调用并返回 result 字段。

        :raises RpcTimeout: 请求超时
        :raises RpcConnectionError: 传输层失败
        :raises RpcProtocolError: 响应体不是 JSON
        :raises RpcApplicationError: 节点返回 error
        """
        payload = self._build_payload(method, params)
        # 钱包上下文只在构造请求时读取一次
        path = self.request_path(method)
        url = f"http://{self.config.host}:{self.config.port}{path}"
        self._log.bind(data={"params": len(payload["params"])}).debug(f"调用 {method} -> {path}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    content=json.dumps(payload),
                    headers={"Content-Type": "application/json"},
                    auth=(self.config.user, self.config.password),
                )
        except httpx.TimeoutException as e:
            self._log.warning(f"{method} 请求超时")
            raise RpcTimeout("Request timeout") from e
        except httpx.HTTPError as e:
            self._log.warning(f"{method} 连接失败：{e}")
            raise RpcConnectionError(f"Connection failed: {e}") from e

        try:
            data = json.loads(response.text)
        except ValueError as e:
            self._log.warning(f"{method} 响应无法解析 (HTTP {response.status_code})")
            raise RpcProtocolError(
                "Invalid JSON response", status_code=response.status_code, body=response.text
            ) from e
        if not isinstance(data, dict):
            raise RpcProtocolError(
                "Invalid JSON response", status_code=response.status_code, body=response.text
            )

        error = data.get("error")
        if error is not None:
            message = "RPC Error"
            code = None
            if isinstance(error, dict):
                message = error.get("message") or message
                code = error.get("code")
            self._log.bind(data={"code": code}).warning(f"{method} 失败：{message}")
            raise RpcApplicationError(message, code=code if isinstance(code, int) else None)

        self._log.debug(f"{method} 成功")
        return data.get("result")
