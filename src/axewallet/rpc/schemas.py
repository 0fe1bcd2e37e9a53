"""
文件功能：
    定义 JSON-RPC 客户端与 RPC 路由相关的公开数据模型（Pydantic）。

公开接口：
    - RpcConfig: 连接节点 RPC 所需的凭据与地址（不可变）
    - RpcErrorInfo: 以数据形式表达的 RPC 失败
    - RpcCallRequest / RpcCallResponse: 通用 RPC 调用接口的请求与响应
    - WalletContext: 钱包上下文读写接口的数据模型
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_RPC_HOST = "127.0.0.1"
DEFAULT_RPC_PORT = 9998
DEFAULT_RPC_USER = "superaxecoinrpc"


class RpcConfig(BaseModel):
    """节点 RPC 连接配置，交给 RpcClient 之后不再修改。"""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default=DEFAULT_RPC_HOST, description="RPC 主机")
    port: int = Field(default=DEFAULT_RPC_PORT, description="RPC 端口")
    user: str = Field(default=DEFAULT_RPC_USER, description="RPC 用户名")
    password: str = Field(default="", description="RPC 密码")

    def redacted(self) -> Dict[str, Any]:
        """用于日志输出的副本，不包含明文密码。"""
        data = self.model_dump()
        data["password"] = "***" if self.password else ""
        return data


class RpcErrorInfo(BaseModel):
    """RPC 失败的数据表示。"""

    kind: str = Field(description="错误类型：connection / timeout / protocol / application")
    message: str = Field(description="错误信息")
    code: int | None = Field(default=None, description="节点返回的错误码（若有）")


class RpcCallRequest(BaseModel):
    method: str = Field(min_length=1, description="RPC 方法名")
    params: list[Any] = Field(default_factory=list, description="位置参数列表")


class RpcCallResponse(BaseModel):
    result: Any = None
    error: RpcErrorInfo | None = None


class WalletContext(BaseModel):
    name: str | None = Field(default=None, description="当前钱包名，为空表示不指定钱包")
