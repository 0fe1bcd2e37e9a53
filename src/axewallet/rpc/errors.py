"""
RPC 调用失败时抛出的异常。

每个异常都带有 kind 与 message，可通过 to_info() 转换为 RpcErrorInfo，在接口边界以数据形式返回。
"""

from __future__ import annotations

from .schemas import RpcErrorInfo


class RpcError(Exception):
    """RPC 异常基类。"""

    kind = "rpc"

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_info(self) -> RpcErrorInfo:
        return RpcErrorInfo(kind=self.kind, message=self.message, code=self.code)


class RpcConnectionError(RpcError):
    """无法连接节点（连接被拒绝、连接中断等）。"""

    kind = "connection"


class RpcTimeout(RpcError):
    """请求超时。"""

    kind = "timeout"


class RpcProtocolError(RpcError):
    """响应体不是合法 JSON。"""

    kind = "protocol"

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RpcApplicationError(RpcError):
    """节点返回了格式正确的错误对象。"""

    kind = "application"
