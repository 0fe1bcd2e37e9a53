"""
文件功能：
    RPC 转发的 FastAPI 路由：通用方法调用与钱包上下文读写。

公开接口：
    - POST /rpc/call -> RpcCallResponse（失败时 error 字段携带错误数据，HTTP 状态仍为 200）
    - GET /rpc/wallet -> WalletContext
    - PUT /rpc/wallet -> WalletContext
    所有接口都需要 Bearer 令牌。

内部方法：
    无
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.axewallet.daemon.services import StartupOrchestrator
from src.axewallet.auth import require_token
from src.axewallet.deps import get_orchestrator
from .errors import RpcError
from .schemas import RpcCallRequest, RpcCallResponse, WalletContext


router = APIRouter(prefix="/rpc", tags=["RPC"], dependencies=[Depends(require_token)])

# 成功后把钱包上下文切换到 params[0]
WALLET_SWITCH_METHODS = frozenset({"loadwallet", "createwallet"})


@router.post("/call", response_model=RpcCallResponse)
async def post_call(
    req: RpcCallRequest,
    orchestrator: StartupOrchestrator = Depends(get_orchestrator),
) -> RpcCallResponse:
    """调用任意节点 RPC 方法；加载或创建钱包成功后切换到该钱包。"""
    client = orchestrator.client
    try:
        result = await client.call(req.method, req.params)
    except RpcError as e:
        return RpcCallResponse(error=e.to_info())
    if req.method in WALLET_SWITCH_METHODS and req.params:
        client.set_wallet(str(req.params[0]))
    return RpcCallResponse(result=result)


@router.get("/wallet", response_model=WalletContext)
async def get_wallet(orchestrator: StartupOrchestrator = Depends(get_orchestrator)) -> WalletContext:
    """获取当前钱包上下文。"""
    return WalletContext(name=orchestrator.client.get_wallet())


@router.put("/wallet", response_model=WalletContext)
async def put_wallet(
    req: WalletContext,
    orchestrator: StartupOrchestrator = Depends(get_orchestrator),
) -> WalletContext:
    """切换钱包上下文（仅修改本地状态，不发起 RPC）。"""
    orchestrator.client.set_wallet(req.name)
    return WalletContext(name=orchestrator.client.get_wallet())
