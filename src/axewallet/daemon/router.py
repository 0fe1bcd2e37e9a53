"""
文件功能：
    节点管理的 FastAPI 路由：暴露节点状态、启动、停止与日志查询接口。

公开接口：
    - GET /node/status -> NodeOverview
    - POST /node/start -> StartupResult
    - POST /node/stop -> StopResult
    - GET /node/logs -> List[LogEvent]
    所有接口都需要 Bearer 令牌。

内部方法：
    无
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from src.axewallet.auth import require_token
from src.axewallet.deps import get_orchestrator, get_recorder
from .events import EventRecorder
from .schemas import LogEvent, NodeOverview, StartupResult, StopResult
from .services import StartupOrchestrator


router = APIRouter(prefix="/node", tags=["Node"], dependencies=[Depends(require_token)])


@router.get("/status", response_model=NodeOverview)
async def get_status(
    orchestrator: StartupOrchestrator = Depends(get_orchestrator),
    recorder: EventRecorder = Depends(get_recorder),
) -> NodeOverview:
    """获取节点状态。"""
    return NodeOverview(
        node=orchestrator.supervisor.status(),
        last_status=recorder.last_status,
        last_wallet=recorder.last_wallet,
        wallet=orchestrator.wallet,
    )


@router.post("/start", response_model=StartupResult)
async def post_start(orchestrator: StartupOrchestrator = Depends(get_orchestrator)) -> StartupResult:
    """启动节点并确保钱包已加载。"""
    return await orchestrator.start()


@router.post("/stop", response_model=StopResult)
async def post_stop(orchestrator: StartupOrchestrator = Depends(get_orchestrator)) -> StopResult:
    """停止节点。"""
    return await orchestrator.shutdown()


@router.get("/logs", response_model=List[LogEvent])
async def get_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    recorder: EventRecorder = Depends(get_recorder),
) -> List[LogEvent]:
    """获取最近的节点输出。"""
    return recorder.tail(limit)
