"""
路由共用的依赖：从 app.state 取出应用启动时构造的编排器与事件记录器。
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from src.axewallet.daemon.events import EventRecorder
from src.axewallet.daemon.services import StartupOrchestrator


def get_orchestrator(request: Request) -> StartupOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="节点管理尚未初始化")
    return orchestrator


def get_recorder(request: Request) -> EventRecorder:
    recorder = getattr(request.app.state, "recorder", None)
    if recorder is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="事件记录尚未初始化")
    return recorder
