"""
FastAPI 应用入口点。
"""

import asyncio
from contextlib import asynccontextmanager

from loguru import logger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.axewallet.auth import resolve_token
from src.axewallet.config import config
from src.axewallet.daemon.events import EventRecorder
from src.axewallet.daemon.router import router as node_router
from src.axewallet.daemon.schemas import NodeOptions
from src.axewallet.daemon.services import NodeSupervisor, StartupOrchestrator
from src.axewallet.rpc.router import router as rpc_router


def build_orchestrator(options: NodeOptions) -> tuple[StartupOrchestrator, EventRecorder]:
    supervisor = NodeSupervisor(options)
    recorder = EventRecorder()
    supervisor.events.subscribe(recorder)
    return StartupOrchestrator(supervisor, options), recorder


@asynccontextmanager
async def lifespan(app: FastAPI):
    options = NodeOptions.from_config(config)
    orchestrator, recorder = build_orchestrator(options)
    app.state.orchestrator = orchestrator
    app.state.recorder = recorder
    app.state.api_token = resolve_token(config.api_token, config.api_token_file)
    logger.info(f"网络: {options.network}, 数据目录: {orchestrator.supervisor.data_dir}")
    logger.info(f"节点参数: {' '.join(options.daemon_args) or '(none)'}")

    startup_task = None
    if config.autostart:
        startup_task = asyncio.create_task(orchestrator.start())
    try:
        yield
    finally:
        # 应用关闭前必须等待节点停止，否则节点进程会被遗留
        if startup_task is not None and not startup_task.done():
            startup_task.cancel()
            try:
                await startup_task
            except asyncio.CancelledError:
                pass
        try:
            result = await orchestrator.shutdown()
            logger.info(f"节点已停止: {result.message}")
        except Exception as e:
            logger.error(f"停止节点时发生错误: {e}")


app = FastAPI(title="SuperAxeCoin Wallet Shell", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_origin_regex=config.cors_origin_regex,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(node_router, prefix="/v1")
app.include_router(rpc_router, prefix="/v1")

logger.info(f"config: {config.model_dump_json(indent=4, exclude={'rpc_password', 'api_token'})}")
