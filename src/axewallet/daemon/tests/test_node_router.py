"""
测试 daemon/router.py 模块：多数用例使用真实 NodeSupervisor，但指向不存在的可执行文件，不会启动任何进程；
重复启动的用例使用只会回答“已在运行”的替身。
"""

import json

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.axewallet.daemon.events import EventChannel, EventRecorder
from src.axewallet.daemon.router import router
from src.axewallet.daemon.schemas import NodeOptions, StartResult, StopResult
from src.axewallet.daemon.services import NodeSupervisor, StartupOrchestrator
from src.axewallet.rpc.client import RpcClient
from src.axewallet.rpc.schemas import RpcConfig

TOKEN = "test-token"


def _authorized(app) -> TestClient:
    client = TestClient(app)
    client.headers.update({"Authorization": f"Bearer {TOKEN}"})
    return client


def _make_app(tmp_path):
    options = NodeOptions(data_dir=tmp_path / "data", daemon_path=tmp_path / "missing", wallet_delay_s=0)
    supervisor = NodeSupervisor(options)
    recorder = EventRecorder()
    supervisor.events.subscribe(recorder)

    app = FastAPI()
    app.include_router(router)
    app.state.orchestrator = StartupOrchestrator(supervisor)
    app.state.recorder = recorder
    app.state.api_token = TOKEN
    return app, supervisor, recorder


def _make_client(tmp_path):
    app, supervisor, recorder = _make_app(tmp_path)
    return _authorized(app), supervisor, recorder


def test_status_endpoint(tmp_path):
    client, _, _ = _make_client(tmp_path)

    response = client.get("/node/status")

    assert response.status_code == 200
    data = response.json()
    assert data["node"]["state"] == "stopped"
    assert data["node"]["running"] is False
    assert data["node"]["data_dir"] == str(tmp_path / "data")
    assert data["last_status"] is None
    assert data["wallet"] is None


def test_requests_without_valid_token_are_rejected(tmp_path):
    app, supervisor, _ = _make_app(tmp_path)

    anonymous = TestClient(app)
    assert anonymous.get("/node/status").status_code == 401
    assert anonymous.post("/node/start").status_code == 401
    wrong = anonymous.post("/node/stop", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401
    assert wrong.json() == {"detail": "Unauthorized"}
    assert supervisor.handle is None


def test_start_endpoint_reports_missing_executable(tmp_path):
    client, supervisor, recorder = _make_client(tmp_path)

    response = client.post("/node/start")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert "Daemon not found at:" in data["error"]
    assert supervisor.handle is None
    assert recorder.last_status.status.value == "error"

    status = client.get("/node/status").json()
    assert status["last_status"]["status"] == "error"


def test_stop_endpoint_when_not_running(tmp_path):
    client, _, _ = _make_client(tmp_path)

    response = client.post("/node/stop")

    assert response.status_code == 200
    assert response.json() == {"success": True, "forced": False, "message": "Daemon not running"}


def test_logs_endpoint_returns_tail(tmp_path):
    client, supervisor, _ = _make_client(tmp_path)
    for i in range(5):
        supervisor.events.emit_log(f"[daemon] line {i}")

    response = client.get("/node/logs", params={"limit": 2})

    assert response.status_code == 200
    assert [e["line"] for e in response.json()] == ["[daemon] line 3", "[daemon] line 4"]


def test_logs_endpoint_validation(tmp_path):
    client, _, _ = _make_client(tmp_path)
    assert client.get("/node/logs", params={"limit": 0}).status_code == 422


class _RunningSupervisor:
    """第一次 start 启动成功，之后都回答已在运行。"""

    def __init__(self):
        self.options = NodeOptions(wallet_delay_s=0)
        self.events = EventChannel()
        self.rpc_config = None
        self.starts = 0

    def bootstrap_config(self):
        return RpcConfig(password="pw")

    async def start(self):
        self.starts += 1
        self.rpc_config = RpcConfig(password="pw")
        return StartResult(success=True, config=self.rpc_config, already_running=self.starts > 1)

    async def stop(self):
        return StopResult(message="Daemon stopped")


def test_start_on_running_node_keeps_client_and_wallet():
    methods = []

    def handler(request):
        body = json.loads(request.content)
        methods.append(body["method"])
        return httpx.Response(200, json={"result": ["w1"], "error": None, "id": body["id"]})

    def factory(config, **kwargs):
        return RpcClient(config, transport=httpx.MockTransport(handler))

    orchestrator = StartupOrchestrator(_RunningSupervisor(), client_factory=factory)
    app = FastAPI()
    app.include_router(router, prefix="/v1")
    app.state.orchestrator = orchestrator
    app.state.recorder = EventRecorder()
    app.state.api_token = TOKEN
    client = _authorized(app)

    first = client.post("/v1/node/start").json()
    assert first["wallet"] == "w1"
    assert first["outcome"] == "already_loaded"
    rpc_client = orchestrator.client
    rpc_client.set_wallet("w2")

    second = client.post("/v1/node/start").json()

    assert second["success"] is True
    assert second["wallet"] == "w2"
    assert second["outcome"] == "already_loaded"
    assert orchestrator.client is rpc_client
    assert orchestrator.wallet == "w2"
    assert methods == ["listwallets"]
