"""
应用生命周期测试：lifespan 构造编排器并在关闭时等待节点停止；接口需要令牌，CORS 只放行本机来源。
"""

from fastapi.testclient import TestClient

from src.axewallet import main


def _quiet_config(tmp_path, monkeypatch):
    monkeypatch.setattr(main.config, "autostart", False)
    monkeypatch.setattr(main.config, "node_data_dir", str(tmp_path / "data"))
    monkeypatch.setattr(main.config, "node_daemon_path", str(tmp_path / "missing"))
    monkeypatch.setattr(main.config, "api_token", "app-token")


def test_lifespan_builds_orchestrator_and_stops(tmp_path, monkeypatch):
    _quiet_config(tmp_path, monkeypatch)

    stop_results = []
    original_build = main.build_orchestrator

    def build(options):
        orchestrator, recorder = original_build(options)
        original_shutdown = orchestrator.shutdown

        async def shutdown():
            result = await original_shutdown()
            stop_results.append(result)
            return result

        orchestrator.shutdown = shutdown
        return orchestrator, recorder

    monkeypatch.setattr(main, "build_orchestrator", build)

    with TestClient(main.app) as client:
        response = client.get("/v1/node/status", headers={"Authorization": "Bearer app-token"})
        data = response.json()
        assert data["node"]["state"] == "stopped"
        assert data["node"]["data_dir"] == str(tmp_path / "data")
        assert data["node"]["executable"] == str(tmp_path / "missing")

    assert [r.message for r in stop_results] == ["Daemon not running"]


def test_api_requires_token(tmp_path, monkeypatch):
    _quiet_config(tmp_path, monkeypatch)

    with TestClient(main.app) as client:
        assert client.get("/v1/node/status").status_code == 401
        response = client.post("/v1/rpc/call", json={"method": "dumpprivkey", "params": ["addr"]})
        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}


def test_foreign_origin_is_not_allowed(tmp_path, monkeypatch):
    _quiet_config(tmp_path, monkeypatch)
    preflight = {"Access-Control-Request-Method": "POST", "Access-Control-Request-Headers": "authorization"}

    with TestClient(main.app) as client:
        evil = client.options("/v1/rpc/call", headers={"Origin": "https://evil.example", **preflight})
        assert "access-control-allow-origin" not in evil.headers

        evil_get = client.get(
            "/v1/node/status",
            headers={"Origin": "https://evil.example", "Authorization": "Bearer app-token"},
        )
        assert "access-control-allow-origin" not in evil_get.headers

        lookalike = client.options("/v1/rpc/call", headers={"Origin": "http://localhost.evil.example", **preflight})
        assert "access-control-allow-origin" not in lookalike.headers

        local = client.options("/v1/rpc/call", headers={"Origin": "http://localhost:5173", **preflight})
        assert local.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert "access-control-allow-credentials" not in local.headers
