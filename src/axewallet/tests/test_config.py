"""
配置与日志格式测试。
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.axewallet.config import Config
from src.axewallet.daemon.schemas import NodeOptions
from src.axewallet.log import format_record, setup_logging


def test_daemon_args_from_string_and_json():
    assert Config(node_daemon_args="-txindex -dbcache=450").node_daemon_args == ["-txindex", "-dbcache=450"]
    assert Config(node_daemon_args='["-addnode=1.2.3.4", "-listen"]').node_daemon_args == [
        "-addnode=1.2.3.4",
        "-listen",
    ]
    assert Config(node_daemon_args="").node_daemon_args == []


def test_daemon_args_from_env(monkeypatch):
    monkeypatch.setenv("NODE_DAEMON_ARGS", "-txindex,-prune=550")
    assert Config().node_daemon_args == ["-txindex", "-prune=550"]


def test_config_json_file_is_lowest_priority_source(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text('{"node_network": "testnet", "api_port": 9100, "cors_origins": ["http://wallet.local"]}', encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))
    monkeypatch.setenv("API_PORT", "9200")

    cfg = Config()

    assert cfg.node_network == "testnet"
    assert cfg.api_port == 9200
    assert cfg.cors_origins == ["http://wallet.local"]


def test_missing_config_json_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "absent.json"))
    assert Config().api_port == 8000


def test_cors_origins_from_env_and_localhost_default(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.local, http://b.local")
    cfg = Config()
    assert cfg.cors_origins == ["http://a.local", "http://b.local"]
    assert Config.model_fields["cors_origin_regex"].default == r"https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def test_network_is_validated():
    assert Config(node_network="TestNet").node_network == "testnet"
    with pytest.raises(ValidationError):
        Config(node_network="signet")


def test_node_options_from_config(tmp_path):
    cfg = Config(
        node_network="regtest",
        node_data_dir=str(tmp_path),
        node_daemon_args=["-txindex"],
        rpc_port=18443,
        stop_timeout_s=5,
    )
    options = NodeOptions.from_config(cfg)
    assert options.network == "regtest"
    assert options.data_dir == Path(tmp_path)
    assert options.daemon_path is None
    assert options.rpc_port == 18443
    assert options.stop_timeout_s == 5
    assert options.passthrough_args() == ["-regtest", "-txindex"]


def test_format_record_appends_data():
    record = {"extra": {"category": "DAEMON", "data": {"pid": 42}}}
    line = format_record(record)
    assert "[DAEMON]" in line
    assert '| {{"pid": 42}}' in line


def test_setup_logging_writes_file(tmp_path):
    from loguru import logger

    log_file = setup_logging(tmp_path / "logs", "DEBUG")
    try:
        logger.bind(category="CONFIG", data={"port": 9998}).info("config loaded")
    finally:
        # 移除输出以关闭文件
        setup_logging(None)

    assert log_file == tmp_path / "logs" / "wallet.log"
    content = log_file.read_text(encoding="utf-8")
    assert "[INFO] [CONFIG] config loaded" in content
    assert '{"port": 9998}' in content
