"""
配置加载模块：支持 .env、环境变量、工作目录 config.json（或 CONFIG_FILE 指定）多来源合并。
公开接口：
- Config: 读取配置的设置类
- config: Config 的单例实例
内部方法：
- Config.settings_customise_sources: 自定义配置来源顺序
- Config.parse_list: 将字符串/JSON 解析为 List[str]（节点参数、CORS 来源）
- Config.check_network: 校验网络名称
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Annotated, Any, List, Tuple

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


NETWORKS = ("mainnet", "testnet", "regtest")


class Config(BaseSettings):
    # 节点进程
    node_network: str = "mainnet"
    node_data_dir: str | None = None
    node_daemon_path: str | None = None
    node_daemon_args: Annotated[List[str], NoDecode] = []

    # RPC 覆盖项（为空表示使用配置文件中的值）
    rpc_port: int | None = None
    rpc_user: str | None = None
    rpc_password: str | None = None
    rpc_timeout_s: float = 30.0

    default_wallet: str = "default_wallet"

    # 时序
    settle_delay_s: float = 2.0
    stop_timeout_s: float = 30.0
    wallet_delay_s: float = 3.0

    # HTTP 接口与日志
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    # 为空时从令牌文件读取，文件不存在则生成
    api_token: str | None = None
    api_token_file: str | None = None
    cors_origins: Annotated[List[str], NoDecode] = []
    cors_origin_regex: str | None = r"https?://(localhost|127\.0\.0\.1)(:\d+)?$"
    autostart: bool = True
    log_dir: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("node_daemon_args", "cors_origins", mode="before")
    @classmethod
    def parse_list(cls, value: Any) -> List[str]:
        """支持从环境变量以 JSON 或分隔符（逗号/分号/空白）解析字符串列表。"""
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return [str(v) for v in value]
        if isinstance(value, str):
            text = value.strip()
            # 优先尝试 JSON
            try:
                loaded = json.loads(text)
                if isinstance(loaded, list):
                    return [str(v) for v in loaded]
            except ValueError:
                pass
            return [p for p in re.split(r"[\s,;]+", text) if p]
        return value

    @field_validator("node_network")
    @classmethod
    def check_network(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in NETWORKS:
            raise ValueError(f"不支持的网络: {value}，可选值为 {', '.join(NETWORKS)}")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """自定义配置来源顺序：入参 > 环境变量 > .env > config.json > secrets。

        JSON 文件路径在每次构造时读取 CONFIG_FILE，文件不存在时该来源为空。
        """
        json_file = os.environ.get("CONFIG_FILE") or Path.cwd() / "config.json"
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=json_file, json_file_encoding="utf-8"),
            file_secret_settings,
        )


config = Config()
