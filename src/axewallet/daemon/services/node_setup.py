"""
节点目录与配置初始化服务。

负责定位节点可执行文件、默认数据目录，并在首次运行时补全 superaxecoin.conf 中的 RPC 凭据。
"""

from __future__ import annotations

import os
import secrets
import sys
from pathlib import Path
from typing import Dict, Mapping

from loguru import logger

from ...rpc.schemas import DEFAULT_RPC_HOST, DEFAULT_RPC_USER, RpcConfig


SERVICE_NAME = "superaxecoin"
APP_DIR_NAME = "SuperAxeCoin"
CONFIG_FILE_NAME = f"{SERVICE_NAME}.conf"
RESOURCES_ENV = "AXEWALLET_RESOURCES_DIR"

RPC_PORTS = {
    "mainnet": 9998,
    "testnet": 19998,
    "regtest": 19443,
}

_RELEASE_DIRS = {
    "win32": "windows-x64",
    "darwin": "macos-x64",
}


def _get_code_dir() -> Path:
    """获取仓库根目录。"""
    return Path(__file__).resolve().parents[4]


def default_rpc_port(network: str = "mainnet") -> int:
    return RPC_PORTS.get(network, RPC_PORTS["mainnet"])


def get_default_data_dir(platform: str | None = None, environ: Mapping[str, str] | None = None) -> Path:
    """按平台返回节点默认数据目录。"""
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ
    if platform == "win32":
        appdata = environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(appdata) / APP_DIR_NAME
    if platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    return Path.home() / f".{SERVICE_NAME}"


def get_config_path(data_dir: Path) -> Path:
    return Path(data_dir) / CONFIG_FILE_NAME


def resolve_executable_path(
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
    frozen: bool | None = None,
) -> Path:
    """返回节点可执行文件路径，只依赖平台与运行环境，不访问文件系统。

    - 打包运行（设置了 AXEWALLET_RESOURCES_DIR 或解释器被冻结）：<resources>/daemon/<exe>
    - 开发运行：<仓库上级目录>/superaxecoin/release/<平台目录>/<exe>
    """
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ
    frozen = getattr(sys, "frozen", False) if frozen is None else frozen
    executable = f"{SERVICE_NAME}d.exe" if platform == "win32" else f"{SERVICE_NAME}d"

    resources = environ.get(RESOURCES_ENV)
    if resources:
        return Path(resources) / "daemon" / executable
    if frozen:
        return Path(sys.executable).resolve().parent / "daemon" / executable

    release_dir = _RELEASE_DIRS.get(platform, "linux-x64")
    return _get_code_dir().parent / SERVICE_NAME / "release" / release_dir / executable


def parse_config_text(text: str) -> Dict[str, str]:
    """解析 key=value 行。

    不含 '=' 的行、键为空的行直接跳过；没有注释语法。值为空的键视为不存在。
    """
    values: Dict[str, str] = {}
    for raw in text.splitlines():
        if "=" not in raw:
            continue
        key, _, value = raw.partition("=")
        key = key.strip()
        value = value.strip()
        if key and value:
            values[key] = value
    return values


def render_config(values: Mapping[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in values.items())


def generate_rpc_password() -> str:
    return secrets.token_hex(32)


def bootstrap_config(data_dir: Path, network: str = "mainnet", log=logger) -> RpcConfig:
    """确保数据目录与配置文件中具备 RPC 所需的键，已有的非空值从不覆盖。

    仅在补充了至少一个键时才回写文件。返回由最终键值构造的 RpcConfig。
    """
    log = log.bind(category="CONFIG")
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    config_path = get_config_path(data_dir)

    values: Dict[str, str] = {}
    if config_path.exists():
        values = parse_config_text(config_path.read_text(encoding="utf-8"))

    defaults = {
        "server": lambda: "1",
        "rpcuser": lambda: DEFAULT_RPC_USER,
        "rpcpassword": generate_rpc_password,
        "rpcport": lambda: str(default_rpc_port(network)),
        "rpcallowip": lambda: DEFAULT_RPC_HOST,
    }
    added = []
    for key, make_default in defaults.items():
        if not values.get(key):
            values[key] = make_default()
            added.append(key)

    if added:
        existed = config_path.exists()
        config_path.write_text(render_config(values), encoding="utf-8")
        try:
            os.chmod(config_path, 0o600)
        except OSError as e:
            log.warning(f"设置配置文件权限失败: {e}")
        if existed:
            log.info(f"已补全配置文件 {config_path}: {', '.join(added)}")
        else:
            log.info(f"已创建配置文件: {config_path}")

    try:
        port = int(values["rpcport"])
    except ValueError:
        port = default_rpc_port(network)
        log.warning(f"配置中的 rpcport 无效（{values['rpcport']}），使用默认端口 {port}")

    return RpcConfig(
        host=DEFAULT_RPC_HOST,
        port=port,
        user=values["rpcuser"],
        password=values["rpcpassword"],
    )
