"""
节点管理服务模块集合。

此包包含节点进程管理、配置初始化与启动编排的实现，按功能拆分以提高可维护性。
"""

from .node_setup import bootstrap_config, resolve_executable_path, get_default_data_dir
from .node_process import NodeSupervisor
from .startup import StartupOrchestrator, ensure_wallet_loaded, DEFAULT_WALLET

__all__ = [
    "bootstrap_config",
    "resolve_executable_path",
    "get_default_data_dir",
    "NodeSupervisor",
    "StartupOrchestrator",
    "ensure_wallet_loaded",
    "DEFAULT_WALLET",
]
