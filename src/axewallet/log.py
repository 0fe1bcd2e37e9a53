"""
日志配置：基于 loguru，控制台 + 滚动文件两个输出。

公开接口：
    - setup_logging(log_dir, level): 安装日志输出
    - format_record(record): 单行日志格式

说明：
    - 每条日志带 category（DAEMON / RPC / WALLET / CONFIG / APP），组件通过 logger.bind(category=...) 指定。
    - 附加的结构化数据放在 extra["data"] 中，以 JSON 形式追加到行尾。
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from loguru import logger


LOG_FILE_NAME = "wallet.log"


def format_record(record) -> str:
    category = record["extra"].get("category", "APP")
    line = "[{time:YYYY-MM-DDTHH:mm:ss.SSSZ}] [{level}] [" + category + "] {message}"
    data = record["extra"].get("data")
    if data is not None:
        try:
            rendered = json.dumps(data, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            rendered = "[Object]"
        # loguru 会对格式串再做一次 format，需转义花括号
        line += " | " + rendered.replace("{", "{{").replace("}", "}}")
    return line + "\n{exception}"


def setup_logging(log_dir: Path | None = None, level: str = "INFO") -> Path | None:
    """安装控制台与文件日志输出，返回日志文件路径（未配置目录时为 None）。"""
    logger.remove()
    logger.configure(extra={"category": "APP"})
    logger.add(sys.stderr, level=level.upper(), format=format_record)
    if log_dir is None:
        return None
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME
    logger.add(
        str(log_file),
        level="DEBUG",
        format=format_record,
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
    )
    logger.info(f"日志文件: {log_file}")
    return log_file
