#!/usr/bin/env python
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from src.axewallet.log import setup_logging


def main() -> None:
    load_dotenv(Path.cwd() / ".env")
    # 环境变量加载完成后再读取配置
    from src.axewallet.config import config
    from src.axewallet.daemon.services import get_default_data_dir

    if config.log_dir:
        log_dir = Path(config.log_dir).expanduser()
    else:
        data_dir = Path(config.node_data_dir).expanduser() if config.node_data_dir else get_default_data_dir()
        log_dir = data_dir / "logs"
    setup_logging(log_dir, config.log_level)
    logger.info("=" * 60)
    logger.info("SuperAxeCoin Wallet Shell starting")
    logger.info(f"当前应用环境：{os.getenv('APP_ENV')}")
    logger.info("=" * 60)

    uvicorn.run(
        "src.axewallet.main:app",
        host=config.api_host,
        port=config.api_port,
        log_level=config.log_level.lower(),
    )
    logger.info("SuperAxeCoin Wallet Shell shutting down")


if __name__ == "__main__":
    main()
