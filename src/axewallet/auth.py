"""
文件功能：
    HTTP 接口访问令牌：所有节点与 RPC 路由都要求 `Authorization: Bearer <token>`。

公开接口：
    - load_or_create_token(path): 读取令牌文件，不存在或为空时生成
    - resolve_token(token, path): 配置中给出令牌时直接使用，否则读取令牌文件
    - verify_token(expected, provided): 常量时间比较
    - require_token(request): FastAPI 依赖，校验失败返回 401

内部方法：
    - _bearer(request): 从 Authorization 头取出令牌
"""

from __future__ import annotations

import os
from pathlib import Path
import secrets
from typing import Optional

from fastapi import HTTPException, Request, status
from loguru import logger


TOKEN_FILE_NAME = "api.token"


def default_token_path() -> Path:
    return Path.cwd() / TOKEN_FILE_NAME


def load_or_create_token(path: Path | None = None) -> str:
    """读取令牌文件；不存在或为空时生成新令牌并以 0600 权限写入。"""
    path = Path(path) if path else default_token_path()
    if path.exists():
        try:
            token = path.read_text(encoding="utf-8").strip()
            if not token:
                raise ValueError("token file is empty")
            return token
        except (OSError, ValueError) as e:
            logger.warning(f"读取 API 令牌失败，将重新生成: {e}")
    token = secrets.token_urlsafe(48)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(token + "\n", encoding="utf-8")
        os.chmod(path, 0o600)
    except OSError as e:
        logger.warning(f"写入 API 令牌文件失败: {e}")
    logger.bind(category="CONFIG").warning(f"已生成 API 令牌，保存在 {path}")
    return token


def resolve_token(token: str | None, path: str | Path | None = None) -> str:
    if token:
        return token
    return load_or_create_token(Path(path) if path else None)


def verify_token(expected: str | None, provided: str | None) -> bool:
    if not expected:
        return False
    return secrets.compare_digest(expected, provided or "")


def _bearer(request: Request) -> Optional[str]:
    scheme, _, value = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def require_token(request: Request) -> None:
    expected = getattr(request.app.state, "api_token", None)
    if not verify_token(expected, _bearer(request)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
