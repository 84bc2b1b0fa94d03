from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from octagram.api.routes import (
    account_router,
    collections_router,
    history_router,
    profile_router,
    tools_router,
    usage_router,
)
from octagram.core.config import settings
from octagram.core.database import init_db


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# 应用入口：初始化 FastAPI 实例
app = FastAPI(title="Octagram", root_path=settings.root_path or "")

# 配置 CORS，允许前端访问后端 API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 请求体校验失败统一返回 400 与第一条可读信息
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        if first.get("type") == "json_invalid":
            message = "Invalid JSON body"
        else:
            message = str(first.get("msg") or message).removeprefix("Value error, ")
    return JSONResponse(status_code=400, content={"detail": message})


# 存储层异常：本次请求失败，但不影响进程
@app.exception_handler(SQLAlchemyError)
async def storage_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Storage request failed"})


api_prefix = settings.api_prefix
if api_prefix is None:
    api_prefix = "" if (settings.root_path or "").strip() else "/api"
api_prefix = api_prefix.rstrip("/")
app.include_router(tools_router, prefix=api_prefix, tags=["tools"])
app.include_router(usage_router, prefix=f"{api_prefix}/usage", tags=["usage"])
app.include_router(history_router, prefix=f"{api_prefix}/history", tags=["history"])
app.include_router(collections_router, prefix=f"{api_prefix}/collections", tags=["collections"])
app.include_router(profile_router, prefix=f"{api_prefix}/profile", tags=["profile"])
app.include_router(account_router, prefix=api_prefix, tags=["account"])


# 启动事件：创建数据库表结构
@app.on_event("startup")
def on_startup() -> None:
    init_db()
