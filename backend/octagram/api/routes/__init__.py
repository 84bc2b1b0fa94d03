from octagram.api.routes.tools import router as tools_router
from octagram.api.routes.usage import router as usage_router
from octagram.api.routes.history import router as history_router
from octagram.api.routes.collections import router as collections_router
from octagram.api.routes.profile import router as profile_router
from octagram.api.routes.account import router as account_router

# 对外导出路由
__all__ = [
    "tools_router",
    "usage_router",
    "history_router",
    "collections_router",
    "profile_router",
    "account_router",
]
