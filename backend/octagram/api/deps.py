from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from octagram.core.config import settings
from octagram.core.database import get_db
from octagram.services.usage_ledger import UsageLedger


# FastAPI 依赖：按请求构造用量账本，预算在启动时由配置注入
def get_usage_ledger(db: Session = Depends(get_db)) -> UsageLedger:
    return UsageLedger(db, daily_budget=settings.daily_token_budget)
