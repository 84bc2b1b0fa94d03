from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from octagram.core.database import Base


# 每个账号每个 UTC 日一行；没有行等价于 token_total = 0
class DailyUsage(Base):
    __tablename__ = "daily_usage"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    # YYYY-MM-DD (UTC)
    day: Mapped[str] = mapped_column(String(10), primary_key=True)
    token_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
