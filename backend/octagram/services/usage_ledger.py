from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from octagram.models import DailyUsage


Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# YYYY-MM-DD (UTC)，保证不同客户端的预算口径一致
def utc_day(now: datetime) -> str:
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d")


def normalize_delta(delta: float | int | None) -> int:
    if delta is None:
        return 0
    if isinstance(delta, int) and not isinstance(delta, bool):
        return max(0, delta)
    value = float(delta)
    if not math.isfinite(value):
        return 0
    return max(0, math.trunc(value))


@dataclass(frozen=True)
class UsageSnapshot:
    day: str
    token_total: int


class UsageLedger:
    """Per-account, per-UTC-day token counter backed by ``daily_usage``.

    The ledger only reads and accumulates. Checking the budget before calling
    the model is the caller's job (see ``is_exhausted``).

    ``add_tokens`` reads the current total and then upserts ``current + delta``.
    Two concurrent requests for the same account and day can read the same
    total, in which case one of the increments is lost. Nothing signals this.
    """

    def __init__(self, db: Session, daily_budget: int, clock: Clock | None = None) -> None:
        self.db = db
        self.daily_budget = daily_budget
        self._clock = clock or _utc_now

    def today(self) -> str:
        return utc_day(self._clock())

    def get_today_total(self, user_id: str) -> UsageSnapshot:
        day = self.today()
        row = self.db.get(DailyUsage, (user_id, day))
        return UsageSnapshot(day=day, token_total=row.token_total if row else 0)

    def add_tokens(self, user_id: str, delta: float | int | None) -> UsageSnapshot:
        current = self.get_today_total(user_id)
        next_total = current.token_total + normalize_delta(delta)
        # DateTime 列存 naive UTC
        updated_at = self._clock().astimezone(timezone.utc).replace(tzinfo=None)

        stmt = self._insert().values(
            user_id=user_id,
            day=current.day,
            token_total=next_total,
            updated_at=updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DailyUsage.user_id, DailyUsage.day],
            set_={"token_total": next_total, "updated_at": updated_at},
        )
        self.db.execute(stmt)
        self.db.commit()
        return UsageSnapshot(day=current.day, token_total=next_total)

    def is_exhausted(self, snapshot: UsageSnapshot) -> bool:
        return snapshot.token_total >= self.daily_budget

    def remaining(self, snapshot: UsageSnapshot) -> int:
        return max(0, self.daily_budget - snapshot.token_total)

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect.startswith("postgres"):
            return pg_insert(DailyUsage)
        if dialect == "sqlite":
            return sqlite_insert(DailyUsage)
        raise RuntimeError(f"daily_usage upsert not supported on {dialect}")
