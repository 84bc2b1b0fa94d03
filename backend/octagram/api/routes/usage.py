from __future__ import annotations

from fastapi import APIRouter, Depends

from octagram.api.deps import get_usage_ledger
from octagram.core.auth import UserContext, get_current_user
from octagram.core.schemas import UsageTodayResponse
from octagram.services.usage_ledger import UsageLedger


router = APIRouter()


@router.get("/today", response_model=UsageTodayResponse)
def get_usage_today(
    ledger: UsageLedger = Depends(get_usage_ledger),
    user: UserContext = Depends(get_current_user),
) -> UsageTodayResponse:
    snapshot = ledger.get_today_total(user.user_id)
    return UsageTodayResponse(
        day=snapshot.day,
        token_total=snapshot.token_total,
        budget=ledger.daily_budget,
        remaining=ledger.remaining(snapshot),
    )
