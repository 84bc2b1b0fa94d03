"""Shared request flow of the translate, rewrite and reply tools.

Order matters: budget check, model call, parsing, token accounting, then the
run record. A request that is over budget never reaches the model and is never
charged. Accounting failures abort the request; the run record is best-effort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from octagram.models import Run
from octagram.services.llm_service import ChatCompletion, LLMConfig, complete_chat, is_configured
from octagram.services.usage_ledger import UsageLedger


logger = logging.getLogger(__name__)


class BudgetExceededError(Exception):
    def __init__(self, day: str, token_total: int, budget: int) -> None:
        super().__init__("Daily limit reached. Please come back tomorrow.")
        self.day = day
        self.token_total = token_total
        self.budget = budget


class ModelNotConfiguredError(Exception):
    pass


@dataclass
class GenerationRequest:
    type: str
    system_prompt: str
    input_text: str
    params: Dict[str, Any]
    temperature: Optional[float] = None


@dataclass
class GenerationResult:
    output_text: Optional[str]
    replies: Optional[List[str]]
    run_id: Optional[str]
    completion: ChatCompletion


def _save_run(
    db: Session,
    user_id: str,
    request: GenerationRequest,
    completion: ChatCompletion,
    output_text: Optional[str],
    replies: Optional[List[str]],
) -> Optional[str]:
    run = Run(
        id=str(uuid4()),
        user_id=user_id,
        type=request.type,
        source="web",
        input_text=request.input_text,
        output_text=output_text,
        output_json={"replies": replies} if replies is not None else None,
        params=request.params,
        model=completion.model,
        token_in=completion.token_in,
        token_out=completion.token_out,
        token_total=completion.token_total,
        latency_ms=completion.latency_ms,
        created_at=datetime.utcnow(),
    )
    try:
        db.add(run)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(f"Failed to record {request.type} run for {user_id}: {exc}")
        return None
    return run.id


def run_generation(
    db: Session,
    ledger: UsageLedger,
    user_id: str,
    request: GenerationRequest,
    parse_replies: Callable[[str], List[str]] | None = None,
    config: LLMConfig | None = None,
) -> GenerationResult:
    if not is_configured(config):
        raise ModelNotConfiguredError("OpenAI API key not configured")

    usage = ledger.get_today_total(user_id)
    if ledger.is_exhausted(usage):
        logger.info(
            f"Daily budget reached for {user_id} on {usage.day}: "
            f"{usage.token_total}/{ledger.daily_budget}"
        )
        raise BudgetExceededError(usage.day, usage.token_total, ledger.daily_budget)

    completion = complete_chat(
        request.system_prompt,
        request.input_text,
        temperature=request.temperature,
        config=config,
    )

    replies: Optional[List[str]] = None
    output_text: Optional[str] = None
    if parse_replies is not None:
        # ReplyFormatError 交给路由层转成 502
        replies = parse_replies(completion.content)
    else:
        output_text = completion.content.strip()

    if completion.token_total is not None:
        ledger.add_tokens(user_id, completion.token_total)

    run_id = _save_run(db, user_id, request, completion, output_text, replies)
    return GenerationResult(
        output_text=output_text,
        replies=replies,
        run_id=run_id,
        completion=completion,
    )
