from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from octagram.api.deps import get_usage_ledger
from octagram.core.auth import UserContext, get_current_user
from octagram.core.database import get_db
from octagram.core.schemas import (
    ReplyRequest,
    ReplyResponse,
    RewriteRequest,
    RewriteResponse,
    ToolOptions,
    TranslateRequest,
    TranslateResponse,
)
from octagram.core.tone import list_creativity_labels, list_formality_labels
from octagram.services.generation import (
    BudgetExceededError,
    GenerationRequest,
    GenerationResult,
    ModelNotConfiguredError,
    run_generation,
)
from octagram.services.llm_service import LLMServiceError
from octagram.services.prompt_strategy import (
    REPLY_INTENTS,
    REPLY_LENGTHS,
    REWRITE_GOALS,
    build_reply_prompt,
    build_reply_user_content,
    build_rewrite_prompt,
    build_translate_prompt,
)
from octagram.services.reply_parser import ReplyFormatError, extract_replies
from octagram.services.usage_ledger import UsageLedger


router = APIRouter()

REPLY_TEMPERATURE = 0.7


def _generate(
    db: Session,
    ledger: UsageLedger,
    user: UserContext,
    request: GenerationRequest,
    reply_mode: bool = False,
) -> GenerationResult:
    try:
        return run_generation(
            db,
            ledger,
            user.user_id,
            request,
            parse_replies=extract_replies if reply_mode else None,
        )
    except ModelNotConfiguredError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except BudgetExceededError as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except ReplyFormatError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except LLMServiceError as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc


# 前端下拉/滑块所需的选项目录
@router.get("/tools/options", response_model=ToolOptions)
def get_tool_options() -> ToolOptions:
    return ToolOptions(
        formality=list(list_formality_labels()),
        creativity=list(list_creativity_labels()),
        goals=list(REWRITE_GOALS),
        intents=list(REPLY_INTENTS),
        lengths=list(REPLY_LENGTHS),
    )


@router.post("/translate", response_model=TranslateResponse)
def translate(
    payload: TranslateRequest,
    db: Session = Depends(get_db),
    ledger: UsageLedger = Depends(get_usage_ledger),
    user: UserContext = Depends(get_current_user),
) -> TranslateResponse:
    result = _generate(
        db,
        ledger,
        user,
        GenerationRequest(
            type="translate",
            system_prompt=build_translate_prompt(payload.formality, payload.creativity),
            input_text=payload.text,
            params={"formality": payload.formality, "creativity": payload.creativity},
        ),
    )
    return TranslateResponse(translation=result.output_text or "", run_id=result.run_id)


@router.post("/rewrite", response_model=RewriteResponse)
def rewrite(
    payload: RewriteRequest,
    db: Session = Depends(get_db),
    ledger: UsageLedger = Depends(get_usage_ledger),
    user: UserContext = Depends(get_current_user),
) -> RewriteResponse:
    result = _generate(
        db,
        ledger,
        user,
        GenerationRequest(
            type="rewrite",
            system_prompt=build_rewrite_prompt(
                payload.goal_preset, payload.formality, payload.creativity
            ),
            input_text=payload.text,
            params={
                "goalPreset": payload.goal_preset,
                "formality": payload.formality,
                "creativity": payload.creativity,
            },
        ),
    )
    return RewriteResponse(output=result.output_text or "", run_id=result.run_id)


@router.post("/reply", response_model=ReplyResponse)
def reply(
    payload: ReplyRequest,
    db: Session = Depends(get_db),
    ledger: UsageLedger = Depends(get_usage_ledger),
    user: UserContext = Depends(get_current_user),
) -> ReplyResponse:
    result = _generate(
        db,
        ledger,
        user,
        GenerationRequest(
            type="reply",
            system_prompt=build_reply_prompt(payload.intent, payload.length, payload.formality),
            input_text=build_reply_user_content(
                payload.conversation_context, payload.what_i_want_to_say
            ),
            params={
                "intent": payload.intent,
                "length": payload.length,
                "formality": payload.formality,
            },
            temperature=REPLY_TEMPERATURE,
        ),
        reply_mode=True,
    )
    return ReplyResponse(replies=result.replies or [], run_id=result.run_id)
