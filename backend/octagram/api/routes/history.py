from __future__ import annotations

import math
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from octagram.core.auth import UserContext, get_current_user
from octagram.core.config import settings
from octagram.core.database import get_db
from octagram.core.schemas import RUN_TYPES, HistoryResponse, RunOut
from octagram.models import Collection, CollectionItem, Run


router = APIRouter()

DEFAULT_LIMIT = 30
MAX_LIMIT = 50


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# 分页参数不是有限数字时回退默认值
def _page_number(raw: str | None, default: int) -> int:
    try:
        value = float(raw) if raw else float(default)
    except ValueError:
        return default
    if not math.isfinite(value):
        return default
    return int(value)


def _to_run_out(row: Run) -> RunOut:
    return RunOut(
        id=row.id,
        type=row.type,
        source=row.source,
        input_text=row.input_text,
        output_text=row.output_text,
        output_json=row.output_json,
        params=row.params or {},
        model=row.model,
        token_total=row.token_total,
        latency_ms=row.latency_ms,
        created_at=row.created_at.isoformat() if row.created_at else None,
    )


# 当前用户收藏中引用到的 run_id（可限定某个收藏夹）
def _saved_run_ids(user_id: str, collection_id: str | None = None):
    stmt = (
        select(CollectionItem.run_id)
        .join(Collection, Collection.id == CollectionItem.collection_id)
        .where(Collection.user_id == user_id, CollectionItem.run_id.is_not(None))
    )
    if collection_id:
        stmt = stmt.where(Collection.id == collection_id)
    return stmt


@router.get("", response_model=HistoryResponse)
def list_history(
    type: str | None = Query(default=None),
    q: str = Query(default=""),
    collection_id: str = Query(default="", alias="collectionId"),
    not_in_collection: str | None = Query(default=None, alias="notInCollection"),
    limit: str | None = Query(default=None),
    offset: str | None = Query(default=None),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> HistoryResponse:
    if type not in RUN_TYPES:
        raise HTTPException(status_code=400, detail=f"type must be one of: {', '.join(RUN_TYPES)}")
    limit = min(max(_page_number(limit, DEFAULT_LIMIT), 1), MAX_LIMIT)
    offset = max(_page_number(offset, 0), 0)
    term = q.strip()
    collection_id = collection_id.strip()

    cutoff = datetime.utcnow() - timedelta(days=settings.history_retention_days)
    query = db.query(Run).filter(
        Run.user_id == user.user_id,
        Run.type == type,
        Run.created_at >= cutoff,
    )

    if term:
        pattern = f"%{_escape_like(term)}%"
        query = query.filter(
            or_(
                Run.input_text.ilike(pattern, escape="\\"),
                Run.output_text.ilike(pattern, escape="\\"),
            )
        )

    if collection_id:
        saved = db.execute(_saved_run_ids(user.user_id, collection_id)).scalars().all()
        if not saved:
            return HistoryResponse(items=[])
        query = query.filter(Run.id.in_(saved))
    elif not_in_collection == "1":
        query = query.filter(Run.id.not_in(_saved_run_ids(user.user_id)))

    rows = query.order_by(Run.created_at.desc()).offset(offset).limit(limit).all()
    return HistoryResponse(items=[_to_run_out(row) for row in rows])
