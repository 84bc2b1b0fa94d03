from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from octagram.core.auth import UserContext, get_current_user
from octagram.core.database import get_db
from octagram.core.schemas import (
    RUN_TYPES,
    CollectionCreate,
    CollectionCreateResponse,
    CollectionDetailResponse,
    CollectionItemCreate,
    CollectionItemDelete,
    CollectionItemOut,
    CollectionListResponse,
    CollectionOut,
    CreatedResponse,
    OkResponse,
)
from octagram.models import Collection, CollectionItem, Run


router = APIRouter()


def _to_collection_out(row: Collection, item_count: int | None = None) -> CollectionOut:
    return CollectionOut(
        id=row.id,
        name=row.name,
        created_at=row.created_at.isoformat() if row.created_at else None,
        item_count=item_count,
    )


def _to_item_out(row: CollectionItem) -> CollectionItemOut:
    return CollectionItemOut(
        id=row.id,
        run_id=row.run_id,
        type=row.type,
        source=row.source,
        input_text=row.input_text,
        output_text=row.output_text,
        output_json=row.output_json,
        params=row.params or {},
        created_at=row.created_at.isoformat() if row.created_at else None,
    )


def _get_owned_collection(db: Session, collection_id: str, user: UserContext) -> Collection:
    row = db.get(Collection, collection_id)
    if not row or row.user_id != user.user_id:
        raise HTTPException(status_code=404, detail="Collection not found.")
    return row


@router.get("", response_model=CollectionListResponse)
def list_collections(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> CollectionListResponse:
    rows = (
        db.query(Collection, func.count(CollectionItem.id))
        .outerjoin(CollectionItem, CollectionItem.collection_id == Collection.id)
        .filter(Collection.user_id == user.user_id)
        .group_by(Collection.id)
        .order_by(Collection.created_at.desc())
        .all()
    )
    return CollectionListResponse(
        items=[_to_collection_out(row, int(count or 0)) for row, count in rows]
    )


@router.post("", response_model=CollectionCreateResponse)
def create_collection(
    payload: CollectionCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> CollectionCreateResponse:
    row = Collection(
        id=str(uuid4()),
        user_id=user.user_id,
        name=payload.name,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return CollectionCreateResponse(item=_to_collection_out(row))


@router.get("/{collection_id}", response_model=CollectionDetailResponse)
def get_collection(
    collection_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> CollectionDetailResponse:
    collection = _get_owned_collection(db, collection_id, user)
    items = (
        db.query(CollectionItem)
        .filter(CollectionItem.collection_id == collection.id)
        .order_by(CollectionItem.created_at.desc())
        .all()
    )
    return CollectionDetailResponse(
        collection=_to_collection_out(collection),
        items=[_to_item_out(item) for item in items],
    )


@router.post("/{collection_id}/items", response_model=CreatedResponse)
def add_collection_item(
    collection_id: str,
    payload: CollectionItemCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> CreatedResponse:
    collection = _get_owned_collection(db, collection_id, user)
    run_id = (payload.run_id or "").strip()

    if run_id:
        # 优先从已有 run 复制（服务端可信数据）
        run = db.get(Run, run_id)
        if not run or run.user_id != user.user_id:
            raise HTTPException(status_code=404, detail="Run not found.")
        item = CollectionItem(
            id=str(uuid4()),
            collection_id=collection.id,
            run_id=run.id,
            type=run.type,
            source=run.source,
            input_text=run.input_text,
            output_text=run.output_text,
            output_json=run.output_json,
            params=run.params or {},
            created_at=run.created_at,
        )
    else:
        if payload.type not in RUN_TYPES:
            raise HTTPException(
                status_code=400, detail="type is required (translate|rewrite|reply)"
            )
        input_text = (payload.input_text or "").strip()
        if not input_text:
            raise HTTPException(status_code=400, detail="inputText is required")
        output_text = payload.output_text.strip() if isinstance(payload.output_text, str) else None
        item = CollectionItem(
            id=str(uuid4()),
            collection_id=collection.id,
            run_id=None,
            type=payload.type,
            source=(payload.source or "web").strip() or "web",
            input_text=input_text,
            output_text=output_text,
            output_json=payload.output_json if isinstance(payload.output_json, dict) else None,
            params=payload.params if isinstance(payload.params, dict) else {},
            created_at=datetime.utcnow(),
        )

    db.add(item)
    db.commit()
    return CreatedResponse(id=item.id)


@router.delete("/{collection_id}/items", response_model=OkResponse, response_model_exclude_none=True)
def remove_collection_item(
    collection_id: str,
    payload: CollectionItemDelete,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> OkResponse:
    collection = _get_owned_collection(db, collection_id, user)
    item_id = (payload.item_id or "").strip()
    if not item_id:
        raise HTTPException(status_code=400, detail="itemId is required")
    db.query(CollectionItem).filter(
        CollectionItem.collection_id == collection.id,
        CollectionItem.id == item_id,
    ).delete(synchronize_session=False)
    db.commit()
    return OkResponse()
