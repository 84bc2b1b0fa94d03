from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from octagram.core.auth import UserContext, get_current_user
from octagram.core.database import get_db
from octagram.core.schemas import DeleteAccountRequest, OkResponse
from octagram.models import Collection, CollectionItem, DailyUsage, Profile, Run
from octagram.services import supabase_auth


logger = logging.getLogger(__name__)

router = APIRouter()

DELETE_CONFIRMATION = "DELETE"


# 删除用户在本库中的全部数据（Supabase 侧用户已删除）
def purge_user_data(db: Session, user_id: str) -> None:
    collection_ids = select(Collection.id).where(Collection.user_id == user_id)
    db.query(CollectionItem).filter(CollectionItem.collection_id.in_(collection_ids)).delete(
        synchronize_session=False
    )
    db.query(Collection).filter(Collection.user_id == user_id).delete(synchronize_session=False)
    db.query(Run).filter(Run.user_id == user_id).delete(synchronize_session=False)
    db.query(DailyUsage).filter(DailyUsage.user_id == user_id).delete(synchronize_session=False)
    db.query(Profile).filter(Profile.id == user_id).delete(synchronize_session=False)
    db.commit()


def _raise_auth_error(exc: supabase_auth.SupabaseAuthError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@router.post("/auth/logout", response_model=OkResponse)
def logout(
    reason: str = Query(default="logged_out"),
    user: UserContext = Depends(get_current_user),
) -> OkResponse:
    try:
        supabase_auth.sign_out(user.access_token)
    except supabase_auth.SupabaseAuthError as exc:
        _raise_auth_error(exc)
    return OkResponse(redirect=f"/login?{urlencode({'reason': reason})}")


@router.post("/profile/delete-account", response_model=OkResponse)
def delete_account(
    payload: DeleteAccountRequest,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> OkResponse:
    if payload.confirm != DELETE_CONFIRMATION:
        raise HTTPException(
            status_code=400,
            detail='Type "DELETE" in the confirmation field to proceed',
        )
    password = payload.password.strip() if isinstance(payload.password, str) else ""
    if not password:
        raise HTTPException(status_code=400, detail="Password is required to delete your account")

    try:
        if not supabase_auth.verify_password(user.email or "", password):
            raise HTTPException(status_code=401, detail="Invalid password")
        supabase_auth.delete_user(user.user_id)
    except supabase_auth.SupabaseAuthError as exc:
        _raise_auth_error(exc)

    purge_user_data(db, user.user_id)
    logger.info(f"Deleted account {user.user_id}")
    return OkResponse(redirect="/login")
