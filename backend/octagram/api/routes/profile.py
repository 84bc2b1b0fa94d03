from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from octagram.core.auth import UserContext, get_current_user
from octagram.core.database import get_db
from octagram.core.schemas import ProfileOut, ProfileResponse, ProfileUpdate
from octagram.models import Profile


router = APIRouter()

MAX_DISPLAY_NAME = 100
MAX_AVATAR_URL = 2048
MAX_BIO = 500
MAX_WEBSITE = 500
MAX_USERNAME = 50
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def _to_profile_out(row: Profile) -> ProfileOut:
    return ProfileOut(
        id=row.id,
        display_name=row.display_name,
        avatar_url=row.avatar_url,
        timezone=row.timezone,
        locale=row.locale,
        bio=row.bio,
        website=row.website,
        username=row.username,
        public_profile=bool(row.public_profile),
        theme="dark" if row.theme == "dark" else "light",
        created_at=row.created_at.isoformat() if row.created_at else None,
        updated_at=row.updated_at.isoformat() if row.updated_at else None,
    )


# 首次访问时创建资料行（注册后由前端直接进入应用）
def get_or_create_profile(db: Session, user: UserContext) -> Profile:
    profile = db.get(Profile, user.user_id)
    if profile:
        return profile
    now = datetime.utcnow()
    profile = Profile(
        id=user.user_id,
        timezone="UTC",
        locale="en",
        public_profile=False,
        theme="light",
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def _bounded_text(value: Any, field: str, max_len: int) -> str | None:
    text = ("" if value is None else str(value)).strip()
    if len(text) > max_len:
        raise HTTPException(status_code=400, detail=f"{field} must be {max_len} characters or less")
    return text or None


def _collect_updates(payload: ProfileUpdate) -> dict[str, Any]:
    provided = payload.model_fields_set
    updates: dict[str, Any] = {}

    if "display_name" in provided:
        updates["display_name"] = _bounded_text(payload.display_name, "displayName", MAX_DISPLAY_NAME)
    if "avatar_url" in provided:
        value = payload.avatar_url.strip() if isinstance(payload.avatar_url, str) else ""
        if len(value) > MAX_AVATAR_URL:
            raise HTTPException(status_code=400, detail="avatarUrl too long")
        updates["avatar_url"] = value or None
    if "timezone" in provided:
        value = payload.timezone.strip() if isinstance(payload.timezone, str) else ""
        updates["timezone"] = value or "UTC"
    if "locale" in provided:
        value = payload.locale.strip() if isinstance(payload.locale, str) else ""
        updates["locale"] = value or "en"
    if "bio" in provided:
        updates["bio"] = _bounded_text(payload.bio, "bio", MAX_BIO)
    if "website" in provided:
        updates["website"] = _bounded_text(payload.website, "website", MAX_WEBSITE)
    if "username" in provided:
        value = ("" if payload.username is None else str(payload.username)).strip().lower()
        if len(value) > MAX_USERNAME:
            raise HTTPException(
                status_code=400, detail=f"username must be {MAX_USERNAME} characters or less"
            )
        if value and not USERNAME_PATTERN.match(value):
            raise HTTPException(
                status_code=400,
                detail="username can only contain letters, numbers, underscores, and hyphens",
            )
        updates["username"] = value or None
    if "public_profile" in provided:
        updates["public_profile"] = bool(payload.public_profile)
    if "theme" in provided:
        updates["theme"] = "dark" if payload.theme == "dark" else "light"

    return updates


@router.get("", response_model=ProfileResponse)
def get_profile(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ProfileResponse:
    return ProfileResponse(profile=_to_profile_out(get_or_create_profile(db, user)))


@router.patch("", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ProfileResponse:
    updates = _collect_updates(payload)
    profile = get_or_create_profile(db, user)
    for key, value in updates.items():
        setattr(profile, key, value)
    profile.updated_at = datetime.utcnow()
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username is already taken") from exc
    db.refresh(profile)
    return ProfileResponse(profile=_to_profile_out(profile))
