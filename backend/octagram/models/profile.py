from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from octagram.core.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    # Supabase user_id (uuid string)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String, nullable=True, default="UTC")
    locale: Mapped[str | None] = mapped_column(String, nullable=True, default="en")
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    username: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    public_profile: Mapped[bool] = mapped_column(Boolean, default=False)
    # light | dark
    theme: Mapped[str] = mapped_column(String, default="light")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
