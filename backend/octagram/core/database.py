from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from octagram.core.config import settings


# 多 worker 同时建表时用于串行化的 advisory lock id
SCHEMA_LOCK_ID = 80817217


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    # SQLite 默认不执行外键约束，收藏夹删除需要级联到条目
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.database_url
    if url and not url.startswith("sqlite"):
        # 生产环境：Supabase PostgreSQL
        return create_engine(url, future=True, pool_pre_ping=True)
    if not url:
        settings.ensure_dirs()
        url = f"sqlite:///{settings.sqlite_path}"
    sqlite_engine = create_engine(url, connect_args={"check_same_thread": False}, future=True)
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(bind: Engine | None = None) -> None:
    from octagram.models import collection, daily_usage, profile, run  # noqa: F401

    bind = bind or engine
    if bind.dialect.name.startswith("postgres"):
        # 事务级锁，提交时自动释放
        with bind.begin() as conn:
            conn.execute(text("SELECT pg_advisory_xact_lock(:lock_id)"), {"lock_id": SCHEMA_LOCK_ID})
            Base.metadata.create_all(bind=conn)
        return
    Base.metadata.create_all(bind=bind)


# FastAPI 依赖：每个请求一个会话
def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
