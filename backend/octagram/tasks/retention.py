from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from octagram.core.celery_app import celery_app
from octagram.core.config import settings
from octagram.core.database import SessionLocal
from octagram.models import CollectionItem, Run


logger = logging.getLogger(__name__)


# 删除超过保留期且未被收藏引用的 run
def purge_runs_before(db: Session, cutoff: datetime) -> int:
    saved = select(CollectionItem.run_id).where(CollectionItem.run_id.is_not(None))
    deleted = (
        db.query(Run)
        .filter(Run.created_at < cutoff, Run.id.not_in(saved))
        .delete(synchronize_session=False)
    )
    db.commit()
    return int(deleted or 0)


# Celery 任务：按 history_retention_days 清理历史记录
@celery_app.task
def purge_expired_runs() -> Dict[str, Any]:
    cutoff = datetime.utcnow() - timedelta(days=settings.history_retention_days)
    db = SessionLocal()
    try:
        deleted = purge_runs_before(db, cutoff)
    finally:
        db.close()
    logger.info(f"Purged {deleted} runs created before {cutoff.isoformat()}")
    return {"deleted": deleted, "cutoff": cutoff.isoformat()}
