from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from octagram.core.config import settings


# 创建 Celery 应用
celery_app = Celery(
    "octagram",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery 序列化与时区配置
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        # 每天 UTC 03:15 清理过期历史
        "purge-expired-runs": {
            "task": "octagram.tasks.retention.purge_expired_runs",
            "schedule": crontab(hour=3, minute=15),
        },
    },
)

# 自动发现任务模块
celery_app.autodiscover_tasks(["octagram.tasks"])
