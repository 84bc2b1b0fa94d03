from datetime import datetime, timedelta

import octagram.tasks.retention as retention
from octagram.core.celery_app import celery_app
from octagram.models import Collection, CollectionItem, Run


def _seed(db):
    now = datetime.utcnow()
    db.add(Run(id="fresh", user_id="user-1", type="translate", input_text="a", created_at=now))
    db.add(Run(id="stale", user_id="user-1", type="translate", input_text="b", created_at=now - timedelta(days=40)))
    db.add(Run(id="kept", user_id="user-1", type="reply", input_text="c", created_at=now - timedelta(days=40)))
    db.add(Collection(id="col-1", user_id="user-1", name="Saved", created_at=now))
    db.add(
        CollectionItem(
            id="item-1", collection_id="col-1", run_id="kept", type="reply", input_text="c"
        )
    )
    db.commit()


def test_purge_skips_saved_and_recent_runs(db_session):
    _seed(db_session)
    deleted = retention.purge_runs_before(db_session, datetime.utcnow() - timedelta(days=30))
    assert deleted == 1
    assert sorted(row.id for row in db_session.query(Run).all()) == ["fresh", "kept"]


def test_task_uses_configured_retention(session_factory, monkeypatch):
    db = session_factory()
    _seed(db)
    db.close()
    monkeypatch.setattr(retention, "SessionLocal", session_factory)

    result = retention.purge_expired_runs()

    assert result["deleted"] == 1
    check = session_factory()
    assert check.get(Run, "stale") is None
    check.close()


def test_beat_schedule_registers_task():
    entry = celery_app.conf.beat_schedule["purge-expired-runs"]
    assert entry["task"] == retention.purge_expired_runs.name
