from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import text

from bethouse.config import Settings
from bethouse.db import SessionLocal, engine
from bethouse.services.events import auto_lock_due_events
from bethouse.services.hub import get_hub
from bethouse.services.notifications import deliver_pending

logger = logging.getLogger(__name__)

_scheduler: BackgroundScheduler | None = None
_run_locks = {"autolock": threading.Semaphore(1), "notify": threading.Semaphore(1)}


def _can_reach_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:  # noqa: BLE001
        return False


def run_job(job_type: str, settings: Settings) -> dict[str, object] | None:
    run_lock = _run_locks[job_type]
    if not run_lock.acquire(blocking=False):
        logger.info("Skipping %s job because another run is in progress", job_type)
        return None

    try:
        with SessionLocal() as session:
            if job_type == "autolock":
                locked = auto_lock_due_events(session)
                if locked:
                    logger.info("Auto-locked events %s", locked)
                return {"locked": locked}
            return deliver_pending(session, get_hub(), limit=settings.notify_batch_size)
    except Exception:  # noqa: BLE001
        logger.exception("Scheduler %s job failed", job_type)
        return None
    finally:
        run_lock.release()


def start_scheduler(settings: Settings) -> bool:
    global _scheduler

    if not settings.enable_scheduler:
        logger.info("Scheduler disabled by ENABLE_SCHEDULER=false")
        return False

    if settings.sched_require_db and (not settings.database_url or not _can_reach_db()):
        logger.warning("Scheduler not started: DB unavailable and SCHED_REQUIRE_DB=true")
        return False

    if _scheduler is not None and _scheduler.running:
        return True

    _scheduler = BackgroundScheduler(timezone=timezone.utc)
    now = datetime.now(timezone.utc)
    _scheduler.add_job(
        run_job,
        "interval",
        args=["notify", settings],
        id="notify_job",
        seconds=settings.sched_notify_interval_sec,
        max_instances=1,
        coalesce=True,
        next_run_time=now,
        replace_existing=True,
    )
    _scheduler.add_job(
        run_job,
        "interval",
        args=["autolock", settings],
        id="autolock_job",
        seconds=settings.sched_autolock_interval_sec,
        max_instances=1,
        coalesce=True,
        next_run_time=now + timedelta(seconds=5),
        replace_existing=True,
    )
    _scheduler.start()
    return True


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None


def scheduler_is_running() -> bool:
    return _scheduler is not None and _scheduler.running


def scheduler_next_run_times() -> dict[str, datetime | None]:
    if _scheduler is None:
        return {}
    return {job.id: job.next_run_time for job in _scheduler.get_jobs()}
