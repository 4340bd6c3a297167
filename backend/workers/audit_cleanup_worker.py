import asyncio
import logging
from datetime import datetime, timedelta

from database import get_db
from config.env import AUDIT_RETENTION_DAYS

CHECK_INTERVAL_SECONDS = 60 * 60  # hourly
logger = logging.getLogger(__name__)


async def purge_expired_audit_logs(db, now: datetime | None = None) -> int:
    cutoff = (now or datetime.utcnow()) - timedelta(days=max(1, AUDIT_RETENTION_DAYS))

    result = await db.audit_logs.delete_many({
        "created_at": {"$lt": cutoff}
    })
    return result.deleted_count


async def audit_cleanup_worker():
    db = get_db()

    while True:
        try:
            deleted = await purge_expired_audit_logs(db)
            if deleted:
                logger.info("AUDIT_CLEANUP deleted=%s", deleted)
        except Exception:
            # Never crash the worker
            logger.exception("AUDIT_CLEANUP_ERROR")

        await asyncio.sleep(CHECK_INTERVAL_SECONDS)
