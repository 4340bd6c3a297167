from datetime import datetime
from fastapi import HTTPException


async def rate_limit(
    db,
    key: str,
    max_requests: int,
    window_seconds: int,
):
    """
    Fixed window counter stored in Mongo, shared across workers.
    Each window gets its own document; old ones expire via TTL index.
    """
    now = datetime.utcnow()
    bucket = int(now.timestamp()) // window_seconds
    bucket_key = f"{key}:{bucket}"

    record = await db.rate_limits.find_one({"key": bucket_key})

    if record and record.get("count", 0) >= max(1, max_requests):
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
        )

    await db.rate_limits.update_one(
        {"key": bucket_key},
        {
            "$inc": {"count": 1},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )
