import hashlib
import json
from datetime import datetime

from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

IDEMPOTENCY_TTL_SECONDS = 60 * 60 * 24  # 24 hours
IN_PROGRESS_STALE_SECONDS = 60 * 10     # 10 minutes

IN_PROGRESS_RESPONSE = {
    "message": "Request already in progress",
    "status": "processing",
}


def fingerprint(payload: dict) -> str:
    raw = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


async def reserve_idempotency_key(
    *,
    db,
    key: str,
    scope: str,
    request_hash: str,
):
    """
    Reserve an idempotency key for one request body.

    Returns the stored response when the same request already completed,
    an in-progress marker while a fresh reservation is held, or None once
    the caller owns the key. Reusing a key for a different body is a 409.
    """
    existing = await db.idempotency_keys.find_one({"key": key, "scope": scope})

    if existing:
        if existing.get("request_hash") not in (None, request_hash):
            raise HTTPException(409, "Idempotency key reused with a different request")

        if existing.get("status") == "completed":
            return existing.get("response")

        created_at = existing.get("created_at")
        age_seconds = (
            (datetime.utcnow() - created_at).total_seconds()
            if created_at else 0
        )
        if existing.get("status") == "reserved" and age_seconds <= IN_PROGRESS_STALE_SECONDS:
            return IN_PROGRESS_RESPONSE

        # stale or failed: take it over
        await db.idempotency_keys.delete_one({"_id": existing["_id"]})

    try:
        await db.idempotency_keys.insert_one({
            "key": key,
            "scope": scope,
            "request_hash": request_hash,
            "status": "reserved",
            "response": None,
            "created_at": datetime.utcnow(),
        })
    except DuplicateKeyError:
        concurrent = await db.idempotency_keys.find_one({"key": key, "scope": scope})
        if concurrent and concurrent.get("status") == "completed":
            return concurrent.get("response")
        return IN_PROGRESS_RESPONSE
    return None


async def complete_idempotency_key(*, db, key: str, scope: str, response: dict):
    await db.idempotency_keys.update_one(
        {"key": key, "scope": scope},
        {
            "$set": {
                "status": "completed",
                "response": response,
                "completed_at": datetime.utcnow(),
            }
        },
    )


async def fail_idempotency_key(*, db, key: str, scope: str, error: str):
    """
    Mark the key failed so a retry with the same key is allowed.
    """
    await db.idempotency_keys.update_one(
        {"key": key, "scope": scope},
        {
            "$set": {
                "status": "failed",
                "error": error,
                "failed_at": datetime.utcnow(),
            }
        },
    )


async def clear_idempotency_key(*, db, key: str, scope: str):
    await db.idempotency_keys.delete_one({"key": key, "scope": scope})
