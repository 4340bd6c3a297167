from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import HTTPException

from config.env import COD_TIMEZONE

STORE_TZ = ZoneInfo(COD_TIMEZONE)


def store_now() -> datetime:
    return datetime.now(STORE_TZ)


def to_store_local(value: datetime) -> datetime:
    """
    Aware timestamps are shifted into the store timezone.
    Naive ones are assumed to be store-local already.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=STORE_TZ)
    return value.astimezone(STORE_TZ)


def parse_order_time(raw: str | None) -> datetime:
    if not raw:
        return store_now()

    text = raw.strip()
    # browsers send `...Z`, fromisoformat wants an offset on older pythons
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise HTTPException(400, "Invalid orderTime")

    return to_store_local(parsed)
