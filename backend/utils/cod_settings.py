import copy
import logging
from datetime import datetime

from fastapi import HTTPException
from pydantic import ValidationError

from config.constants import SETTINGS_DOC_ID
from config.env import STORE_NAME, STORE_CURRENCY, STORE_SUPPORT_EMAIL
from models.cod import CodSettings
from utils.audit import log_audit

logger = logging.getLogger(__name__)

# derived from the ledger on read, never stored from admin input
DERIVED_COD_KEYS = {"analytics"}


# ==============================
# Parsing
# ==============================

def parse_cod_settings(raw) -> CodSettings:
    """
    Build a settings snapshot from a stored `cod` document.
    Anything unparseable switches COD off instead of failing checkout.
    """
    try:
        return CodSettings.model_validate(raw or {})
    except ValidationError as e:
        logger.warning("COD_SETTINGS_INVALID errors=%s", e.errors(include_url=False, include_context=False))
        return CodSettings(enabled=False)


def dump_cod_settings(settings: CodSettings) -> dict:
    return settings.model_dump(by_alias=True, exclude=DERIVED_COD_KEYS)


def deep_merge(base: dict, patch: dict) -> dict:
    """Objects merge key by key, everything else (lists included) is replaced."""
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


# ==============================
# Reads
# ==============================

async def load_settings_document(db) -> dict:
    return await db.settings.find_one({"_id": SETTINGS_DOC_ID}) or {}


async def get_cod_snapshot(db) -> tuple[CodSettings, int]:
    """
    One consistent read per checkout attempt.
    Returns the parsed settings and the version they were saved under.
    """
    doc = await load_settings_document(db)
    return parse_cod_settings(doc.get("cod")), int(doc.get("cod_version") or 0)


def public_projection(doc: dict) -> dict:
    store = doc.get("store") or {}
    settings = parse_cod_settings(doc.get("cod"))

    return {
        "store": {
            "name": store.get("name") or STORE_NAME,
            "currency": store.get("currency") or STORE_CURRENCY,
            "supportEmail": store.get("supportEmail") or STORE_SUPPORT_EMAIL,
        },
        "cod": {
            "enabled": settings.enabled,
        },
    }


# ==============================
# Writes
# ==============================

async def update_cod_settings(db, *, patch: dict, actor_id: str) -> dict:
    if not isinstance(patch, dict):
        raise HTTPException(422, "cod settings must be an object")

    patch = {k: v for k, v in patch.items() if k not in DERIVED_COD_KEYS}

    doc = await load_settings_document(db)
    current = doc.get("cod") if isinstance(doc.get("cod"), dict) else {}
    merged = deep_merge(current, patch)

    try:
        settings = CodSettings.model_validate(merged)
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False, include_context=False))

    stored = dump_cod_settings(settings)
    now = datetime.utcnow()

    await db.settings.update_one(
        {"_id": SETTINGS_DOC_ID},
        {
            "$set": {
                "cod": stored,
                "updated_at": now,
                "updated_by": actor_id,
            },
            "$inc": {"cod_version": 1},
        },
        upsert=True,
    )

    saved = await load_settings_document(db)
    version = int(saved.get("cod_version") or 0)

    await log_audit(
        db,
        actor_id=actor_id,
        actor_role="admin",
        action="COD_SETTINGS_UPDATED",
        metadata={"changed": sorted(patch.keys()), "cod_version": version},
    )

    logger.info("COD_SETTINGS_UPDATED version=%s actor=%s", version, actor_id)

    return {"cod": stored, "codVersion": version}
