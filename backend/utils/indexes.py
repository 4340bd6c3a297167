from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure

from config.constants import COD_CHECK_WINDOW_SECONDS
from utils.idempotency import IDEMPOTENCY_TTL_SECONDS


def _normalize_key_pairs(keys):
    return [(k, v) for k, v in keys]


async def _create_index_safe(collection, keys, **kwargs):
    """
    Create index safely.
    On IndexOptionsConflict/IndexKeySpecsConflict for the same key pattern,
    drop the conflicting index and recreate it with the desired options.
    """
    desired_key = _normalize_key_pairs(keys)
    desired_name = kwargs.get("name")
    try:
        await collection.create_index(keys, **kwargs)
        return
    except OperationFailure as e:
        if getattr(e, "code", None) not in {85, 86}:
            raise

        conflicting_names = []
        async for idx in collection.list_indexes():
            idx_key = _normalize_key_pairs(list(idx.get("key", {}).items()))
            if idx_key == desired_key:
                idx_name = idx.get("name")
                if idx_name and idx_name != desired_name:
                    conflicting_names.append(idx_name)

        for idx_name in conflicting_names:
            await collection.drop_index(idx_name)

        await collection.create_index(keys, **kwargs)


async def ensure_indexes(db):
    # COD ledger: one row per order
    await _create_index_safe(
        db.cod_ledger,
        [("order_id", ASCENDING)],
        name="cod_ledger_order_unique",
        unique=True,
    )
    await _create_index_safe(
        db.cod_ledger,
        [("created_at", DESCENDING)],
        name="cod_ledger_created_at_idx",
    )

    # Orders
    await _create_index_safe(
        db.orders,
        [("buyer_id", ASCENDING), ("created_at", DESCENDING)],
        name="orders_buyer_created_at_idx",
    )
    await _create_index_safe(
        db.orders,
        [("payment.method", ASCENDING), ("payment.status", ASCENDING)],
        name="orders_payment_state_idx",
    )
    await _create_index_safe(
        db.order_timeline,
        [("order_id", ASCENDING), ("created_at", ASCENDING)],
        name="order_timeline_order_idx",
    )

    # Idempotency
    await _create_index_safe(
        db.idempotency_keys,
        [("key", ASCENDING), ("scope", ASCENDING)],
        name="idempotency_key_scope_unique",
        unique=True,
    )
    await _create_index_safe(
        db.idempotency_keys,
        [("created_at", ASCENDING)],
        name="idempotency_ttl_idx",
        expireAfterSeconds=IDEMPOTENCY_TTL_SECONDS,
    )

    # Rate limit windows
    await _create_index_safe(
        db.rate_limits,
        [("key", ASCENDING)],
        name="rate_limits_key_unique",
        unique=True,
    )
    await _create_index_safe(
        db.rate_limits,
        [("created_at", ASCENDING)],
        name="rate_limits_ttl_idx",
        expireAfterSeconds=COD_CHECK_WINDOW_SECONDS * 2,
    )

    # Audit
    await _create_index_safe(
        db.audit_logs,
        [("created_at", ASCENDING)],
        name="audit_logs_created_at_idx",
    )
    await _create_index_safe(
        db.audit_logs,
        [("action", ASCENDING), ("created_at", DESCENDING)],
        name="audit_logs_action_idx",
    )
