import logging
from datetime import datetime

from pymongo.errors import DuplicateKeyError

from models.cod import CodAnalytics

logger = logging.getLogger(__name__)


# ==============================
# Core: Append-only COD ledger
# ==============================

async def record_cod_order(
    db,
    *,
    order_id,
    charge: float,
    created_at: datetime | None = None,
) -> bool:
    """
    Record one placed COD order. Aggregates are derived from these rows,
    so concurrent checkouts never read-modify-write a shared counter.
    Returns False when the order was already recorded.
    """
    if charge < 0:
        raise ValueError("COD charge cannot be negative")

    try:
        await db.cod_ledger.insert_one({
            "order_id": order_id,
            "charge": round(charge, 2),
            "created_at": created_at or datetime.utcnow(),
        })
    except DuplicateKeyError:
        logger.info("COD_LEDGER_DUPLICATE order=%s", order_id)
        return False

    return True


# ==============================
# Aggregates (derived only)
# ==============================

async def get_cod_analytics(db) -> CodAnalytics:
    pipeline = [
        {"$group": {
            "_id": None,
            "orders": {"$sum": 1},
            "revenue": {"$sum": "$charge"},
            "last": {"$max": "$created_at"},
        }},
    ]

    result = await db.cod_ledger.aggregate(pipeline).to_list(1)
    if not result:
        return CodAnalytics()

    orders = int(result[0]["orders"])
    revenue = round(float(result[0]["revenue"]), 2)

    return CodAnalytics(
        total_cod_orders=orders,
        total_cod_revenue=revenue,
        average_cod_charge=round(revenue / orders, 2) if orders else 0,
        last_updated=result[0].get("last"),
    )
