from datetime import datetime


async def record_order_event(
    db,
    *,
    order_id,
    event: str,
    actor_role: str,
    actor_id=None,
    metadata: dict | None = None,
):
    """
    Single source of truth for order timeline events.
    """

    await db.order_timeline.insert_one({
        "order_id": order_id,
        "event": event,
        "actor_role": actor_role,
        "actor_id": actor_id,
        "metadata": metadata or {},
        "created_at": datetime.utcnow(),
    })
