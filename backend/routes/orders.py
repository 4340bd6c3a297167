import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import AliasChoices, BaseModel, Field

from database import get_db
from config.env import COD_CHECK_RATE_LIMIT
from config.constants import COD_CHECK_WINDOW_SECONDS, COD_ORDER_MAX_REQUESTS
from models.cod import CartLine, DeliveryAddress
from utils.clock import parse_order_time, store_now
from utils.cod_analytics import record_cod_order
from utils.cod_policy import evaluate, order_subtotal
from utils.cod_settings import get_cod_snapshot
from utils.idempotency import (
    fingerprint,
    reserve_idempotency_key,
    complete_idempotency_key,
    fail_idempotency_key,
    clear_idempotency_key,
)
from utils.order_timeline import record_order_event
from utils.products import reprice_cart_lines
from utils.rate_limit import rate_limit
from utils.security import require_buyer
from utils.serializers import serialize_cod_decision, serialize_cod_order

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/orders",
    tags=["Orders"]
)


# ======================================================
# SCHEMAS
# ======================================================

class CheckCodRequest(BaseModel):
    cart_items: List[CartLine] = Field(
        ..., validation_alias=AliasChoices("cartItems", "cart_items"),
    )
    address: DeliveryAddress
    order_time: Optional[str] = Field(
        None, validation_alias=AliasChoices("orderTime", "order_time"),
    )
    courier: Optional[str] = None


class PlaceCodOrderRequest(BaseModel):
    cart_items: List[CartLine] = Field(
        ..., validation_alias=AliasChoices("cartItems", "cart_items"),
    )
    address: DeliveryAddress
    courier: Optional[str] = None
    idempotency_key: str = Field(
        ..., min_length=8, validation_alias=AliasChoices("idempotencyKey", "idempotency_key"),
    )


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# ======================================================
# CHECK COD (CHECKOUT)
# ======================================================

@router.post("/check-cod")
async def check_cod(
    data: CheckCodRequest,
    request: Request,
    db=Depends(get_db),
):
    await rate_limit(
        db,
        key=f"check_cod:{_client_key(request)}",
        max_requests=COD_CHECK_RATE_LIMIT,
        window_seconds=COD_CHECK_WINDOW_SECONDS,
    )

    if not data.cart_items:
        raise HTTPException(400, "Cart is empty")

    order_time = parse_order_time(data.order_time)
    cart = await reprice_cart_lines(db, data.cart_items)
    settings, version = await get_cod_snapshot(db)

    decision = evaluate(cart, data.address, data.courier, order_time, settings)
    subtotal = order_subtotal(cart)

    if not decision.available:
        logger.info(
            "COD_UNAVAILABLE code=%s pincode=%s settings_version=%s",
            decision.code, data.address.pincode, version,
        )

    return serialize_cod_decision(decision, subtotal)


# ======================================================
# PLACE COD ORDER (BUYER)
# ======================================================

@router.post("/cod")
async def place_cod_order(
    data: PlaceCodOrderRequest,
    buyer=Depends(require_buyer),
    db=Depends(get_db),
):
    await rate_limit(
        db,
        key=f"place_cod_order:{buyer['_id']}",
        max_requests=COD_ORDER_MAX_REQUESTS,
        window_seconds=COD_CHECK_WINDOW_SECONDS,
    )

    if not data.cart_items:
        raise HTTPException(400, "Cart is empty")

    scope = "place_cod_order"
    existing_response = await reserve_idempotency_key(
        db=db,
        key=data.idempotency_key,
        scope=scope,
        request_hash=fingerprint({
            "buyer_id": buyer["_id"],
            "body": data.model_dump(exclude={"idempotency_key"}),
        }),
    )
    if existing_response:
        return existing_response

    try:
        cart = await reprice_cart_lines(db, data.cart_items)
        settings, version = await get_cod_snapshot(db)

        # server clock only; a client supplied time never places an order
        decision = evaluate(cart, data.address, data.courier, store_now(), settings)
        if not decision.available:
            raise HTTPException(403, f"COD not available: {decision.reason}")

        subtotal = order_subtotal(cart)
        now = datetime.utcnow()

        order = {
            "buyer_id": buyer["_id"],
            "items": [line.model_dump() for line in cart],
            "delivery_address": data.address.model_dump(),
            "courier": data.courier,
            "pricing": {
                "subtotal": subtotal,
                "cod_charge": decision.charge,
                "cod_strategy": decision.strategy,
                "total": round(subtotal + decision.charge, 2),
            },
            "payment": {
                "method": "COD",
                "status": "cod_pending",
            },
            "settings_version": version,
            "status": "created",
            "created_at": now,
            "updated_at": now,
        }

        await db.orders.insert_one(order)

        await record_cod_order(db, order_id=order["_id"], charge=decision.charge, created_at=now)

        await record_order_event(
            db,
            order_id=order["_id"],
            event="ORDER_CREATED",
            actor_role="buyer",
            actor_id=buyer["_id"],
            metadata={
                "payment_method": "COD",
                "subtotal": subtotal,
                "cod_charge": decision.charge,
            },
        )

        response = {
            "message": "Order placed successfully",
            **serialize_cod_order(order),
        }

        await complete_idempotency_key(
            db=db,
            key=data.idempotency_key,
            scope=scope,
            response=response,
        )
        return response
    except HTTPException:
        await clear_idempotency_key(db=db, key=data.idempotency_key, scope=scope)
        raise
    except Exception as e:
        logger.exception("COD_ORDER_FAILED buyer=%s", buyer.get("_id"))
        await fail_idempotency_key(
            db=db,
            key=data.idempotency_key,
            scope=scope,
            error=str(e),
        )
        raise
