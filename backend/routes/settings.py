from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field

from database import get_db
from models.cod import CartLine, DeliveryAddress
from utils.clock import parse_order_time
from utils.cod_analytics import get_cod_analytics
from utils.cod_policy import evaluate, order_subtotal
from utils.cod_settings import (
    dump_cod_settings,
    get_cod_snapshot,
    load_settings_document,
    parse_cod_settings,
    public_projection,
    update_cod_settings,
)
from utils.security import require_admin
from utils.serializers import serialize_cod_decision, serialize_value

router = APIRouter(prefix="/api/settings", tags=["Settings"])


# =====================================================
# SCHEMAS
# =====================================================

class CodSettingsUpdate(BaseModel):
    cod: dict


class CodTestRequest(BaseModel):
    order_value: float = Field(
        ..., ge=0, validation_alias=AliasChoices("orderValue", "order_value"),
    )
    pincode: str = ""
    state: str = ""
    city: str = ""
    category: Optional[str] = None
    courier: Optional[str] = None
    order_time: Optional[str] = Field(
        None, validation_alias=AliasChoices("orderTime", "order_time"),
    )


# =====================================================
# ADMIN: FULL SETTINGS
# =====================================================

@router.get("")
async def get_settings(
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    doc = await load_settings_document(db)
    analytics = await get_cod_analytics(db)

    cod = dump_cod_settings(parse_cod_settings(doc.get("cod")))
    cod["analytics"] = analytics.model_dump(by_alias=True, mode="json")

    return {
        "cod": cod,
        "codVersion": int(doc.get("cod_version") or 0),
        "updatedAt": serialize_value(doc.get("updated_at")),
        "store": public_projection(doc)["store"],
    }


@router.put("/cod")
async def put_cod_settings(
    data: CodSettingsUpdate,
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    saved = await update_cod_settings(db, patch=data.cod, actor_id=str(admin["_id"]))
    return {"message": "COD settings saved", **saved}


# =====================================================
# PUBLIC
# =====================================================

@router.get("/public")
async def get_public_settings(db=Depends(get_db)):
    doc = await load_settings_document(db)
    return public_projection(doc)


# =====================================================
# ADMIN: DASHBOARD SUMMARY
# =====================================================

@router.get("/cod-summary")
async def cod_summary(
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    settings, version = await get_cod_snapshot(db)
    analytics = await get_cod_analytics(db)

    return {
        "summary": {
            "enabled": settings.enabled,
            "pricingType": settings.pricing.type,
            "tiers": len(settings.pricing.tiers),
            "zones": len(settings.pricing.location_based.zones)
            if settings.pricing.location_based.enabled else 0,
            "couriers": len([c for c in settings.courier_charges.couriers if c.enabled])
            if settings.courier_charges.enabled else 0,
            "timeRestricted": settings.rules.time_restrictions.enabled,
            "codVersion": version,
            "analytics": analytics.model_dump(by_alias=True, mode="json"),
        }
    }


# =====================================================
# ADMIN: TEST TOOL
# =====================================================

@router.post("/cod/test")
async def test_cod_settings(
    data: CodTestRequest,
    admin=Depends(require_admin),
    db=Depends(get_db),
):
    cart = [
        CartLine(
            product_id="test-product",
            category_id=data.category or "",
            quantity=1,
            unit_price=data.order_value,
        )
    ]
    address = DeliveryAddress(pincode=data.pincode, state=data.state, city=data.city)
    settings, _ = await get_cod_snapshot(db)

    decision = evaluate(cart, address, data.courier, parse_order_time(data.order_time), settings)
    return serialize_cod_decision(decision, order_subtotal(cart))
