from bson import ObjectId
from datetime import datetime

from models.cod import CodDecision


def serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def serialize_doc(doc: dict) -> dict:
    if not doc:
        return doc
    return {k: serialize_value(v) for k, v in doc.items()}


def serialize_cod_decision(decision: CodDecision, subtotal: float) -> dict:
    """
    Wire shape the checkout page reads:
    {available, codCharge?, reason?, code?, subtotal, totalAmount?}
    """
    if not decision.available:
        return {
            "available": False,
            "reason": decision.reason,
            "code": decision.code,
            "subtotal": subtotal,
        }

    return {
        "available": True,
        "codCharge": decision.charge,
        "strategy": decision.strategy,
        "subtotal": subtotal,
        "totalAmount": round(subtotal + decision.charge, 2),
    }


def serialize_cod_order(order: dict) -> dict:
    return {
        "orderId": str(order["_id"]),
        "status": order["status"],
        "pricing": {
            "subtotal": order["pricing"]["subtotal"],
            "codCharge": order["pricing"]["cod_charge"],
            "total": order["pricing"]["total"],
        },
        "payment": {
            "method": order["payment"]["method"],
            "status": order["payment"]["status"],
        },
        "settingsVersion": order.get("settings_version"),
        "createdAt": order["created_at"].isoformat()
        if isinstance(order.get("created_at"), datetime)
        else None,
    }
