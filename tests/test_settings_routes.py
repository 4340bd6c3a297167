from datetime import datetime

from bson import ObjectId

from utils.cod_analytics import record_cod_order
from conftest import run

PERCENT_COD = {
    "enabled": True,
    "charge": 50,
    "pricing": {
        "type": "percentage",
        "percentage": 2,
        "minCharge": 30,
        "maxCharge": 200,
        "tiers": [{"minAmount": 0, "maxAmount": 500, "charge": 20}],
        "locationBased": {"enabled": True, "zones": [
            {"name": "metro", "pincodes": ["400001"], "charge": 40, "minCharge": 30, "maxCharge": 200},
        ]},
    },
    "courierCharges": {"enabled": True, "couriers": [
        {"name": "Delhivery", "code": "DEL", "percentage": 2.5, "minCharge": 30, "maxCharge": 200, "enabled": True},
        {"name": "Ekart", "code": "EK", "percentage": 2, "minCharge": 30, "maxCharge": 200, "enabled": False},
    ]},
    "rules": {"minOrderValue": 0, "maxOrderValue": 50000, "excludedStates": ["Kerala"]},
}


def test_admin_reads_full_settings_with_derived_analytics(client, db, seed_cod, as_admin):
    seed_cod(PERCENT_COD, version=2)
    run(record_cod_order(db, order_id=ObjectId(), charge=30, created_at=datetime(2025, 6, 16, 9, 0)))
    run(record_cod_order(db, order_id=ObjectId(), charge=60, created_at=datetime(2025, 6, 16, 10, 0)))

    res = client.get("/api/settings")

    assert res.status_code == 200
    body = res.json()
    assert body["codVersion"] == 2
    assert body["cod"]["pricing"]["type"] == "percentage"
    assert body["cod"]["pricing"]["locationBased"]["zones"][0]["name"] == "metro"
    assert body["cod"]["analytics"]["totalCodOrders"] == 2
    assert body["cod"]["analytics"]["totalCodRevenue"] == 90
    assert body["cod"]["analytics"]["averageCodCharge"] == 45


def test_settings_forbidden_for_buyers(client, seed_cod, as_buyer):
    seed_cod(PERCENT_COD)
    assert client.get("/api/settings").status_code == 403


def test_settings_require_token(client):
    assert client.get("/api/settings").status_code in (401, 403)


def test_put_partial_toggle_keeps_pricing(client, seed_cod, as_admin):
    seed_cod(PERCENT_COD, version=2)

    res = client.put("/api/settings/cod", json={"cod": {"enabled": False}})

    assert res.status_code == 200
    body = res.json()
    assert body["codVersion"] == 3
    assert body["cod"]["enabled"] is False
    assert body["cod"]["pricing"]["percentage"] == 2

    check = client.post("/api/orders/check-cod", json={
        "cartItems": [{"id": "sku-1", "price": 1000, "quantity": 1}],
        "address": {"postalCode": "400001", "state": "Maharashtra", "city": "Mumbai"},
    }).json()
    assert check["reason"] == "COD disabled"


def test_put_rejects_invalid_settings(client, seed_cod, as_admin):
    seed_cod(PERCENT_COD)
    res = client.put("/api/settings/cod", json={"cod": {"rules": {"minOrderValue": "zero"}}})
    assert res.status_code == 422


def test_public_settings_need_no_auth(client, seed_cod):
    seed_cod(PERCENT_COD, store={"name": "Arister", "currency": "INR"})

    res = client.get("/api/settings/public")

    assert res.status_code == 200
    body = res.json()
    assert body["cod"] == {"enabled": True}
    assert body["store"]["name"] == "Arister"


def test_cod_summary(client, db, seed_cod, as_admin):
    seed_cod(PERCENT_COD, version=5)
    run(record_cod_order(db, order_id=ObjectId(), charge=40))

    summary = client.get("/api/settings/cod-summary").json()["summary"]

    assert summary["enabled"] is True
    assert summary["pricingType"] == "percentage"
    assert summary["zones"] == 1
    assert summary["couriers"] == 1
    assert summary["tiers"] == 1
    assert summary["timeRestricted"] is False
    assert summary["codVersion"] == 5
    assert summary["analytics"]["totalCodOrders"] == 1


def test_admin_test_tool(client, seed_cod, as_admin):
    seed_cod(PERCENT_COD)

    zone = client.post("/api/settings/cod/test", json={
        "orderValue": 1000, "pincode": "400001", "state": "Maharashtra", "city": "Mumbai",
    }).json()
    excluded = client.post("/api/settings/cod/test", json={
        "orderValue": 1000, "pincode": "682001", "state": "kerala", "city": "Kochi",
    }).json()
    fallback = client.post("/api/settings/cod/test", json={
        "orderValue": 20000, "pincode": "110001", "state": "Delhi", "city": "New Delhi",
    }).json()

    assert zone["available"] is True
    assert zone["codCharge"] == 40
    assert zone["totalAmount"] == 1040
    assert excluded["reason"] == "state excluded"
    assert fallback["codCharge"] == 200
    assert fallback["strategy"] == "percentage"
