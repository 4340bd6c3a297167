import pytest
from fastapi import HTTPException

from utils.cod_settings import (
    deep_merge,
    get_cod_snapshot,
    load_settings_document,
    parse_cod_settings,
    public_projection,
    update_cod_settings,
)
from conftest import run


def test_deep_merge_merges_objects_and_replaces_lists():
    base = {"enabled": True, "pricing": {"type": "fixed", "fixedAmount": 50, "tiers": [{"charge": 1}]}}
    patch = {"pricing": {"fixedAmount": 60, "tiers": []}}

    merged = deep_merge(base, patch)

    assert merged == {"enabled": True, "pricing": {"type": "fixed", "fixedAmount": 60, "tiers": []}}
    assert base["pricing"]["fixedAmount"] == 50


def test_public_projection_exposes_only_cod_switch():
    doc = {
        "cod": {"enabled": True, "pricing": {"fixedAmount": 50}, "rules": {"excludedPincodes": ["682001"]}},
        "store": {"name": "Arister"},
    }
    projected = public_projection(doc)

    assert projected["cod"] == {"enabled": True}
    assert projected["store"]["name"] == "Arister"
    assert "pricing" not in projected["cod"]


def test_public_projection_agrees_with_checkout_on_invalid_document():
    doc = {"cod": {"enabled": True, "rules": {"minOrderValue": "lots"}}}

    assert public_projection(doc)["cod"] == {"enabled": False}
    assert parse_cod_settings(doc["cod"]).enabled is False


def test_snapshot_of_empty_collection_is_disabled(db):
    settings, version = run(get_cod_snapshot(db))

    assert settings.enabled is False
    assert version == 0


def test_partial_update_keeps_existing_sections(db, seed_cod):
    seed_cod({
        "enabled": True,
        "pricing": {"type": "percentage", "percentage": 2, "minCharge": 30, "maxCharge": 200},
    }, version=3)

    saved = run(update_cod_settings(db, patch={"enabled": False}, actor_id="admin-1"))

    assert saved["codVersion"] == 4
    assert saved["cod"]["enabled"] is False
    assert saved["cod"]["pricing"]["type"] == "percentage"
    assert saved["cod"]["pricing"]["minCharge"] == 30

    settings, version = run(get_cod_snapshot(db))
    assert settings.enabled is False
    assert settings.pricing.percentage == 2
    assert version == 4


def test_update_creates_document_and_audit_entry(db):
    run(update_cod_settings(db, patch={"enabled": True, "pricing": {"fixedAmount": 40}}, actor_id="admin-1"))

    doc = run(load_settings_document(db))
    assert doc["cod_version"] == 1
    assert doc["updated_by"] == "admin-1"

    audit = run(db.audit_logs.find_one({"action": "COD_SETTINGS_UPDATED"}))
    assert audit["actor_id"] == "admin-1"
    assert audit["metadata"]["cod_version"] == 1


def test_update_ignores_analytics_in_patch(db):
    saved = run(update_cod_settings(
        db,
        patch={"enabled": True, "analytics": {"totalCodOrders": 999}},
        actor_id="admin-1",
    ))
    assert "analytics" not in saved["cod"]


def test_update_rejects_invalid_values(db):
    with pytest.raises(HTTPException) as exc:
        run(update_cod_settings(db, patch={"rules": {"maxOrderValue": "unlimited"}}, actor_id="admin-1"))

    assert exc.value.status_code == 422
