from datetime import datetime

import pytest
from bson import ObjectId

from utils.cod_analytics import get_cod_analytics, record_cod_order
from conftest import run


def test_empty_ledger_gives_zeroes(db):
    analytics = run(get_cod_analytics(db))

    assert analytics.total_cod_orders == 0
    assert analytics.total_cod_revenue == 0
    assert analytics.average_cod_charge == 0
    assert analytics.last_updated is None


def test_aggregates_are_derived_from_ledger(db):
    run(record_cod_order(db, order_id=ObjectId(), charge=30, created_at=datetime(2025, 6, 16, 9, 0)))
    run(record_cod_order(db, order_id=ObjectId(), charge=50, created_at=datetime(2025, 6, 16, 10, 0)))
    run(record_cod_order(db, order_id=ObjectId(), charge=45.5, created_at=datetime(2025, 6, 16, 11, 0)))

    analytics = run(get_cod_analytics(db))

    assert analytics.total_cod_orders == 3
    assert analytics.total_cod_revenue == 125.5
    assert analytics.average_cod_charge == 41.83
    assert analytics.last_updated == datetime(2025, 6, 16, 11, 0)


def test_analytics_wire_names(db):
    run(record_cod_order(db, order_id=ObjectId(), charge=30))

    wire = run(get_cod_analytics(db)).model_dump(by_alias=True, mode="json")

    assert set(wire) == {"totalCodOrders", "totalCodRevenue", "averageCodCharge", "lastUpdated"}


def test_negative_charge_rejected(db):
    with pytest.raises(ValueError):
        run(record_cod_order(db, order_id=ObjectId(), charge=-1))
