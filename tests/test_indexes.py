from utils.indexes import ensure_indexes
from conftest import run


def test_ensure_indexes_covers_cod_collections(db):
    run(ensure_indexes(db))

    ledger = run(db.cod_ledger.index_information())
    idempotency = run(db.idempotency_keys.index_information())

    assert ledger["cod_ledger_order_unique"]["unique"] is True
    assert "idempotency_key_scope_unique" in idempotency


def test_ensure_indexes_leaves_users_alone(db):
    run(ensure_indexes(db))

    users = run(db.users.index_information())

    assert "users_email_unique_idx" not in users
    assert "users_phone_unique_idx" not in users
