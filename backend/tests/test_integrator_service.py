import pytest

from stockcycle.errors import NotFoundError, PartialFailure, StateError
from stockcycle.models import CountEntry
from stockcycle.services import integrator_service


def test_ingest_accepts_external_and_canonical_shapes(inventory, db_session):
    records = [
        {"loja_nome": "Loja 10", "ativo_nome": "CAIXA HB 415", "quantidade": 8},
        {"origin": "Loja 11", "asset_type": "CAIXA BIN", "quantity": 2},
        {"loja": "Loja 12", "ativo": "CAIXA HNT P", "quantidade": "5"},
    ]

    created, failures = integrator_service.ingest_counts(inventory.id, records)
    db_session.commit()

    assert failures == []
    assert [(e.origin, e.asset_type, e.quantity) for e in created] == [
        ("Loja 10", "CAIXA HB 415", 8),
        ("Loja 11", "CAIXA BIN", 2),
        ("Loja 12", "CAIXA HNT P", 5),
    ]
    assert {e.category for e in created} == {"store"}
    assert {e.responsible for e in created} == {"integrador"}

    db_session.refresh(inventory)
    assert inventory.progress_stores == 6


def test_ingest_is_best_effort(inventory, db_session):
    records = [
        {"loja_nome": "Loja 10", "ativo_nome": "CAIXA HB 415", "quantidade": 8},
        {"loja_nome": "", "ativo_nome": "CAIXA HB 415", "quantidade": 8},
        {"loja_nome": "Loja 11", "ativo_nome": "CAIXA BIN", "quantidade": 0},
        "not a record",
        {"loja_nome": "Loja 12", "ativo_nome": "CAIXA BIN", "quantidade": 1},
    ]

    created, failures = integrator_service.ingest_counts(inventory.id, records)
    db_session.commit()

    assert [e.origin for e in created] == ["Loja 10", "Loja 12"]
    assert [f.index for f in failures] == [1, 2, 3]
    assert all(isinstance(f, PartialFailure) for f in failures)
    assert failures[0].to_dict()["index"] == 1
    assert db_session.query(CountEntry).count() == 2


def test_ingest_requires_active_inventory(finalized_inventory, db_session):
    with pytest.raises(StateError):
        integrator_service.ingest_counts(finalized_inventory.id, [{"loja_nome": "Loja 01", "ativo_nome": "CAIXA BIN", "quantidade": 1}])
    with pytest.raises(NotFoundError):
        integrator_service.ingest_counts(999, [])
    assert db_session.query(CountEntry).count() == 0
