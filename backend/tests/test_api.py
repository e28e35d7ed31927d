"""
HTTP API tests through the Flask test client: status codes, error bodies
and a full inventory cycle.
"""

from stockcycle.reference_data import DEFAULT_REFERENCE
from stockcycle.services import finalization_service


def _start(client, responsible="Maria Souza"):
    return client.post("/api/inventories", json={"responsible": responsible})


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json["checks"]["database"]["status"] == "healthy"


def test_reference_data(client):
    response = client.get("/api/reference-data")
    assert response.status_code == 200
    body = response.json
    assert len(body["stores_by_region"]["Regional Capital"]) == 16
    assert body["asset_families"]["HNT"] == ["CAIXA HNT G", "CAIXA HNT P"]
    assert "CD SP" in body["transit_eligible_origins"]


def test_start_inventory_and_conflict(client, db_session):
    response = _start(client)
    assert response.status_code == 201
    inventory = response.json["inventory"]
    assert inventory["status"] == "active"
    assert inventory["progress"] == {"stores": 0, "sectors": 0, "suppliers": 0}
    assert inventory["started_at"].endswith("Z")

    conflict = _start(client, "Outra Pessoa")
    assert conflict.status_code == 409
    assert conflict.json["outcome"] == "nothing_changed"

    active = client.get("/api/inventories/active")
    assert active.json["inventory"]["id"] == inventory["id"]


def test_start_inventory_requires_responsible(client, db_session):
    response = client.post("/api/inventories", json={})
    assert response.status_code == 400
    assert "responsible" in response.json["error"]


def test_active_inventory_none(client, db_session):
    response = client.get("/api/inventories/active")
    assert response.status_code == 200
    assert response.json["inventory"] is None


def test_not_found_mapping(client, db_session):
    assert client.get("/api/inventories/999").status_code == 404
    assert client.get("/api/counts/999").status_code == 404
    assert client.get("/api/transits/999").status_code == 404
    assert client.get("/api/inventories/999/report").status_code == 404


def test_count_endpoints(client, db_session):
    inventory_id = _start(client).json["inventory"]["id"]

    created = client.post("/api/counts", json={
        "inventory_id": inventory_id,
        "category": "store",
        "origin": "CD SP",
        "asset_type": "CAIXA HB 623",
        "quantity": 12,
        "responsible": "Ana",
        "transit": {"asset_type": "CAIXA BIN", "quantity": 2, "responsible": "Ana"},
    })
    assert created.status_code == 201
    count = created.json["count"]
    assert count["transit_asset_type"] == "CAIXA BIN"

    bad = client.post("/api/counts", json={
        "inventory_id": inventory_id,
        "category": "store",
        "origin": "Loja 01",
        "asset_type": "CAIXA HB 623",
        "quantity": 0,
        "responsible": "Ana",
    })
    assert bad.status_code == 400

    missing_inventory = client.post("/api/counts", json={"category": "store"})
    assert missing_inventory.status_code == 400
    assert "inventory_id" in missing_inventory.json["error"]

    bulk = client.post("/api/counts/bulk", json={
        "inventory_id": inventory_id,
        "category": "sector",
        "origin": "Setor Recebimento SP",
        "responsible": "Ana",
        "items": [{"asset_type": "CAIXA HB 618", "quantity": 3}, {"asset_type": "CAIXA BIN", "quantity": 4}],
    })
    assert bulk.status_code == 201
    assert len(bulk.json["counts"]) == 2

    patched = client.patch(f"/api/counts/{count['id']}", json={"quantity": 20})
    assert patched.status_code == 200
    assert patched.json["count"]["quantity"] == 20

    immutable = client.patch(f"/api/counts/{count['id']}", json={"origin": "Loja 02"})
    assert immutable.status_code == 400

    listed = client.get(f"/api/counts?inventory_id={inventory_id}&category=sector")
    assert len(listed.json["counts"]) == 2

    progress = client.get(f"/api/inventories/{inventory_id}/progress")
    assert progress.json["progress"] == {"stores": 2, "sectors": 13, "suppliers": 0}
    assert progress.json["snapshot"] == progress.json["progress"]

    deleted = client.delete(f"/api/counts/{count['id']}")
    assert deleted.status_code == 200
    assert client.get(f"/api/counts/{count['id']}").status_code == 404


def test_bulk_test_endpoint(client, db_session):
    inventory_id = _start(client).json["inventory"]["id"]

    response = client.post("/api/counts/bulk-test", json={
        "inventory_id": inventory_id,
        "category": "store",
        "origins": ["Loja 01", "Loja 02"],
        "items_per_origin": 2,
    })
    assert response.status_code == 201
    assert response.json["generated"] == 4

    again = client.post("/api/counts/bulk-test", json={
        "inventory_id": inventory_id,
        "category": "store",
        "origins": ["Loja 01"],
    })
    assert again.status_code == 200
    assert again.json["skipped"] == ["Loja 01"]

    invalid = client.post("/api/counts/bulk-test", json={
        "inventory_id": inventory_id,
        "category": "store",
        "origins": ["Loja 03"],
        "items_per_origin": 50,
    })
    assert invalid.status_code == 400


def test_transit_endpoints(client, db_session):
    inventory_id = _start(client).json["inventory"]["id"]

    created = client.post("/api/transits", json={
        "inventory_id": inventory_id,
        "origin": "CD São Paulo",
        "destination": "CD Rio de Janeiro",
        "asset_type": "CAIXA HB 623",
        "quantity": 5,
    })
    assert created.status_code == 201
    record = created.json["transit"]
    assert record["status"] == "sent"
    assert record["received_at"] is None

    same = client.post("/api/transits", json={
        "inventory_id": inventory_id,
        "origin": "CD São Paulo",
        "destination": "CD São Paulo",
        "asset_type": "CAIXA HB 623",
        "quantity": 5,
    })
    assert same.status_code == 400

    received = client.patch(f"/api/transits/{record['id']}/status", json={"status": "received"})
    assert received.status_code == 200
    assert received.json["transit"]["received_at"] is not None

    edited = client.put(f"/api/transits/{record['id']}", json={"status": "pending", "quantity": 7})
    assert edited.status_code == 200
    assert edited.json["transit"]["received_at"] is None
    assert edited.json["transit"]["quantity"] == 7

    bulk = client.post("/api/transits/bulk", json={
        "inventory_id": inventory_id,
        "origin": "CD Espírito Santo",
        "destination": "CD São Paulo",
        "items": [{"asset_type": "CAIXA BIN", "quantity": 1}, {"asset_type": "CAIXA HNT P", "quantity": 2}],
    })
    assert bulk.status_code == 201

    pending = client.get(f"/api/transits?inventory_id={inventory_id}&status=pending")
    assert [t["id"] for t in pending.json["transits"]] == [record["id"]]

    assert client.delete(f"/api/transits/{record['id']}").status_code == 200
    assert client.get(f"/api/transits/{record['id']}").status_code == 404


def test_integrator_ingest_partial(client, db_session):
    inventory_id = _start(client).json["inventory"]["id"]

    response = client.post("/api/integrator/ingest", json={
        "records": [
            {"loja_nome": "Loja 20", "ativo_nome": "CAIXA HB 623", "quantidade": 3},
            {"loja_nome": "Loja 21", "ativo_nome": "", "quantidade": 3},
        ],
    })
    assert response.status_code == 207
    assert response.json["inventory_id"] == inventory_id
    assert len(response.json["created"]) == 1
    assert response.json["failures"][0]["index"] == 1


def test_integrator_without_active_inventory(client, db_session):
    response = client.post("/api/integrator/ingest", json={"records": []})
    assert response.status_code == 400


def _fill_inventory(client, inventory_id):
    for store in DEFAULT_REFERENCE.all_stores:
        client.post("/api/counts", json={
            "inventory_id": inventory_id,
            "category": "store",
            "origin": store,
            "asset_type": "CAIXA HB 623",
            "quantity": 1,
            "responsible": "Ana",
        })
    client.post("/api/counts", json={
        "inventory_id": inventory_id,
        "category": "supplier",
        "origin": "Fornecedor ES",
        "asset_type": "CAIXA BIN",
        "quantity": 6,
        "responsible": "Ana",
    })
    client.post("/api/transits", json={
        "inventory_id": inventory_id,
        "origin": "CD Espírito Santo",
        "destination": "CD Rio de Janeiro",
        "asset_type": "CAIXA HNT G",
        "quantity": 4,
    })


def test_full_cycle(client, db_session):
    inventory_id = _start(client).json["inventory"]["id"]

    draft = client.post(f"/api/inventories/{inventory_id}/report")
    assert draft.status_code == 201
    assert draft.json["validation"]["all_stores_counted"] is False

    refused = client.post(f"/api/inventories/{inventory_id}/finalize", json={
        "report_id": draft.json["report"]["id"],
        "approver_name": "Gerente Paula",
    })
    assert refused.status_code == 400

    _fill_inventory(client, inventory_id)

    generated = client.post(f"/api/inventories/{inventory_id}/report")
    assert generated.status_code == 201
    report = generated.json["report"]
    assert report["id"] == draft.json["report"]["id"]
    assert generated.json["validation"] == {
        "all_stores_counted": True,
        "has_supplier": True,
        "has_transit": True,
        "pending_stores_by_region": {},
    }
    assert report["family_summary"]["HB"]["store"] == 50

    export = client.get(f"/api/inventories/{inventory_id}/report/export?report_id={report['id']}")
    assert export.status_code == 200
    assert export.json["report"]["dc_summary"]["CD ES"]["transit"] == {"CAIXA HNT G": 4}

    missing_approver = client.post(f"/api/inventories/{inventory_id}/finalize", json={"report_id": report["id"]})
    assert missing_approver.status_code == 400

    finalized = client.post(f"/api/inventories/{inventory_id}/finalize", json={
        "report_id": report["id"],
        "approver_name": "Gerente Paula",
    })
    assert finalized.status_code == 200
    assert finalized.json["inventory"]["status"] == "finalized"
    assert finalized.json["report"]["status"] == "approved"
    assert finalized.json["report"]["approved_by"] == "Gerente Paula"

    blocked = client.post("/api/counts", json={
        "inventory_id": inventory_id,
        "category": "store",
        "origin": "Loja 01",
        "asset_type": "CAIXA BIN",
        "quantity": 1,
        "responsible": "Ana",
    })
    assert blocked.status_code == 400

    frozen = client.post(f"/api/inventories/{inventory_id}/report")
    assert frozen.status_code == 400

    assert client.get("/api/inventories/active").json["inventory"] is None

    # next cycle can start and be compared with the closed one
    next_id = _start(client, "João Lima").json["inventory"]["id"]
    client.post(f"/api/inventories/{next_id}/report")
    compare = client.get(f"/api/inventories/compare?base={inventory_id}&other={next_id}")
    assert compare.status_code == 200
    assert compare.json["family_diff"]["HB"]["store"] == -50
    assert compare.json["progress_diff"]["stores"] == -100

    listed = client.get("/api/inventories?status=finalized")
    assert [inv["id"] for inv in listed.json["inventories"]] == [inventory_id]


def test_finalize_rolled_back_is_reported(client, db_session, monkeypatch):
    inventory_id = _start(client).json["inventory"]["id"]
    report_id = client.post(f"/api/inventories/{inventory_id}/report").json["report"]["id"]

    def _boom(*args, **kwargs):
        from sqlalchemy.exc import SQLAlchemyError
        raise SQLAlchemyError("write failed")

    monkeypatch.setattr(finalization_service, "_approve_report", _boom)
    client.application.config["FINALIZATION_REQUIRES_COMPLETE_REPORT"] = False
    try:
        response = client.post(f"/api/inventories/{inventory_id}/finalize", json={
            "report_id": report_id,
            "approver_name": "Gerente Paula",
        })
    finally:
        client.application.config["FINALIZATION_REQUIRES_COMPLETE_REPORT"] = True

    assert response.status_code == 500
    assert response.json["outcome"] == "rolled_back"
    assert client.get(f"/api/inventories/{inventory_id}").json["inventory"]["status"] == "active"


def test_refresh_progress_endpoint(client, db_session):
    inventory_id = _start(client).json["inventory"]["id"]
    response = client.patch(f"/api/inventories/{inventory_id}/progress")
    assert response.status_code == 200
    assert response.json["inventory"]["progress"]["stores"] == 0


def test_cors_headers(client, db_session):
    response = client.get("/api/health", headers={"Origin": "http://localhost:3000"})
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    other = client.get("/api/health", headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in other.headers
