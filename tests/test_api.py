from sqlalchemy.exc import OperationalError

from mfgorders.db.models.manufacturing import ManufacturingOrder
from mfgorders.db.models.security_audit import AuditLog
from mfgorders.services.manufacturing import service

URL = "/api/v1/manufacturing-orders/by-product-search"


def _body(**overrides):
    body = {
        "product_search": "Wooden Chair",
        "quantity": 5,
        "planned_start_date": "2025-09-21",
        "planned_end_date": "2025-09-25",
    }
    body.update(overrides)
    return {k: v for k, v in body.items() if v is not None}


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_create_by_product_search(client, planner, catalog):
    r = client.post(URL, json=_body(priority="High", description="Batch for showroom"), headers=planner)
    assert r.status_code == 201
    mo = r.json()["manufacturing_order"]
    assert mo["reference"] == "MO-000001"
    assert mo["status"] == "Draft"
    assert mo["product"]["name"] == "Wooden Chair"
    assert mo["quantity"] == 5
    assert mo["created_by"] == "planner@example.com"
    assert [(c["component_product"]["name"], c["quantity_required"]) for c in mo["components_required"]] == [
        ("Leg", 20),
        ("Seat", 5),
        ("Screw", 40),
    ]


def test_unknown_product_is_404(client, planner, catalog):
    r = client.post(URL, json=_body(product_search="Nonexistent Widget"), headers=planner)
    assert r.status_code == 404
    body = r.json()
    assert body["error"] is True
    assert "Nonexistent Widget" in body["message"]


def test_ambiguous_search_is_409_with_candidates(client, planner, catalog):
    r = client.post(URL, json=_body(product_search="Wooden"), headers=planner)
    assert r.status_code == 409
    assert r.json()["details"] == ["Wooden Chair (WC-1)", "Wooden Table (WT-1)"]


def test_missing_bom_is_422(client, planner, catalog):
    r = client.post(URL, json=_body(product_search="Wooden Table"), headers=planner)
    assert r.status_code == 422
    assert r.json()["error"] is True


def test_zero_quantity_is_400(client, planner, catalog):
    r = client.post(URL, json=_body(quantity=0), headers=planner)
    assert r.status_code == 400
    body = r.json()
    assert body["error"] is True
    assert any(d.startswith("quantity") for d in body["details"])


def test_missing_quantity_is_400(client, planner, catalog):
    r = client.post(URL, json=_body(quantity=None), headers=planner)
    assert r.status_code == 400
    assert any(d.startswith("quantity") for d in r.json()["details"])


def test_all_required_fields_are_itemized(client, planner, catalog):
    r = client.post(URL, json={}, headers=planner)
    assert r.status_code == 400
    fields = {d.split(":")[0] for d in r.json()["details"]}
    assert {"product_search", "quantity", "planned_start_date", "planned_end_date"} <= fields


def test_end_before_start_is_400(client, planner, catalog):
    r = client.post(URL, json=_body(planned_start_date="2025-09-26"), headers=planner)
    assert r.status_code == 400
    assert any(d.startswith("planned_end_date") for d in r.json()["details"])


def test_storage_failure_is_500_and_leaves_nothing(client, planner, catalog, db, monkeypatch):
    def _fail(*args, **kwargs):
        raise OperationalError("UPDATE mfg_reference_sequence", {}, Exception("connection lost"))

    monkeypatch.setattr(service, "next_order_reference", _fail)
    r = client.post(URL, json=_body(), headers=planner)
    assert r.status_code == 500
    assert r.json() == {"error": True, "message": "Failed to create manufacturing order", "code": "INTERNAL_ERROR"}
    assert db.query(ManufacturingOrder).count() == 0


def test_anonymous_caller_is_401_and_audited(client, catalog, db):
    r = client.post(URL, json=_body())
    assert r.status_code == 401
    assert r.json()["error"] is True
    assert db.query(AuditLog).filter(AuditLog.action == "http.denied", AuditLog.status_code == 401).count() == 1


def test_operator_cannot_create_orders(client, operator, catalog):
    r = client.post(URL, json=_body(), headers=operator)
    assert r.status_code == 403


def test_tampered_token_is_treated_as_anonymous(client, planner, catalog):
    headers = {"Authorization": planner["Authorization"] + "x"}
    assert client.post(URL, json=_body(), headers=headers).status_code == 401


def test_request_id_is_echoed(client, planner, catalog):
    r = client.get("/api/v1/manufacturing-orders", headers={**planner, "X-Request-Id": "req-123"})
    assert r.headers["X-Request-Id"] == "req-123"
    assert client.get("/health").headers["X-Request-Id"]


def test_create_by_product_id(client, planner, catalog):
    r = client.post(
        "/api/v1/manufacturing-orders",
        json={
            "product_id": catalog["stool"].id,
            "quantity": 4,
            "planned_start_date": "2025-10-01",
            "planned_end_date": "2025-10-03",
        },
        headers=planner,
    )
    assert r.status_code == 201
    comps = r.json()["manufacturing_order"]["components_required"]
    assert [(c["component_product"]["name"], c["quantity_required"]) for c in comps] == [("Leg", 12), ("Varnish", 1)]


def test_unknown_product_id_is_404(client, planner, catalog):
    r = client.post(
        "/api/v1/manufacturing-orders",
        json={"product_id": "nope", "quantity": 1, "planned_start_date": "2025-10-01", "planned_end_date": "2025-10-01"},
        headers=planner,
    )
    assert r.status_code == 404


def test_get_list_and_statistics(client, planner, operator, catalog):
    created = [client.post(URL, json=_body(quantity=q), headers=planner).json()["manufacturing_order"] for q in (1, 2, 3)]

    r = client.get(f"/api/v1/manufacturing-orders/{created[0]['id']}", headers=operator)
    assert r.status_code == 200
    assert r.json()["manufacturing_order"]["reference"] == "MO-000001"

    r = client.get("/api/v1/manufacturing-orders", params={"limit": 2, "page": 2}, headers=operator)
    body = r.json()
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}
    assert [o["reference"] for o in body["data"]] == ["MO-000001"]

    r = client.get("/api/v1/manufacturing-orders/statistics", headers=planner)
    assert r.json()["data"]["Draft"] == 3
    assert r.json()["total"] == 3

    assert client.get("/api/v1/manufacturing-orders/statistics", headers=operator).status_code == 403
    assert client.get("/api/v1/manufacturing-orders/does-not-exist", headers=operator).status_code == 404


def test_status_and_cancel_endpoints(client, planner, operator, catalog):
    mo = client.post(URL, json=_body(), headers=planner).json()["manufacturing_order"]
    base = f"/api/v1/manufacturing-orders/{mo['id']}"

    r = client.patch(f"{base}/status", json={"status": "In-Progress"}, headers=operator)
    assert r.status_code == 200
    assert r.json()["manufacturing_order"]["status"] == "In-Progress"

    assert client.patch(f"{base}/status", json={"status": "bogus"}, headers=operator).status_code == 400
    assert client.patch(f"{base}/cancel", json={"reason": "dup"}, headers=operator).status_code == 403

    r = client.patch(f"{base}/cancel", json={"reason": "duplicate order"}, headers=planner)
    assert r.status_code == 200
    assert r.json()["manufacturing_order"]["status"] == "Cancelled"
    assert client.patch(f"{base}/cancel", headers=planner).status_code == 409


def test_material_requirements_endpoint(client, planner, inventory, operator, catalog):
    mo = client.post(URL, json=_body(), headers=planner).json()["manufacturing_order"]
    url = f"/api/v1/manufacturing-orders/{mo['id']}/material-requirements"
    r = client.get(url, headers=inventory)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["all_available"] is False
    assert [ln["shortage"] for ln in data["components"]] == [0, 2, 0]
    assert client.get(url, headers=operator).status_code == 403


def test_oversized_quantity_is_400(client, planner, catalog):
    for quantity in (10**25, 2**31):
        r = client.post(URL, json=_body(quantity=quantity), headers=planner)
        assert r.status_code == 400
        assert any(d.startswith("quantity") for d in r.json()["details"])


def test_put_updates_plan_and_rescales(client, planner, catalog):
    mo = client.post(URL, json=_body(), headers=planner).json()["manufacturing_order"]
    r = client.put(
        f"/api/v1/manufacturing-orders/{mo['id']}",
        json={"quantity": 3, "planned_end_date": "2025-09-28", "description": "reduced run"},
        headers=planner,
    )
    assert r.status_code == 200
    updated = r.json()["manufacturing_order"]
    assert updated["reference"] == "MO-000001"
    assert updated["planned_end_date"] == "2025-09-28"
    assert updated["priority"] == "Medium"
    assert [c["quantity_required"] for c in updated["components_required"]] == [12, 3, 24]


def test_put_rules(client, planner, operator, catalog):
    mo = client.post(URL, json=_body(), headers=planner).json()["manufacturing_order"]
    url = f"/api/v1/manufacturing-orders/{mo['id']}"
    assert client.put(url, json={"quantity": 2}, headers=operator).status_code == 403
    r = client.put(url, json={"planned_end_date": "2025-09-01"}, headers=planner)
    assert r.status_code == 400
    assert client.put(url, json={"quantity": 0}, headers=planner).status_code == 400
    assert client.put("/api/v1/manufacturing-orders/missing", json={"quantity": 2}, headers=planner).status_code == 404
    client.patch(f"{url}/cancel", headers=planner)
    assert client.put(url, json={"quantity": 2}, headers=planner).status_code == 409
