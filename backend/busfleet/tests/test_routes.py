"""
Tests for route registration and net income bookkeeping.
"""
from datetime import date

from busfleet.models.bus import Bus
from busfleet.models.route import RouteExpense
from conftest import add_route


def route_payload(bus, worker, **overrides):
    payload = {
        "bus_id": bus.id,
        "worker_id": worker.id,
        "route_name": "Centro - Terminal",
        "route_date": "2024-01-15",
        "total_income": "450.00",
        "expenses": [
            {"expense_name": "Fuel", "amount": "120.50"},
            {"expense_name": "Tolls", "amount": "29.50"},
        ],
    }
    payload.update(overrides)
    return payload


def test_create_route_computes_totals(client, admin_headers, bus, worker):
    response = client.post("/api/routes", json=route_payload(bus, worker), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["total_expenses"] == "150.00"
    assert data["net_income"] == "300.00"
    assert [line["expense_name"] for line in data["expenses"]] == ["Fuel", "Tolls"]


def test_worker_registers_own_route(client, worker_headers, bus, worker):
    response = client.post("/api/routes", json=route_payload(bus, worker, expenses=[]), headers=worker_headers)
    assert response.status_code == 201
    assert response.json()["data"]["net_income"] == "450.00"


def test_worker_cannot_register_for_someone_else(client, worker_headers, bus, partner):
    response = client.post("/api/routes", json=route_payload(bus, partner), headers=worker_headers)
    assert response.status_code == 403


def test_route_for_missing_bus(client, admin_headers, bus, worker):
    payload = route_payload(bus, worker, bus_id=999)
    assert client.post("/api/routes", json=payload, headers=admin_headers).status_code == 404


def test_negative_income_rejected(client, admin_headers, bus, worker):
    payload = route_payload(bus, worker, total_income="-1")
    response = client.post("/api/routes", json=payload, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["error"]["details"][0]["path"] == "total_income"


def test_update_route_recomputes_net_income(client, admin_headers, bus, worker, db):
    route_id = client.post(
        "/api/routes", json=route_payload(bus, worker), headers=admin_headers
    ).json()["data"]["id"]

    response = client.patch(
        f"/api/routes/{route_id}",
        json={"expenses": [{"expense_name": "Fuel", "amount": "100.00"}]},
        headers=admin_headers
    )
    data = response.json()["data"]
    assert data["total_expenses"] == "100.00"
    assert data["net_income"] == "350.00"

    response = client.patch(f"/api/routes/{route_id}", json={"total_income": "500.00"}, headers=admin_headers)
    assert response.json()["data"]["net_income"] == "400.00"

    db.expire_all()
    assert db.query(RouteExpense).count() == 1


def test_update_notes_keeps_stored_net_income(client, admin_headers, bus, worker, db):
    route = add_route(db, bus, worker, date(2024, 1, 5), "500.00", "100.00", net_income="350.00")
    response = client.patch(f"/api/routes/{route.id}", json={"notes": "late start"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["net_income"] == "350.00"
    assert response.json()["data"]["notes"] == "late start"


def test_list_routes_by_period(client, admin_headers, bus, worker, db):
    add_route(db, bus, worker, date(2024, 1, 5), "100.00", "0")
    add_route(db, bus, worker, date(2024, 2, 5), "100.00", "0")

    body = client.get(
        "/api/routes", params={"bus_id": bus.id, "start_date": "2024-02-01"}, headers=admin_headers
    ).json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["route_date"] == "2024-02-05"


def test_only_admin_deletes_routes(client, admin_headers, worker_headers, bus, worker, db):
    route = add_route(db, bus, worker, date(2024, 1, 5), "100.00", "0")
    assert client.delete(f"/api/routes/{route.id}", headers=worker_headers).status_code == 403
    assert client.delete(f"/api/routes/{route.id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/routes/{route.id}", headers=admin_headers).status_code == 404


def test_route_stats(client, admin_headers, bus, worker, db):
    add_route(db, bus, worker, date(2024, 1, 5), "300.00", "100.00")
    add_route(db, bus, worker, date(2024, 1, 6), "200.00", "50.00", net_income="100.00")
    add_route(db, bus, worker, date(2024, 2, 1), "999.00", "0")

    response = client.get(
        "/api/routes/stats", params={"bus_id": bus.id, "end_date": "2024-01-31"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["data"] == {
        "total_routes": 2,
        "total_income": "500.00",
        "total_expenses": "150.00",
        "net_income": "300.00",
        "average_income": "250.00",
        "average_expenses": "75.00",
    }


def test_route_stats_empty(client, admin_headers):
    data = client.get("/api/routes/stats", headers=admin_headers).json()["data"]
    assert data["total_routes"] == 0
    assert data["average_income"] == "0.00"


def test_worker_route_stats_limited_to_assigned_bus(client, worker_headers, bus, worker, db):
    other = Bus(internal_code="B-02", plate_number="DEF456")
    db.add(other)
    db.commit()
    add_route(db, bus, worker, date(2024, 1, 5), "300.00", "0")
    add_route(db, other, worker, date(2024, 1, 5), "120.00", "20.00")
    worker.assigned_bus_id = other.id
    db.commit()

    data = client.get(
        "/api/routes/stats", params={"bus_id": bus.id}, headers=worker_headers
    ).json()["data"]
    assert data["total_routes"] == 1
    assert data["net_income"] == "100.00"
