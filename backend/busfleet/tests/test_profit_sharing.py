"""
Tests for profit-sharing groups, members and distribution endpoints.
"""
from datetime import date, timedelta

import pytest

from busfleet.models.audit import AuditLog
from busfleet.models.bus import Bus
from busfleet.models.profit_sharing import ProfitSharingGroup, ProfitSharingMember
from conftest import add_bus_expense, add_route, make_user

GROUPS = "/api/profit-sharing/groups"
MEMBERS = "/api/profit-sharing/members"


def create_group(client, headers, bus_id, start="2024-01-01", end="2024-12-31", **extra):
    payload = {"bus_id": bus_id, "start_date": start, "end_date": end, **extra}
    return client.post(GROUPS, json=payload, headers=headers)


def add_member(client, headers, group_id, user_id, percentage, role="PARTNER"):
    return client.post(
        MEMBERS,
        json={"group_id": group_id, "user_id": user_id, "role_in_share": role, "percentage": percentage},
        headers=headers
    )


@pytest.fixture()
def group(client, admin_headers, bus):
    response = create_group(client, admin_headers, bus.id, name="2024 partners")
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ==================== Groups ====================

def test_create_group(client, admin_headers, admin, bus, db):
    response = create_group(client, admin_headers, bus.id, name="2024 partners")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "2024 partners"
    assert data["bus"]["internal_code"] == "B-01"
    assert data["created_by"] == admin.id
    assert data["is_active"] is True
    assert data["members"] == []

    db.expire_all()
    entry = db.query(AuditLog).filter(AuditLog.entity_type == "PROFIT_SHARING_GROUP").one()
    assert entry.action == "CREATE"
    assert entry.entity_id == data["id"]


def test_group_name_defaults_to_bus_and_start(client, admin_headers, bus):
    response = create_group(client, admin_headers, bus.id, start="2024-03-01", end=None)
    assert response.status_code == 201
    assert response.json()["data"]["name"] == "B-01 2024-03-01"
    assert response.json()["data"]["end_date"] is None


def test_overlapping_group_rejected(client, admin_headers, bus, group):
    response = create_group(client, admin_headers, bus.id, start="2024-06-01", end="2025-05-31")
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "GROUP_PERIOD_OVERLAP"
    assert error["details"]["group_id"] == group["id"]


def test_open_ended_group_blocks_later_periods(client, admin_headers, bus):
    assert create_group(client, admin_headers, bus.id, start="2024-01-01", end=None).status_code == 201
    response = create_group(client, admin_headers, bus.id, start="2030-01-01", end="2030-02-01")
    assert response.status_code == 409


def test_adjacent_periods_allowed(client, admin_headers, bus, group):
    response = create_group(client, admin_headers, bus.id, start="2025-01-01", end=None)
    assert response.status_code == 201


def test_shared_boundary_day_overlaps(client, admin_headers, bus, group):
    response = create_group(client, admin_headers, bus.id, start="2024-12-31", end="2025-06-30")
    assert response.status_code == 409


def test_inactive_group_does_not_block(client, admin_headers, bus, group):
    response = client.patch(f"{GROUPS}/{group['id']}", json={"is_active": False}, headers=admin_headers)
    assert response.status_code == 200
    assert create_group(client, admin_headers, bus.id).status_code == 201

    # reactivating the first one now collides with the second
    response = client.patch(f"{GROUPS}/{group['id']}", json={"is_active": True}, headers=admin_headers)
    assert response.status_code == 409


def test_other_bus_does_not_block(client, admin_headers, db, group):
    other = Bus(internal_code="B-02", plate_number="DEF456")
    db.add(other)
    db.commit()
    assert create_group(client, admin_headers, other.id).status_code == 201


@pytest.mark.parametrize("start,end", [("2024-05-01", "2024-05-01"), ("2024-05-01", "2024-04-01")])
def test_invalid_range_rejected(client, admin_headers, bus, start, end):
    response = create_group(client, admin_headers, bus.id, start=start, end=end)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_DATE_RANGE"


def test_group_for_missing_bus(client, admin_headers):
    response = create_group(client, admin_headers, 999)
    assert response.status_code == 404


def test_group_for_inactive_bus(client, admin_headers, bus, db):
    bus.is_active = False
    db.commit()
    response = create_group(client, admin_headers, bus.id)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Bus is not active"


def test_worker_cannot_create_group(client, worker_headers, bus):
    response = create_group(client, worker_headers, bus.id)
    assert response.status_code == 403


def test_group_requires_authentication(client, bus):
    response = client.get(GROUPS)
    assert response.status_code == 401


def test_update_group_period(client, admin_headers, group):
    response = client.patch(
        f"{GROUPS}/{group['id']}",
        json={"end_date": "2024-06-30", "name": "First half"},
        headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["end_date"] == "2024-06-30"
    assert data["name"] == "First half"

    response = client.patch(f"{GROUPS}/{group['id']}", json={"end_date": None}, headers=admin_headers)
    assert response.json()["data"]["end_date"] is None


def test_update_group_invalid_range(client, admin_headers, group):
    response = client.patch(f"{GROUPS}/{group['id']}", json={"end_date": "2023-12-31"}, headers=admin_headers)
    assert response.status_code == 400


def test_list_groups_filters_and_pagination(client, admin_headers, bus, db):
    other = Bus(internal_code="B-02", plate_number="DEF456")
    db.add(other)
    db.commit()
    create_group(client, admin_headers, bus.id, start="2023-01-01", end="2023-12-31")
    create_group(client, admin_headers, bus.id, start="2024-01-01", end=None)
    create_group(client, admin_headers, other.id, start="2024-01-01", end="2024-06-30")

    body = client.get(GROUPS, params={"limit": 2}, headers=admin_headers).json()
    assert body["meta"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}
    assert len(body["data"]) == 2

    body = client.get(GROUPS, params={"bus_id": bus.id}, headers=admin_headers).json()
    assert body["meta"]["total"] == 2

    body = client.get(GROUPS, params={"start_date": "2024-07-01"}, headers=admin_headers).json()
    assert [g["start_date"] for g in body["data"]] == ["2024-01-01"]
    assert body["data"][0]["end_date"] is None

    body = client.get(GROUPS, params={"end_date": "2023-06-01"}, headers=admin_headers).json()
    assert [g["start_date"] for g in body["data"]] == ["2023-01-01"]


def test_get_group_not_found(client, admin_headers):
    response = client.get(f"{GROUPS}/999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_delete_group_removes_members(client, admin_headers, group, partner, db):
    assert add_member(client, admin_headers, group["id"], partner.id, "50").status_code == 201

    response = client.delete(f"{GROUPS}/{group['id']}", headers=admin_headers)
    assert response.status_code == 200

    db.expire_all()
    assert db.query(ProfitSharingGroup).count() == 0
    assert db.query(ProfitSharingMember).count() == 0
    assert client.get(f"{GROUPS}/{group['id']}", headers=admin_headers).status_code == 404


# ==================== Members ====================

def test_add_members_up_to_hundred(client, admin_headers, group, db):
    users = [make_user(db, f"Partner {i}", f"50{i}", "secret-123") for i in range(3)]
    for user, percentage in zip(users, ["40", "35", "25"]):
        response = add_member(client, admin_headers, group["id"], user.id, percentage)
        assert response.status_code == 201, response.text

    data = client.get(f"{GROUPS}/{group['id']}", headers=admin_headers).json()["data"]
    assert [m["percentage"] for m in data["members"]] == ["40.00", "35.00", "25.00"]


def test_member_exceeding_hundred_rejected(client, admin_headers, group, partner, worker, db):
    assert add_member(client, admin_headers, group["id"], partner.id, "90").status_code == 201

    response = add_member(client, admin_headers, group["id"], worker.id, "15", role="DRIVER")
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "PERCENTAGE_EXCEEDED"
    assert error["details"] == {"current_total": "90.00", "attempted": "15.00"}

    db.expire_all()
    assert db.query(ProfitSharingMember).count() == 1


def test_duplicate_member_rejected(client, admin_headers, group, partner):
    assert add_member(client, admin_headers, group["id"], partner.id, "10").status_code == 201
    response = add_member(client, admin_headers, group["id"], partner.id, "10")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "DUPLICATE_MEMBER"


@pytest.mark.parametrize("percentage", ["0", "-5", "100.01", "10.555"])
def test_member_percentage_bounds(client, admin_headers, group, partner, percentage):
    response = add_member(client, admin_headers, group["id"], partner.id, percentage)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_member_for_missing_group_or_user(client, admin_headers, group, partner):
    assert add_member(client, admin_headers, 999, partner.id, "10").status_code == 404
    assert add_member(client, admin_headers, group["id"], 999, "10").status_code == 404


def test_update_member_percentage_excludes_own_share(client, admin_headers, group, partner, worker):
    first = add_member(client, admin_headers, group["id"], partner.id, "60").json()["data"]
    add_member(client, admin_headers, group["id"], worker.id, "30", role="DRIVER")

    response = client.patch(f"{MEMBERS}/{first['id']}", json={"percentage": "70"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["percentage"] == "70.00"

    response = client.patch(f"{MEMBERS}/{first['id']}", json={"percentage": "70.01"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"current_total": "30.00", "attempted": "70.01"}


def test_update_member_role(client, admin_headers, group, partner):
    member = add_member(client, admin_headers, group["id"], partner.id, "20").json()["data"]
    response = client.patch(f"{MEMBERS}/{member['id']}", json={"role_in_share": "OWNER"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["role_in_share"] == "OWNER"
    assert response.json()["data"]["percentage"] == "20.00"


def test_list_and_delete_members(client, admin_headers, group, partner, worker, db):
    add_member(client, admin_headers, group["id"], partner.id, "20")
    driver = add_member(client, admin_headers, group["id"], worker.id, "30", role="DRIVER").json()["data"]

    data = client.get(MEMBERS, params={"group_id": group["id"]}, headers=admin_headers).json()["data"]
    assert [m["user_id"] for m in data] == [worker.id, partner.id]

    data = client.get(MEMBERS, params={"role_in_share": "DRIVER"}, headers=admin_headers).json()["data"]
    assert [m["id"] for m in data] == [driver["id"]]

    assert client.delete(f"{MEMBERS}/{driver['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"{MEMBERS}/{driver['id']}", headers=admin_headers).status_code == 404

    db.expire_all()
    actions = [
        entry.action for entry in
        db.query(AuditLog).filter(AuditLog.entity_type == "PROFIT_SHARING_MEMBER").order_by(AuditLog.id)
    ]
    assert actions == ["CREATE", "CREATE", "DELETE"]


def test_worker_cannot_add_member(client, worker_headers, group, partner):
    response = add_member(client, worker_headers, group["id"], partner.id, "10")
    assert response.status_code == 403


# ==================== Distribution ====================

def test_distribution_report(client, admin_headers, group, bus, worker, partner, db):
    owner = make_user(db, "Olga Owner", "4000", "secret-123")
    add_member(client, admin_headers, group["id"], owner.id, "40", role="OWNER")
    add_member(client, admin_headers, group["id"], worker.id, "35", role="DRIVER")
    add_member(client, admin_headers, group["id"], partner.id, "25")

    add_route(db, bus, worker, date(2024, 1, 10), "900.00", "100.00")
    add_route(db, bus, worker, date(2024, 1, 31), "600.00", "200.00")
    add_route(db, bus, worker, date(2024, 2, 1), "5000.00", "0")
    add_bus_expense(db, bus, date(2024, 1, 1), "200.00")
    add_bus_expense(db, bus, date(2023, 12, 31), "999.00")

    params = {"start_date": "2024-01-01", "end_date": "2024-01-31"}
    response = client.get(f"{GROUPS}/{group['id']}/distribution", params=params, headers=admin_headers)
    assert response.status_code == 200
    report = response.json()["data"]

    assert report["period"] == {"start": "2024-01-01", "end": "2024-01-31"}
    assert report["totals"] == {
        "total_income": "1500.00",
        "route_expenses": "300.00",
        "operational_profit": "1200.00",
        "administrative_expenses": "200.00",
        "net_profit": "1000.00",
        "routes_count": 2,
        "expenses_count": 1,
    }
    assert [(d["user_name"], d["amount"]) for d in report["distribution"]] == [
        ("Olga Owner", "400.00"), ("Walter Worker", "350.00"), ("Paula Partner", "250.00"),
    ]
    assert report["summary"]["unassigned_percentage"] == "0.00"
    assert report["summary"]["total_distributed"] == "1000.00"

    # reading twice with no writes in between gives the same report
    again = client.get(f"{GROUPS}/{group['id']}/distribution", params=params, headers=admin_headers)
    assert again.json()["data"] == report


def test_distribution_defaults_to_group_period(client, admin_headers, group, bus, worker, partner, db):
    add_member(client, admin_headers, group["id"], partner.id, "50")
    add_route(db, bus, worker, date(2024, 7, 1), "100.00", "0")
    add_route(db, bus, worker, date(2025, 1, 1), "100.00", "0")

    report = client.get(f"{GROUPS}/{group['id']}/distribution", headers=admin_headers).json()["data"]
    assert report["period"] == {"start": "2024-01-01", "end": "2024-12-31"}
    assert report["totals"]["routes_count"] == 1
    assert report["summary"]["unassigned_amount"] == "50.00"


def test_distribution_worker_can_read(client, worker_headers, group):
    response = client.get(f"{GROUPS}/{group['id']}/distribution", headers=worker_headers)
    assert response.status_code == 200
    assert response.json()["data"]["distribution"] == []


def test_distribution_errors(client, admin_headers, group):
    assert client.get(f"{GROUPS}/999/distribution", headers=admin_headers).status_code == 404

    response = client.get(
        f"{GROUPS}/{group['id']}/distribution",
        params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_DATE_RANGE"


def test_distribution_for_group_starting_in_the_future(client, admin_headers, bus, partner):
    start = date.today() + timedelta(days=30)
    group = create_group(client, admin_headers, bus.id, start=start.isoformat(), end=None).json()["data"]
    add_member(client, admin_headers, group["id"], partner.id, "100")

    response = client.get(f"{GROUPS}/{group['id']}/distribution", headers=admin_headers)
    assert response.status_code == 200
    report = response.json()["data"]
    assert report["period"] == {"start": start.isoformat(), "end": start.isoformat()}
    assert report["totals"]["routes_count"] == 0
    assert report["totals"]["net_profit"] == "0.00"
    assert report["distribution"][0]["amount"] == "0.00"
