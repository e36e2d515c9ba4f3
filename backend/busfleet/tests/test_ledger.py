"""
Tests for the member percentage ledger and its write path.
"""
import threading
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from busfleet.core.errors import PercentageExceededError
from busfleet.db.base import Base
from busfleet.models.bus import Bus
from busfleet.models.profit_sharing import ProfitSharingGroup, ProfitSharingMember, ShareRole
from busfleet.models.user import UserRole
from busfleet.schemas.profit_sharing import MemberCreate, MemberUpdate
from busfleet.services import profit_sharing_service as service_module
from busfleet.services.ledger_service import ensure_within_limit
from busfleet.services.profit_sharing_service import ProfitSharingService
from conftest import make_user


def test_exactly_hundred_is_allowed():
    assert ensure_within_limit(Decimal("60.00"), Decimal("40")) == Decimal("60.00")


def test_excess_reports_both_amounts_in_cents():
    with pytest.raises(PercentageExceededError) as exc_info:
        ensure_within_limit(Decimal("90"), Decimal("15"))
    assert exc_info.value.details == {"current_total": "90.00", "attempted": "15.00"}
    assert exc_info.value.status_code == 400


@pytest.fixture()
def group(db, bus, admin):
    group = ProfitSharingGroup(
        name="2024", bus_id=bus.id, start_date=date(2024, 1, 1), created_by=admin.id
    )
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


def failing_audit(*args, **kwargs):
    raise RuntimeError("audit store unavailable")


def test_member_not_created_when_audit_fails(engine, db, group, partner, admin, monkeypatch):
    monkeypatch.setattr(service_module, "record_audit", failing_audit)
    session = sessionmaker(bind=engine)()
    try:
        with pytest.raises(RuntimeError):
            ProfitSharingService().create_member(
                session,
                MemberCreate(group_id=group.id, user_id=partner.id, role_in_share=ShareRole.PARTNER, percentage=Decimal("30")),
                SimpleNamespace(id=admin.id),
            )
    finally:
        session.close()

    db.expire_all()
    assert db.query(ProfitSharingMember).count() == 0


def test_member_unchanged_when_audit_fails(engine, db, group, partner, admin, monkeypatch):
    member = ProfitSharingMember(
        group_id=group.id, user_id=partner.id, role_in_share=ShareRole.PARTNER, percentage=Decimal("40")
    )
    db.add(member)
    db.commit()
    member_id = member.id

    monkeypatch.setattr(service_module, "record_audit", failing_audit)
    session = sessionmaker(bind=engine)()
    try:
        with pytest.raises(RuntimeError):
            ProfitSharingService().update_member(
                session, member_id,
                MemberUpdate(percentage=Decimal("60"), role_in_share=ShareRole.OWNER),
                SimpleNamespace(id=admin.id),
            )
    finally:
        session.close()

    db.expire_all()
    stored = db.query(ProfitSharingMember).filter(ProfitSharingMember.id == member_id).one()
    assert stored.percentage == Decimal("40.00")
    assert stored.role_in_share == ShareRole.PARTNER


def test_concurrent_additions_never_exceed_hundred(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)

    setup = Session()
    admin = make_user(setup, "Ana Admin", "1000", "admin-pass-123", role=UserRole.ADMIN)
    users = [make_user(setup, f"Partner {i}", f"60{i}", "secret-123") for i in range(8)]
    bus = Bus(internal_code="B-01", plate_number="ABC123")
    setup.add(bus)
    setup.commit()
    group = ProfitSharingGroup(name="2024", bus_id=bus.id, start_date=date(2024, 1, 1), created_by=admin.id)
    setup.add(group)
    setup.commit()
    group_id, admin_id = group.id, admin.id
    user_ids = [user.id for user in users]
    setup.close()

    service = ProfitSharingService()
    rejected = []
    barrier = threading.Barrier(len(user_ids))

    def add(user_id):
        session = Session()
        try:
            barrier.wait()
            service.create_member(
                session,
                MemberCreate(group_id=group_id, user_id=user_id, role_in_share=ShareRole.PARTNER, percentage=Decimal("30")),
                SimpleNamespace(id=admin_id),
            )
        except PercentageExceededError:
            rejected.append(user_id)
        finally:
            session.close()

    threads = [threading.Thread(target=add, args=(user_id,)) for user_id in user_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    check = Session()
    percentages = [m.percentage for m in check.query(ProfitSharingMember).all()]
    check.close()
    engine.dispose()

    assert sum(percentages) == Decimal("90.00")
    assert len(percentages) == 3
    assert len(rejected) == 5
