"""
Profit-sharing groups and members.

One ProfitSharingService is built by the application factory and shared by
all requests. Mutations that must see a consistent total (member
percentages of a group, active periods of a bus) run while holding a
per-key lock and a row lock on the parent row, and commit together with
their audit entry.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload
from busfleet.core.errors import (
    BadRequestError, DuplicateMemberError, GroupOverlapError, NotFoundError
)
from busfleet.models.bus import Bus
from busfleet.models.profit_sharing import ProfitSharingGroup, ProfitSharingMember
from busfleet.models.user import User
from busfleet.schemas.profit_sharing import (
    DistributionReport, GroupCreate, GroupFilter, GroupUpdate,
    MemberCreate, MemberFilter, MemberUpdate
)
from busfleet.services import ledger_service
from busfleet.services.audit_service import AuditAction, record_audit
from busfleet.services.distribution_service import compute_distribution
from busfleet.services.locks import KeyedLock
from busfleet.services.period_service import find_overlapping_group, validate_date_range

logger = logging.getLogger(__name__)

GROUP_ENTITY = "PROFIT_SHARING_GROUP"
MEMBER_ENTITY = "PROFIT_SHARING_MEMBER"


class ProfitSharingService:
    """Group/member bookkeeping and profit distribution."""

    def __init__(self, locks: Optional[KeyedLock] = None):
        self.locks = locks or KeyedLock()

    # ==================== Groups ====================

    def list_groups(
        self, db: Session, filters: GroupFilter, page: int, limit: int
    ) -> Tuple[List[ProfitSharingGroup], int]:
        query = db.query(ProfitSharingGroup)
        if filters.bus_id is not None:
            query = query.filter(ProfitSharingGroup.bus_id == filters.bus_id)
        if filters.is_active is not None:
            query = query.filter(ProfitSharingGroup.is_active.is_(filters.is_active))
        if filters.start_date is not None:
            query = query.filter(or_(
                ProfitSharingGroup.end_date.is_(None),
                ProfitSharingGroup.end_date >= filters.start_date,
            ))
        if filters.end_date is not None:
            query = query.filter(ProfitSharingGroup.start_date <= filters.end_date)

        total = query.count()
        groups = query.options(
            joinedload(ProfitSharingGroup.bus),
            joinedload(ProfitSharingGroup.members).joinedload(ProfitSharingMember.user),
        ).order_by(
            ProfitSharingGroup.created_at.desc(), ProfitSharingGroup.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()
        return groups, total

    def get_group(self, db: Session, group_id: int) -> ProfitSharingGroup:
        group = db.query(ProfitSharingGroup).options(
            joinedload(ProfitSharingGroup.bus),
            joinedload(ProfitSharingGroup.creator),
            joinedload(ProfitSharingGroup.members).joinedload(ProfitSharingMember.user),
        ).filter(ProfitSharingGroup.id == group_id).first()
        if not group:
            raise NotFoundError("Profit-sharing group not found")
        return group

    def create_group(self, db: Session, data: GroupCreate, actor: User) -> ProfitSharingGroup:
        """Create a group, refusing periods that collide with another active group of the bus."""
        with self.locks.hold(("bus", data.bus_id)):
            bus = db.query(Bus).filter(Bus.id == data.bus_id).with_for_update().first()
            if not bus:
                raise NotFoundError("Bus not found")
            if not bus.is_active:
                raise BadRequestError("Bus is not active")

            validate_date_range(data.start_date, data.end_date)
            overlapping = find_overlapping_group(db, bus.id, data.start_date, data.end_date)
            if overlapping:
                raise GroupOverlapError(overlapping)

            group = ProfitSharingGroup(
                name=data.name or f"{bus.internal_code} {data.start_date.isoformat()}",
                bus_id=bus.id,
                start_date=data.start_date,
                end_date=data.end_date,
                is_active=True,
                created_by=actor.id,
            )
            db.add(group)
            db.flush()
            record_audit(
                db, actor.id, AuditAction.CREATE, GROUP_ENTITY, group.id,
                f"Profit-sharing group '{group.name}' created for bus {bus.internal_code}",
                {"bus_id": bus.id, "start_date": _iso(group.start_date), "end_date": _iso(group.end_date)},
            )
            db.commit()

        logger.info(f"Profit-sharing group {group.id} created for bus {bus.id} by user {actor.id}")
        return self.get_group(db, group.id)

    def update_group(
        self, db: Session, group_id: int, data: GroupUpdate, actor: User
    ) -> ProfitSharingGroup:
        changes = data.model_dump(exclude_unset=True)
        existing = db.query(ProfitSharingGroup).filter(ProfitSharingGroup.id == group_id).first()
        if not existing:
            raise NotFoundError("Profit-sharing group not found")

        with self.locks.hold(("bus", existing.bus_id)):
            group = db.query(ProfitSharingGroup).filter(
                ProfitSharingGroup.id == group_id
            ).with_for_update().first()

            start = changes.get("start_date") or group.start_date
            end = changes["end_date"] if "end_date" in changes else group.end_date
            is_active = changes.get("is_active")
            if is_active is None:
                is_active = group.is_active
            validate_date_range(start, end)

            period_changed = start != group.start_date or end != group.end_date
            reactivated = is_active and not group.is_active
            if is_active and (period_changed or reactivated):
                overlapping = find_overlapping_group(
                    db, group.bus_id, start, end, exclude_group_id=group.id
                )
                if overlapping:
                    raise GroupOverlapError(overlapping)

            if changes.get("name") is not None:
                group.name = changes["name"]
            group.start_date = start
            group.end_date = end
            group.is_active = is_active

            record_audit(
                db, actor.id, AuditAction.UPDATE, GROUP_ENTITY, group.id,
                f"Profit-sharing group '{group.name}' updated",
                {key: _iso(value) for key, value in changes.items()},
            )
            db.commit()

        logger.info(f"Profit-sharing group {group_id} updated by user {actor.id}: {sorted(changes)}")
        return self.get_group(db, group_id)

    def delete_group(self, db: Session, group_id: int, actor: User) -> None:
        """Delete a group together with its members."""
        group = db.query(ProfitSharingGroup).filter(ProfitSharingGroup.id == group_id).first()
        if not group:
            raise NotFoundError("Profit-sharing group not found")

        with self.locks.hold(("group", group_id)):
            member_count = len(group.members)
            record_audit(
                db, actor.id, AuditAction.DELETE, GROUP_ENTITY, group.id,
                f"Profit-sharing group '{group.name}' deleted",
                {"bus_id": group.bus_id, "members": member_count},
            )
            db.delete(group)
            db.commit()

        logger.info(f"Profit-sharing group {group_id} deleted with {member_count} members by user {actor.id}")

    # ==================== Members ====================

    def list_members(self, db: Session, filters: MemberFilter) -> List[ProfitSharingMember]:
        query = db.query(ProfitSharingMember).options(
            joinedload(ProfitSharingMember.user),
            joinedload(ProfitSharingMember.group),
        )
        if filters.group_id is not None:
            query = query.filter(ProfitSharingMember.group_id == filters.group_id)
        if filters.user_id is not None:
            query = query.filter(ProfitSharingMember.user_id == filters.user_id)
        if filters.role_in_share is not None:
            query = query.filter(ProfitSharingMember.role_in_share == filters.role_in_share)
        return query.order_by(
            ProfitSharingMember.percentage.desc(), ProfitSharingMember.id
        ).all()

    def get_member(self, db: Session, member_id: int) -> ProfitSharingMember:
        member = db.query(ProfitSharingMember).options(
            joinedload(ProfitSharingMember.user),
            joinedload(ProfitSharingMember.group),
        ).filter(ProfitSharingMember.id == member_id).first()
        if not member:
            raise NotFoundError("Member not found")
        return member

    def create_member(self, db: Session, data: MemberCreate, actor: User) -> ProfitSharingMember:
        """Add a member if the group stays at or below 100% in total."""
        with self.locks.hold(("group", data.group_id)):
            group = db.query(ProfitSharingGroup).filter(
                ProfitSharingGroup.id == data.group_id
            ).with_for_update().first()
            if not group:
                raise NotFoundError("Profit-sharing group not found")

            user = db.query(User).filter(User.id == data.user_id).first()
            if not user:
                raise NotFoundError("User not found")

            duplicate = db.query(ProfitSharingMember.id).filter(
                ProfitSharingMember.group_id == group.id,
                ProfitSharingMember.user_id == user.id,
            ).first()
            if duplicate:
                raise DuplicateMemberError(group.id, user.id)

            current_total = ledger_service.can_add(db, group.id, data.percentage)

            member = ProfitSharingMember(
                group_id=group.id,
                user_id=user.id,
                role_in_share=data.role_in_share,
                percentage=data.percentage,
            )
            db.add(member)
            db.flush()
            record_audit(
                db, actor.id, AuditAction.CREATE, MEMBER_ENTITY, member.id,
                f"{user.full_name} added to group '{group.name}' with {data.percentage}%",
                {
                    "group_id": group.id,
                    "user_id": user.id,
                    "percentage": str(data.percentage),
                    "group_total": str(current_total + data.percentage),
                },
            )
            db.commit()

        logger.info(
            f"Member {member.id} (user {user.id}, {data.percentage}%) added to group {group.id}"
        )
        return self.get_member(db, member.id)

    def update_member(
        self, db: Session, member_id: int, data: MemberUpdate, actor: User
    ) -> ProfitSharingMember:
        existing = db.query(ProfitSharingMember).filter(ProfitSharingMember.id == member_id).first()
        if not existing:
            raise NotFoundError("Member not found")

        group_id = existing.group_id
        with self.locks.hold(("group", group_id)):
            db.query(ProfitSharingGroup).filter(
                ProfitSharingGroup.id == group_id
            ).with_for_update().first()
            db.refresh(existing)

            changes = {}
            if data.percentage is not None:
                ledger_service.can_update(db, existing.id, group_id, data.percentage)
                changes["percentage"] = {"from": str(existing.percentage), "to": str(data.percentage)}
                existing.percentage = data.percentage
            if data.role_in_share is not None:
                changes["role_in_share"] = {
                    "from": existing.role_in_share.value, "to": data.role_in_share.value
                }
                existing.role_in_share = data.role_in_share

            record_audit(
                db, actor.id, AuditAction.UPDATE, MEMBER_ENTITY, existing.id,
                f"Profit-sharing member {existing.id} updated", changes,
            )
            db.commit()

        logger.info(f"Member {member_id} of group {group_id} updated by user {actor.id}")
        return self.get_member(db, member_id)

    def delete_member(self, db: Session, member_id: int, actor: User) -> None:
        member = db.query(ProfitSharingMember).filter(ProfitSharingMember.id == member_id).first()
        if not member:
            raise NotFoundError("Member not found")

        with self.locks.hold(("group", member.group_id)):
            record_audit(
                db, actor.id, AuditAction.DELETE, MEMBER_ENTITY, member.id,
                f"Profit-sharing member {member.id} removed from group {member.group_id}",
                {"group_id": member.group_id, "user_id": member.user_id, "percentage": str(member.percentage)},
            )
            db.delete(member)
            db.commit()

        logger.info(f"Member {member_id} deleted by user {actor.id}")

    # ==================== Distribution ====================

    def get_distribution(
        self,
        db: Session,
        group_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> DistributionReport:
        return compute_distribution(db, group_id, start_date, end_date)


def _iso(value):
    return value.isoformat() if isinstance(value, date) else value
