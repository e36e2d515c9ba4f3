"""
Percentage ledger for profit-sharing members.

A group's member percentages may never add up to more than 100. Callers run
these checks and the member write inside one critical section per group
(see ProfitSharingService) so two requests cannot both pass against the
same stale total.
"""
from decimal import Decimal
from typing import Iterable, Optional
from sqlalchemy.orm import Session
from busfleet.core.errors import PercentageExceededError
from busfleet.core.utils import HUNDRED
from busfleet.models.profit_sharing import ProfitSharingMember


def sum_percentages(percentages: Iterable[Decimal]) -> Decimal:
    return sum((Decimal(p) for p in percentages), Decimal("0"))


def current_total(db: Session, group_id: int, exclude_member_id: Optional[int] = None) -> Decimal:
    """Sum of committed percentages in the group, optionally without one member."""
    query = db.query(ProfitSharingMember.percentage).filter(
        ProfitSharingMember.group_id == group_id
    )
    if exclude_member_id is not None:
        query = query.filter(ProfitSharingMember.id != exclude_member_id)
    return sum_percentages(row.percentage for row in query.all())


def ensure_within_limit(total: Decimal, attempted: Decimal) -> Decimal:
    """Raise if total + attempted exceeds 100; returns total."""
    if total + Decimal(attempted) > HUNDRED:
        raise PercentageExceededError(current_total=total, attempted=Decimal(attempted))
    return total


def can_add(db: Session, group_id: int, percentage: Decimal) -> Decimal:
    """Check a new member's share against the group; returns the current total."""
    return ensure_within_limit(current_total(db, group_id), percentage)


def can_update(db: Session, member_id: int, group_id: int, new_percentage: Decimal) -> Decimal:
    """Check a changed share against every other member of the group."""
    return ensure_within_limit(
        current_total(db, group_id, exclude_member_id=member_id), new_percentage
    )
