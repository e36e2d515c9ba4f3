"""
Period checks for profit-sharing groups.

Intervals are closed on both ends and an end of None means the group runs
open-ended into the future.
"""
from datetime import date
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from busfleet.core.errors import InvalidRangeError
from busfleet.models.profit_sharing import ProfitSharingGroup


def validate_date_range(start: date, end: Optional[date]) -> None:
    """End, when given, must be strictly after start."""
    if end is not None and end <= start:
        raise InvalidRangeError(
            "End date must be after start date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )


def periods_overlap(
    existing_start: date,
    existing_end: Optional[date],
    candidate_start: date,
    candidate_end: Optional[date],
) -> bool:
    """True when [existing_start, existing_end] intersects the candidate period."""
    starts_in_time = candidate_end is None or existing_start <= candidate_end
    still_running = existing_end is None or existing_end >= candidate_start
    return starts_in_time and still_running


def find_overlapping_group(
    db: Session,
    bus_id: int,
    start: date,
    end: Optional[date],
    exclude_group_id: Optional[int] = None,
) -> Optional[ProfitSharingGroup]:
    """First active group of the bus whose period intersects [start, end]."""
    validate_date_range(start, end)

    query = db.query(ProfitSharingGroup).filter(
        ProfitSharingGroup.bus_id == bus_id,
        ProfitSharingGroup.is_active.is_(True),
        or_(ProfitSharingGroup.end_date.is_(None), ProfitSharingGroup.end_date >= start),
    )
    if end is not None:
        query = query.filter(ProfitSharingGroup.start_date <= end)
    if exclude_group_id is not None:
        query = query.filter(ProfitSharingGroup.id != exclude_group_id)
    return query.order_by(ProfitSharingGroup.start_date, ProfitSharingGroup.id).first()


def check_overlap(
    db: Session,
    bus_id: int,
    start: date,
    end: Optional[date],
    exclude_group_id: Optional[int] = None,
) -> bool:
    """Whether any active group of the bus overlaps [start, end]."""
    return find_overlapping_group(db, bus_id, start, end, exclude_group_id) is not None
