"""
Pydantic schemas for profit-sharing groups, members and distribution reports.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from busfleet.models.profit_sharing import ShareRole
from busfleet.schemas.bus import BusSummary
from busfleet.schemas.user import UserSummary


# ==================== Groups ====================

class GroupCreate(BaseModel):
    """Schema for group creation."""
    bus_id: int = Field(gt=0)
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    start_date: date
    end_date: Optional[date] = None  # None = open-ended


class GroupUpdate(BaseModel):
    """Schema for group update; an explicit null end_date reopens the group."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class GroupFilter(BaseModel):
    """Filters accepted by the group listing."""
    bus_id: Optional[int] = None
    is_active: Optional[bool] = None
    start_date: Optional[date] = None  # groups still running on/after this date
    end_date: Optional[date] = None  # groups started on/before this date


class MemberInGroup(BaseModel):
    """Member as listed inside a group."""
    id: int
    user_id: int
    role_in_share: ShareRole
    percentage: Decimal
    user: UserSummary

    class Config:
        from_attributes = True


class GroupResponse(BaseModel):
    """Schema for group response."""
    id: int
    name: str
    bus_id: int
    start_date: date
    end_date: Optional[date] = None
    is_active: bool
    created_by: int
    created_at: datetime
    bus: BusSummary

    class Config:
        from_attributes = True


class GroupDetailResponse(GroupResponse):
    """Group with its members."""
    creator: Optional[UserSummary] = None
    members: List[MemberInGroup] = []


# ==================== Members ====================

class MemberCreate(BaseModel):
    """Schema for member creation."""
    group_id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    role_in_share: ShareRole
    percentage: Decimal = Field(gt=0, le=100, decimal_places=2)


class MemberUpdate(BaseModel):
    """Schema for member update."""
    role_in_share: Optional[ShareRole] = None
    percentage: Optional[Decimal] = Field(default=None, gt=0, le=100, decimal_places=2)


class MemberFilter(BaseModel):
    """Filters accepted by the member listing."""
    group_id: Optional[int] = None
    user_id: Optional[int] = None
    role_in_share: Optional[ShareRole] = None


class GroupSummary(BaseModel):
    id: int
    name: str
    bus_id: int
    start_date: date
    end_date: Optional[date] = None

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    """Schema for member response."""
    id: int
    group_id: int
    user_id: int
    role_in_share: ShareRole
    percentage: Decimal
    created_at: datetime
    user: UserSummary
    group: GroupSummary

    class Config:
        from_attributes = True


# ==================== Distribution ====================

class DistributionPeriod(BaseModel):
    start: date
    end: date


class DistributionTotals(BaseModel):
    total_income: Decimal
    route_expenses: Decimal
    operational_profit: Decimal
    administrative_expenses: Decimal
    net_profit: Decimal
    routes_count: int
    expenses_count: int


class MemberShare(BaseModel):
    member_id: int
    user_id: int
    user_name: str
    role_in_share: ShareRole
    percentage: Decimal
    amount: Decimal


class DistributionSummary(BaseModel):
    total_percentage_assigned: Decimal
    unassigned_percentage: Decimal
    unassigned_amount: Decimal
    total_distributed: Decimal


class DistributionReport(BaseModel):
    """Read-only profit split of a group over a period."""
    group_id: int
    group_name: str
    bus: BusSummary
    period: DistributionPeriod
    totals: DistributionTotals
    distribution: List[MemberShare]
    summary: DistributionSummary
