"""
Profit-sharing routes: groups, members and profit distribution.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from busfleet.core.config import settings
from busfleet.core.utils import pagination_meta, success_response
from busfleet.db.session import get_db
from busfleet.models.profit_sharing import ShareRole
from busfleet.models.user import User
from busfleet.schemas.common import DeleteResult, PageResponse, SuccessResponse
from busfleet.schemas.profit_sharing import (
    DistributionReport, GroupCreate, GroupDetailResponse, GroupFilter,
    GroupUpdate, MemberCreate, MemberFilter, MemberResponse, MemberUpdate
)
from busfleet.api.dependencies import get_current_user, get_profit_sharing_service, require_admin
from busfleet.services.profit_sharing_service import ProfitSharingService

router = APIRouter(prefix="/profit-sharing", tags=["profit-sharing"])


# ==================== Groups ====================

@router.get("/groups", response_model=PageResponse[GroupDetailResponse])
async def list_groups(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    bus_id: Optional[int] = Query(None, gt=0),
    is_active: Optional[bool] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """List profit-sharing groups."""
    filters = GroupFilter(bus_id=bus_id, is_active=is_active, start_date=start_date, end_date=end_date)
    groups, total = service.list_groups(db, filters, page, limit)
    return success_response(
        [GroupDetailResponse.model_validate(g) for g in groups],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/groups/{group_id}", response_model=SuccessResponse[GroupDetailResponse])
async def get_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Get a group with its members."""
    group = service.get_group(db, group_id)
    return success_response(GroupDetailResponse.model_validate(group))


@router.get("/groups/{group_id}/distribution", response_model=SuccessResponse[DistributionReport])
async def get_distribution(
    group_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Split the group's net profit between its members."""
    report = service.get_distribution(db, group_id, start_date, end_date)
    return success_response(report)


@router.post("/groups", response_model=SuccessResponse[GroupDetailResponse], status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    current_user: User = Depends(require_admin),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Create a profit-sharing group."""
    group = service.create_group(db, group_data, current_user)
    return success_response(GroupDetailResponse.model_validate(group), message="Group created")


@router.patch("/groups/{group_id}", response_model=SuccessResponse[GroupDetailResponse])
async def update_group(
    group_id: int,
    group_data: GroupUpdate,
    current_user: User = Depends(require_admin),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Update name, period or active flag of a group."""
    group = service.update_group(db, group_id, group_data, current_user)
    return success_response(GroupDetailResponse.model_validate(group))


@router.delete("/groups/{group_id}", response_model=SuccessResponse[DeleteResult])
async def delete_group(
    group_id: int,
    current_user: User = Depends(require_admin),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Delete a group and its members."""
    service.delete_group(db, group_id, current_user)
    return success_response(DeleteResult())


# ==================== Members ====================

@router.get("/members", response_model=SuccessResponse[List[MemberResponse]])
async def list_members(
    group_id: Optional[int] = Query(None, gt=0),
    user_id: Optional[int] = Query(None, gt=0),
    role_in_share: Optional[ShareRole] = None,
    current_user: User = Depends(get_current_user),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """List members, largest share first."""
    filters = MemberFilter(group_id=group_id, user_id=user_id, role_in_share=role_in_share)
    members = service.list_members(db, filters)
    return success_response([MemberResponse.model_validate(m) for m in members])


@router.get("/members/{member_id}", response_model=SuccessResponse[MemberResponse])
async def get_member(
    member_id: int,
    current_user: User = Depends(get_current_user),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Get a member."""
    member = service.get_member(db, member_id)
    return success_response(MemberResponse.model_validate(member))


@router.post("/members", response_model=SuccessResponse[MemberResponse], status_code=status.HTTP_201_CREATED)
async def create_member(
    member_data: MemberCreate,
    current_user: User = Depends(require_admin),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Add a member to a group."""
    member = service.create_member(db, member_data, current_user)
    return success_response(MemberResponse.model_validate(member), message="Member created")


@router.patch("/members/{member_id}", response_model=SuccessResponse[MemberResponse])
async def update_member(
    member_id: int,
    member_data: MemberUpdate,
    current_user: User = Depends(require_admin),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Change a member's role or percentage."""
    member = service.update_member(db, member_id, member_data, current_user)
    return success_response(MemberResponse.model_validate(member))


@router.delete("/members/{member_id}", response_model=SuccessResponse[DeleteResult])
async def delete_member(
    member_id: int,
    current_user: User = Depends(require_admin),
    service: ProfitSharingService = Depends(get_profit_sharing_service),
    db: Session = Depends(get_db)
):
    """Remove a member from its group."""
    service.delete_member(db, member_id, current_user)
    return success_response(DeleteResult())
