"""
Profit-sharing groups and their members.
"""
from sqlalchemy import (
    Column, String, Numeric, Date, Boolean, ForeignKey, Integer,
    Enum as SQLEnum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from busfleet.db.base import BaseModel
import enum


class ShareRole(str, enum.Enum):
    """Role a member holds in a profit-sharing group."""
    OWNER = "OWNER"
    DRIVER = "DRIVER"
    PARTNER = "PARTNER"


class ProfitSharingGroup(BaseModel):
    """Profit-sharing arrangement for one bus over a period.

    end_date NULL means the group runs open-ended into the future.
    """
    __tablename__ = "profit_sharing_groups"

    name = Column(String(150), nullable=False)
    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    bus = relationship("Bus", back_populates="profit_sharing_groups")
    creator = relationship("User", foreign_keys=[created_by])
    members = relationship(
        "ProfitSharingMember", back_populates="group", cascade="all, delete-orphan",
        order_by=lambda: [ProfitSharingMember.percentage.desc(), ProfitSharingMember.id]
    )


class ProfitSharingMember(BaseModel):
    """A user's percentage claim on a group's net profit."""
    __tablename__ = "profit_sharing_members"

    group_id = Column(Integer, ForeignKey("profit_sharing_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role_in_share = Column(SQLEnum(ShareRole), nullable=False)
    percentage = Column(Numeric(5, 2), nullable=False)

    # Relationships
    group = relationship("ProfitSharingGroup", back_populates="members")
    user = relationship("User", back_populates="profit_shares")

    # One membership per user per group
    __table_args__ = (
        UniqueConstraint('group_id', 'user_id', name='uq_group_user_member'),
    )
