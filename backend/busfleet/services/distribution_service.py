"""
Profit distribution for profit-sharing groups.

Net profit of a bus over a period is the sum of its routes' stored net
income minus its administrative expenses. Each member gets
round(net_profit * percentage / 100) to the cent, half away from zero.
Rounding remainders are not reassigned, so total_distributed can differ
from the assigned share of net_profit by at most half a cent per member.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Sequence
from sqlalchemy.orm import Session, joinedload
from busfleet.core.errors import InvalidRangeError, NotFoundError
from busfleet.core.utils import HUNDRED, round_money
from busfleet.models.expense import BusExpense
from busfleet.models.profit_sharing import ProfitSharingGroup, ProfitSharingMember
from busfleet.models.route import Route
from busfleet.schemas.bus import BusSummary
from busfleet.schemas.profit_sharing import (
    DistributionPeriod, DistributionReport, DistributionSummary,
    DistributionTotals, MemberShare
)
from busfleet.services.ledger_service import sum_percentages

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class RouteTotals(NamedTuple):
    total_income: Decimal
    total_expenses: Decimal
    net_income: Decimal


def summarize_routes(routes: Iterable[Route]) -> RouteTotals:
    """Sum each column on its own; a route's stored net_income is kept as is."""
    total_income = total_expenses = net_income = ZERO
    for route in routes:
        total_income += Decimal(route.total_income)
        total_expenses += Decimal(route.total_expenses)
        net_income += Decimal(route.net_income)
    return RouteTotals(total_income, total_expenses, net_income)


def share_of(net_profit: Decimal, percentage: Decimal) -> Decimal:
    return round_money(net_profit * Decimal(percentage) / HUNDRED)


def allocate_shares(
    net_profit: Decimal, members: Sequence[ProfitSharingMember]
) -> List[MemberShare]:
    return [
        MemberShare(
            member_id=member.id,
            user_id=member.user_id,
            user_name=member.user.full_name,
            role_in_share=member.role_in_share,
            percentage=Decimal(member.percentage),
            amount=share_of(net_profit, member.percentage),
        )
        for member in members
    ]


def resolve_period(
    group: ProfitSharingGroup,
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
):
    """Explicit bounds win; otherwise the group's own, open end meaning today.

    Only an explicit end before the start is an error. A defaulted end that
    falls before the start (an open group starting in the future) is pulled
    up to the start instead.
    """
    period_start = start or group.start_date
    if end is not None:
        if end < period_start:
            raise InvalidRangeError(
                "Period end must not be before period start",
                details={"start_date": period_start.isoformat(), "end_date": end.isoformat()},
            )
        return period_start, end
    period_end = group.end_date or today or date.today()
    return period_start, max(period_end, period_start)


def build_report(
    group: ProfitSharingGroup,
    period_start: date,
    period_end: date,
    routes: Sequence[Route],
    bus_expenses: Sequence[BusExpense],
) -> DistributionReport:
    """Pure calculation over already loaded rows."""
    route_totals = summarize_routes(routes)
    administrative_expenses = sum((Decimal(e.amount) for e in bus_expenses), ZERO)

    operational_profit = route_totals.net_income
    net_profit = operational_profit - administrative_expenses

    members = list(group.members)
    distribution = allocate_shares(net_profit, members)

    total_assigned = sum_percentages(m.percentage for m in members)
    unassigned_percentage = HUNDRED - total_assigned

    return DistributionReport(
        group_id=group.id,
        group_name=group.name,
        bus=BusSummary.model_validate(group.bus),
        period=DistributionPeriod(start=period_start, end=period_end),
        totals=DistributionTotals(
            total_income=round_money(route_totals.total_income),
            route_expenses=round_money(route_totals.total_expenses),
            operational_profit=round_money(operational_profit),
            administrative_expenses=round_money(administrative_expenses),
            net_profit=round_money(net_profit),
            routes_count=len(routes),
            expenses_count=len(bus_expenses),
        ),
        distribution=distribution,
        summary=DistributionSummary(
            total_percentage_assigned=round_money(total_assigned),
            unassigned_percentage=round_money(unassigned_percentage),
            unassigned_amount=share_of(net_profit, unassigned_percentage),
            total_distributed=round_money(sum((d.amount for d in distribution), ZERO)),
        ),
    )


def compute_distribution(
    db: Session,
    group_id: int,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
) -> DistributionReport:
    """Compute how a group's net profit over a period splits between members."""
    group = db.query(ProfitSharingGroup).options(
        joinedload(ProfitSharingGroup.bus),
        joinedload(ProfitSharingGroup.members).joinedload(ProfitSharingMember.user),
    ).filter(ProfitSharingGroup.id == group_id).first()

    if not group:
        raise NotFoundError("Profit-sharing group not found")
    if not group.bus:
        raise NotFoundError("Bus not found")

    start, end = resolve_period(group, period_start, period_end)

    routes = db.query(Route).filter(
        Route.bus_id == group.bus_id,
        Route.route_date >= start,
        Route.route_date <= end,
    ).order_by(Route.route_date, Route.id).all()

    bus_expenses = db.query(BusExpense).filter(
        BusExpense.bus_id == group.bus_id,
        BusExpense.expense_date >= start,
        BusExpense.expense_date <= end,
    ).order_by(BusExpense.expense_date, BusExpense.id).all()

    report = build_report(group, start, end, routes, bus_expenses)
    logger.debug(
        f"Distribution for group {group_id} {start}..{end}: "
        f"{len(routes)} routes, net profit {report.totals.net_profit}"
    )
    return report
