"""
Per-bus monthly figures.
"""
import calendar
from datetime import date
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session
from busfleet.core.errors import NotFoundError
from busfleet.core.utils import HUNDRED, round_money
from busfleet.models.bus import Bus
from busfleet.models.expense import BusExpense
from busfleet.models.route import Route
from busfleet.schemas.bus import BusMonthlyStats
from busfleet.services.distribution_service import ZERO, summarize_routes


def month_bounds(year: int, month: int):
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def target_progress(net_profit: Decimal, monthly_target: Decimal) -> Decimal:
    """Percent of the monthly target reached, capped at 100; 0 without a target."""
    if monthly_target <= 0:
        return round_money(ZERO)
    return round_money(min(net_profit * HUNDRED / monthly_target, HUNDRED))


def monthly_stats(
    db: Session,
    bus_id: int,
    year: Optional[int] = None,
    month: Optional[int] = None,
    today: Optional[date] = None,
) -> BusMonthlyStats:
    """Figures of one bus for a month; the current month when none is given.

    Operational profit is the sum of the routes' stored net income, the same
    figure profit-sharing distributions start from.
    """
    bus = db.query(Bus).filter(Bus.id == bus_id).first()
    if not bus:
        raise NotFoundError("Bus not found")

    today = today or date.today()
    year = year or today.year
    month = month or today.month
    start, end = month_bounds(year, month)

    routes = db.query(Route).filter(
        Route.bus_id == bus.id, Route.route_date >= start, Route.route_date <= end
    ).all()
    administrative = sum(
        (Decimal(e.amount) for e in db.query(BusExpense).filter(
            BusExpense.bus_id == bus.id,
            BusExpense.expense_date >= start,
            BusExpense.expense_date <= end,
        )),
        ZERO,
    )

    totals = summarize_routes(routes)
    net_profit = totals.net_income - administrative
    monthly_target = Decimal(bus.monthly_target or 0)
    return BusMonthlyStats(
        bus_id=bus.id,
        bus_code=bus.internal_code,
        year=year,
        month=month,
        total_income=round_money(totals.total_income),
        total_expenses=round_money(totals.total_expenses),
        operational_profit=round_money(totals.net_income),
        administrative_expenses=round_money(administrative),
        net_profit=round_money(net_profit),
        monthly_target=round_money(monthly_target),
        target_progress=target_progress(net_profit, monthly_target),
        routes_count=len(routes),
    )
