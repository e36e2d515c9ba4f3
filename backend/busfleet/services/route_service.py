"""
Route service: keeps a route's totals consistent with its expense lines.
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from datetime import date
from sqlalchemy.orm import Session, selectinload
from busfleet.core.errors import ForbiddenError, NotFoundError
from busfleet.core.utils import round_money
from busfleet.models.bus import Bus
from busfleet.models.route import Route, RouteExpense
from busfleet.models.user import User, UserRole
from busfleet.schemas.route import RouteCreate, RouteExpenseItem, RouteStats, RouteUpdate
from busfleet.services.audit_service import AuditAction, record_audit
from busfleet.services.distribution_service import ZERO, summarize_routes

logger = logging.getLogger(__name__)

ROUTE_ENTITY = "ROUTE"


def sum_expense_lines(lines: Iterable[RouteExpenseItem]) -> Decimal:
    return sum((Decimal(line.amount) for line in lines), Decimal("0"))


def _replace_expenses(route: Route, lines: List[RouteExpenseItem]) -> None:
    route.expenses = [
        RouteExpense(expense_name=line.expense_name, amount=line.amount) for line in lines
    ]
    route.total_expenses = sum_expense_lines(lines)


def get_route(db: Session, route_id: int) -> Route:
    route = db.query(Route).options(selectinload(Route.expenses)).filter(Route.id == route_id).first()
    if not route:
        raise NotFoundError("Route not found")
    return route


def list_routes(
    db: Session,
    page: int,
    limit: int,
    bus_id: Optional[int] = None,
    worker_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[Route], int]:
    query = db.query(Route)
    if bus_id is not None:
        query = query.filter(Route.bus_id == bus_id)
    if worker_id is not None:
        query = query.filter(Route.worker_id == worker_id)
    if start_date:
        query = query.filter(Route.route_date >= start_date)
    if end_date:
        query = query.filter(Route.route_date <= end_date)

    total = query.count()
    routes = query.options(selectinload(Route.expenses)).order_by(
        Route.route_date.desc(), Route.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    return routes, total


def create_route(db: Session, data: RouteCreate, actor: User) -> Route:
    """Create a route; total_expenses and net_income are derived from the lines."""
    if actor.role != UserRole.ADMIN and data.worker_id != actor.id:
        raise ForbiddenError("Workers can only register their own routes")

    if not db.query(Bus).filter(Bus.id == data.bus_id).first():
        raise NotFoundError("Bus not found")
    if not db.query(User).filter(User.id == data.worker_id).first():
        raise NotFoundError("Worker not found")

    route = Route(
        bus_id=data.bus_id,
        worker_id=data.worker_id,
        route_name=data.route_name,
        route_date=data.route_date,
        total_income=data.total_income,
        notes=data.notes,
    )
    _replace_expenses(route, data.expenses)
    route.net_income = Decimal(data.total_income) - route.total_expenses
    db.add(route)
    db.flush()
    record_audit(
        db, actor.id, AuditAction.CREATE, ROUTE_ENTITY, route.id,
        f"Route '{route.route_name}' registered for {route.route_date.isoformat()}",
        {"bus_id": route.bus_id, "net_income": str(route.net_income)},
    )
    db.commit()
    logger.info(f"Route {route.id} created for bus {data.bus_id}, net income {route.net_income}")
    return get_route(db, route.id)


def update_route(db: Session, route_id: int, data: RouteUpdate, actor: User) -> Route:
    """Apply changes and recompute net income when income or expenses change."""
    route = get_route(db, route_id)
    if actor.role != UserRole.ADMIN and route.worker_id != actor.id:
        raise ForbiddenError("Workers can only edit their own routes")

    changes = data.model_dump(exclude_unset=True)
    if data.route_name is not None:
        route.route_name = data.route_name
    if data.route_date is not None:
        route.route_date = data.route_date
    if "notes" in changes:
        route.notes = data.notes
    if data.expenses is not None:
        _replace_expenses(route, data.expenses)
    if data.total_income is not None:
        route.total_income = data.total_income
    if data.expenses is not None or data.total_income is not None:
        route.net_income = Decimal(route.total_income) - Decimal(route.total_expenses)

    record_audit(
        db, actor.id, AuditAction.UPDATE, ROUTE_ENTITY, route.id,
        f"Route {route.id} updated",
        {"fields": sorted(changes), "net_income": str(route.net_income)},
    )
    db.commit()
    logger.info(f"Route {route_id} updated by user {actor.id}")
    return get_route(db, route_id)


def delete_route(db: Session, route_id: int, actor: User) -> None:
    route = get_route(db, route_id)
    record_audit(
        db, actor.id, AuditAction.DELETE, ROUTE_ENTITY, route.id,
        f"Route {route.id} deleted", {"bus_id": route.bus_id},
    )
    db.delete(route)
    db.commit()
    logger.info(f"Route {route_id} deleted by user {actor.id}")


def route_stats(
    db: Session,
    actor: User,
    bus_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> RouteStats:
    """Totals and averages over matching routes; workers only see their assigned bus."""
    if actor.role == UserRole.WORKER and actor.assigned_bus_id:
        bus_id = actor.assigned_bus_id

    query = db.query(Route)
    if bus_id is not None:
        query = query.filter(Route.bus_id == bus_id)
    if start_date:
        query = query.filter(Route.route_date >= start_date)
    if end_date:
        query = query.filter(Route.route_date <= end_date)

    routes = query.all()
    totals = summarize_routes(routes)
    count = len(routes)
    return RouteStats(
        total_routes=count,
        total_income=round_money(totals.total_income),
        total_expenses=round_money(totals.total_expenses),
        net_income=round_money(totals.net_income),
        average_income=round_money(totals.total_income / count) if count else round_money(ZERO),
        average_expenses=round_money(totals.total_expenses / count) if count else round_money(ZERO),
    )
