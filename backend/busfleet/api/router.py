"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from busfleet.api.routes import (
    auth, users, buses, routes, expenses, profit_sharing, budgets, invoices, audit
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(buses.router)
api_router.include_router(routes.router)
api_router.include_router(expenses.router)
api_router.include_router(profit_sharing.router)
api_router.include_router(budgets.router)
api_router.include_router(invoices.router)
api_router.include_router(audit.router)
