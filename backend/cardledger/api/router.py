"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from cardledger.api.routes import auth, users, expenses, renewals, notifications, cron

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(expenses.router)
api_router.include_router(renewals.router)
api_router.include_router(notifications.router)

# Mounted outside /api by main
cron_router = cron.router
