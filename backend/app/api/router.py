"""
Central API router that aggregates all route modules.
Paths carry no version prefix; existing clients call them as-is.
"""

from fastapi import APIRouter
from app.api.routes import admin_events, admin_users, categories, compilations, events, user_events, user_requests

api_router = APIRouter()
api_router.include_router(admin_users.router)
api_router.include_router(categories.admin_router)
api_router.include_router(categories.router)
api_router.include_router(admin_events.router)
api_router.include_router(compilations.admin_router)
api_router.include_router(compilations.router)
api_router.include_router(user_events.router)
api_router.include_router(user_requests.router)
api_router.include_router(events.router)
