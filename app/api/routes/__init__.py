"""API routes. Auth routes live at the site root; the rest under API_PREFIX."""

from fastapi import APIRouter

from app.api.routes import admin, auth, health

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])

auth_router = auth.router

__all__ = ["api_router", "auth_router"]
