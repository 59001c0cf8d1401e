"""API routers package."""
from cnc_admin.api.admin_auth import router as admin_auth_router
from cnc_admin.api.admin_users import router as admin_users_router
from cnc_admin.api.signup_requests import router as signup_requests_router
from cnc_admin.api.service_requests import router as service_requests_router
from cnc_admin.api.feedback import router as feedback_router

__all__ = [
    "admin_auth_router",
    "admin_users_router",
    "signup_requests_router",
    "service_requests_router",
    "feedback_router",
]
