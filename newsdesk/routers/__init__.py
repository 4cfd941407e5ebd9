# newsdesk/routers/__init__.py
"""
API routers for v1 endpoints.
"""

from newsdesk.routers.admin import router as admin_router

__all__ = [
    "admin_router",
]
