"""Routes package - API endpoint modules"""

from .user_routes import router as user_router
from .biometric_routes import router as biometric_router
from .admin_routes import router as admin_router

__all__ = ['user_router', 'biometric_router', 'admin_router']
