"""
API routers
"""

from clinic_api.routers import scheduler

__all__ = ["scheduler"]
