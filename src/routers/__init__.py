"""
Routers Package

Contains FastAPI router modules for:
- Screenshot image endpoint
"""

from routers.screenshot import router as screenshot_router

__all__ = ["screenshot_router"]
