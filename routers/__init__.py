"""
ROUTERS - FastAPI Router Modules

Usage:
    from routers import signals_router

    app.include_router(signals_router)
"""

from .signals import router as signals_router

__all__ = [
    'signals_router',
]
