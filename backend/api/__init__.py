"""
API Routers
"""
from .settings import router as settings_router
from .alerts import router as alerts_router
from .metrics import router as metrics_router
from .targets import router as targets_router

__all__ = ["settings_router", "alerts_router", "metrics_router", "targets_router"]
