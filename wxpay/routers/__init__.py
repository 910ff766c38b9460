from .orders import router as orders_router
from .callbacks import router as callbacks_router

__all__ = ["orders_router", "callbacks_router"]
