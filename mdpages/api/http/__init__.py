from mdpages.api.http.health import router as health_router
from mdpages.api.http.render import router as render_router
from mdpages.api.http.share import router as share_router

__all__ = [
    "health_router",
    "render_router",
    "share_router"
]
