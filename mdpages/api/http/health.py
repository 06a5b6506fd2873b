from fastapi import APIRouter

from mdpages import __version__
from mdpages.api.ws.session import manager
from mdpages.domains.rendering.services import registry

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Проверка состояния сервиса и готовности тяжелых библиотек"""
    return {
        "status": "ok",
        "version": __version__,
        "services": registry.status(),
        "active_sessions": len(manager.active_connections)
    }
