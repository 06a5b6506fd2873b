from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse
import logging
import os

from mdpages import __version__
from mdpages.core.config import settings
from mdpages.api.http.health import router as health_router
from mdpages.api.http.render import router as render_router
from mdpages.api.http.share import router as share_router
from mdpages.api.ws.session import router as session_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")
INDEX_FILE = os.path.join(STATIC_DIR, "index.html")

app = FastAPI(
    title=settings.app_title,
    description="Markdown-страницы с формулами и подсветкой кода, которые целиком хранятся в ссылке",
    version=__version__
)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

# Подключаем роутеры
app.include_router(health_router)
app.include_router(render_router)
app.include_router(share_router)
app.include_router(session_router)


@app.get("/")
async def root():
    """Корневой эндпоинт - отдаем страницу; параметр content читает сам клиент"""
    return FileResponse(INDEX_FILE)
