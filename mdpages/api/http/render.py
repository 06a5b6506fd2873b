from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from mdpages.core.config import settings
from mdpages.core.exceptions import MarkdownPagesError
from mdpages.domains.rendering.display import DisplaySurface
from mdpages.domains.rendering.entities import Success
from mdpages.domains.rendering.schemas import RenderRequest, RenderResponse
from mdpages.domains.rendering.services import RenderPipeline, registry

router = APIRouter(tags=["render"])


@router.post("/render", response_model=RenderResponse)
async def render_markdown(request: RenderRequest):
    """Рендер Markdown без сессии"""
    pipeline = RenderPipeline(registry)

    try:
        outcome = await pipeline.render(request.content)
    except MarkdownPagesError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.describe()
        )

    body = outcome.to_dict()
    if isinstance(outcome, Success) and request.highlight:
        body["html"] = DisplaySurface(registry.highlighter.service).attach(outcome.html)
    return RenderResponse(**body)


@router.get("/highlight.css")
async def highlight_stylesheet():
    """Стили подсветки кода для выбранной темы pygments"""
    highlighter = await registry.highlighter.wait()
    return Response(
        content=highlighter.stylesheet(),
        media_type="text/css",
        headers={"X-Highlight-Style": settings.highlight_style}
    )
