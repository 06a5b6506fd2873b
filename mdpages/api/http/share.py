from fastapi import APIRouter, HTTPException, Query, Request, status

from mdpages.core.config import settings
from mdpages.core.exceptions import DecodeError
from mdpages.domains.rendering.services import RenderPipeline, registry
from mdpages.domains.session.schemas import SessionSnapshot
from mdpages.domains.session.services import MarkdownSession
from mdpages.domains.sharing.schemas import ShareRequest, ShareResponse
from mdpages.domains.sharing.services import build_share_url, decode, encode

router = APIRouter(tags=["share"])


@router.post("/share", response_model=ShareResponse)
async def create_share_link(share_request: ShareRequest, request: Request):
    """Создание ссылки, в которой лежит весь документ"""
    origin = settings.public_origin or str(request.base_url)
    return ShareResponse(
        token=encode(share_request.content),
        url=build_share_url(origin, share_request.content)
    )


@router.get("/view", response_model=SessionSnapshot)
async def view_shared_document(content: str = Query(..., description="Share token")):
    """Открытие документа по токену в режиме просмотра"""
    try:
        decode(content)
    except DecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.describe()
        )

    session = MarkdownSession(RenderPipeline(registry))
    try:
        await session.start(content)
        snapshot = session.snapshot()
    finally:
        await session.close()

    return snapshot
