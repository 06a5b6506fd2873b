from pydantic import BaseModel, Field
from typing import Literal, Optional


class RenderRequest(BaseModel):
    """Схема запроса на рендер"""
    content: str = Field(default="", max_length=1000000)
    highlight: bool = True


class RenderResponse(BaseModel):
    """Схема ответа с результатом рендера"""
    status: Literal["success", "failure"]
    html: Optional[str] = None
    detail: Optional[str] = None
