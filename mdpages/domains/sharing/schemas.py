from pydantic import BaseModel, Field


class ShareRequest(BaseModel):
    """Схема запроса на создание ссылки"""
    content: str = Field(default="", max_length=1000000)


class ShareResponse(BaseModel):
    """Схема ответа со ссылкой на документ"""
    token: str
    url: str
