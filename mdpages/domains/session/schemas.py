from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
import uuid

from mdpages.domains.session.entities import Mode


class SessionSnapshot(BaseModel):
    """Состояние сессии, которое видит клиент"""
    session_id: uuid.UUID
    mode: Mode
    editable: bool
    content: str
    html: str
    error: Optional[str] = None


class WebSocketMessage(BaseModel):
    """Базовая схема WebSocket сообщения"""
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class EditData(BaseModel):
    """Данные сообщения о правке текста"""
    content: str = Field(..., max_length=1000000)


class StateMessage(WebSocketMessage):
    """Схема сообщения с состоянием сессии"""
    type: str = "state"


class ShareUrlMessage(WebSocketMessage):
    """Схема сообщения со ссылкой на документ"""
    type: str = "share_url"


class RejectedMessage(WebSocketMessage):
    """Схема сообщения об отклоненном действии"""
    type: str = "rejected"
