from mdpages.domains.session.entities import Document, Mode
from mdpages.domains.session.schemas import (
    SessionSnapshot, WebSocketMessage, EditData, StateMessage,
    ShareUrlMessage, RejectedMessage
)
from mdpages.domains.session.services import MarkdownSession

__all__ = [
    "Document", "Mode",
    "SessionSnapshot", "WebSocketMessage", "EditData", "StateMessage",
    "ShareUrlMessage", "RejectedMessage",
    "MarkdownSession"
]
