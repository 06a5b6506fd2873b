from enum import Enum


class Mode(Enum):
    """Режим сессии"""
    EDITING = "editing"
    VIEWING = "viewing"
    ERROR = "error"


class Document:
    """Документ сессии: только исходный Markdown"""

    def __init__(self, raw_text: str = ""):
        self.raw_text = raw_text

    def replace(self, new_text: str) -> None:
        """Замена содержимого целиком"""
        self.raw_text = new_text

    def __repr__(self) -> str:
        return f"Document(length={len(self.raw_text)})"
