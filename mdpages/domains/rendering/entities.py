from dataclasses import dataclass
from typing import Any, Dict, Union


@dataclass(frozen=True)
class Success:
    """Успешный рендер: безопасный HTML"""

    html: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "success", "html": self.html}


@dataclass(frozen=True)
class Failure:
    """Неудачный рендер: текст ошибки для пользователя"""

    detail: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "failure", "detail": self.detail}


RenderOutcome = Union[Success, Failure]
