from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_title: str = "MarkdownPages"
    log_level: str = "INFO"

    # Внешний адрес для ссылок; если пусто, берется base_url запроса
    public_origin: Optional[str] = None

    # Ограничения рендера
    math_max_span: int = 1000
    markdown_allow_html: bool = True

    # Стиль pygments для подсветки кода
    highlight_style: str = "monokai"

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
