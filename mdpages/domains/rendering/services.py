import asyncio
import html
import logging
import re
from typing import Any, Callable, Dict, Optional, Pattern

from mdpages.core.config import settings
from mdpages.core.exceptions import (
    MarkdownPagesError, ParseFailure, SanitizeFailure, ServiceUnavailable
)
from mdpages.domains.rendering.adapters import (
    Sanitizer, load_highlighter, load_parser, load_typesetter
)
from mdpages.domains.rendering.entities import Failure, RenderOutcome, Success

logger = logging.getLogger(__name__)


class ServiceGate:
    """Ленивая однократная загрузка одного тяжелого сервиса.

    Загрузка идет в отдельном потоке, чтобы не блокировать event loop.
    Все, кто ждет сервис, ждут одну и ту же задачу загрузки.
    """

    def __init__(self, name: str, loader: Callable[[], Any]):
        self.name = name
        self._loader = loader
        self._service: Any = None
        self._task: Optional[asyncio.Task] = None

    @property
    def ready(self) -> bool:
        return self._service is not None

    @property
    def service(self) -> Any:
        if self._service is None:
            raise ServiceUnavailable(f"{self.name} is not loaded yet")
        return self._service

    async def wait(self) -> Any:
        """Дождаться готовности сервиса, при первом вызове начав загрузку"""
        if self._service is not None:
            return self._service

        loop = asyncio.get_running_loop()
        if self._task is None or self._task.get_loop() is not loop:
            self._task = loop.create_task(self._load())
        return await asyncio.shield(self._task)

    def provide(self, service: Any) -> None:
        """Подставить готовый сервис без загрузки"""
        self._service = service

    async def _load(self) -> Any:
        try:
            service = await asyncio.to_thread(self._loader)
        except MarkdownPagesError:
            self._task = None
            raise
        except Exception as e:
            self._task = None
            raise ServiceUnavailable(f"{self.name} failed to load: {e}") from e
        self._service = service
        logger.info(f"Service {self.name} is ready")
        return service


class ServiceRegistry:
    """Реестр тяжелых сервисов рендера и их готовности"""

    def __init__(
        self,
        parser_loader: Callable[[], Any] = load_parser,
        typesetter_loader: Callable[[], Any] = load_typesetter,
        highlighter_loader: Callable[[], Any] = load_highlighter,
        sanitizer: Any = None,
    ):
        self.parser = ServiceGate("parser", parser_loader)
        self.typesetter = ServiceGate("typesetter", typesetter_loader)
        self.highlighter = ServiceGate("highlighter", highlighter_loader)
        self.sanitizer = sanitizer or Sanitizer()

    @classmethod
    def with_services(cls, parser, typesetter, highlighter, sanitizer=None) -> "ServiceRegistry":
        """Реестр с уже готовыми сервисами (удобно для тестов)"""
        registry = cls(sanitizer=sanitizer)
        registry.parser.provide(parser)
        registry.typesetter.provide(typesetter)
        registry.highlighter.provide(highlighter)
        return registry

    @property
    def gates(self):
        return (self.parser, self.typesetter, self.highlighter)

    @property
    def ready(self) -> bool:
        return all(gate.ready for gate in self.gates)

    def status(self) -> Dict[str, bool]:
        return {gate.name: gate.ready for gate in self.gates}

    async def wait_ready(self) -> None:
        """Дождаться всех трех сервисов"""
        if self.ready:
            return
        await asyncio.gather(*(gate.wait() for gate in self.gates))


def build_math_pattern(max_span: int) -> Pattern:
    """Регулярка для формул: сначала $$...$$, затем $...$.

    Формула не пересекает перевод строки и ограничена по длине, поэтому
    непарный доллар не заставляет поиск уходить в конец документа.
    """
    return re.compile(
        r"\$\$(?P<block>[^\n]{1,%d}?)\$\$|\$(?P<inline>[^\n]{0,%d}?)\$" % (max_span, max_span)
    )


def substitute_math(markup: str, typesetter, pattern: Pattern) -> str:
    """Замена формул на MathML; неудачная формула остается как есть"""

    def replace(match):
        display = match.group("block") is not None
        expr = match.group("block") if display else match.group("inline")
        try:
            return typesetter.typeset(html.unescape(expr), display=display)
        except Exception as e:
            logger.debug(f"Math typesetting failed for {match.group(0)!r}: {e}")
            return match.group(0)

    return pattern.sub(replace, markup)


class RenderPipeline:
    """Конвейер рендера: parse -> формулы -> sanitize.

    Не хранит изменяемого состояния между вызовами; одинаковый текст при
    одинаковом поведении сервисов дает одинаковый результат.
    """

    def __init__(self, services: ServiceRegistry, math_max_span: Optional[int] = None):
        self.services = services
        self._math_pattern = build_math_pattern(math_max_span or settings.math_max_span)

    async def render(self, raw_text: str) -> RenderOutcome:
        """Рендер документа; ждет, пока все три тяжелых сервиса будут готовы"""
        await self.services.wait_ready()
        return self.render_now(raw_text)

    def render_now(self, raw_text: str) -> RenderOutcome:
        """Синхронный прогон стадий; сервисы уже должны быть загружены"""
        try:
            parsed = self._parse(raw_text)
        except ParseFailure as e:
            return Failure(e.describe())

        substituted = substitute_math(parsed, self.services.typesetter.service, self._math_pattern)

        try:
            sanitized = self._sanitize(substituted)
        except SanitizeFailure as e:
            return Failure(e.describe())

        return Success(html=sanitized)

    def _parse(self, raw_text: str) -> str:
        parser = self.services.parser.service
        try:
            parsed = parser.parse(raw_text)
        except Exception as e:
            raise ParseFailure(str(e) or e.__class__.__name__) from e
        if not isinstance(parsed, str):
            raise ParseFailure(f"rendered markdown is not a string ({type(parsed).__name__})")
        return parsed

    def _sanitize(self, markup: str) -> str:
        try:
            return self.services.sanitizer.sanitize(markup)
        except Exception as e:
            raise SanitizeFailure(str(e) or e.__class__.__name__) from e


registry = ServiceRegistry()
