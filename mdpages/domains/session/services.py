import asyncio
import logging
import uuid
from typing import Callable, List, Optional

from mdpages.core.exceptions import DecodeError
from mdpages.core.faults import FaultHook, FaultReporter
from mdpages.domains.rendering.display import DisplaySurface
from mdpages.domains.rendering.entities import Failure, RenderOutcome
from mdpages.domains.rendering.services import RenderPipeline
from mdpages.domains.session.entities import Document, Mode
from mdpages.domains.session.schemas import SessionSnapshot
from mdpages.domains.sharing.services import build_share_url, decode

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]


class MarkdownSession:
    """Сессия одной страницы: редактирование, просмотр или ошибка.

    Переходы:
        старт без токена            -> EDITING
        старт, токен раскодирован   -> VIEWING (+ сразу рендер)
        старт, токен битый          -> ERROR
        EDITING, правка             -> EDITING (+ новый рендер)
        рендер вернул Failure       -> ERROR (до перезагрузки)
        необработанная ошибка       -> ERROR (из любого режима)

    Новая правка вытесняет результат предыдущего рендера: применяется только
    результат последнего поколения. Стадии двух рендеров не чередуются.
    """

    def __init__(
        self,
        pipeline: RenderPipeline,
        listener: Optional[Listener] = None,
        hook: Optional[FaultHook] = None,
    ):
        self.uuid = uuid.uuid4()
        self.pipeline = pipeline
        self.document = Document()
        self.mode = Mode.EDITING
        self.error: Optional[str] = None
        self.display: Optional[DisplaySurface] = None
        self.reporter = FaultReporter(self.fail, hook)
        self._listeners: List[Listener] = [listener] if listener else []
        self._generation = 0
        self._render_lock = asyncio.Lock()

    @property
    def editable(self) -> bool:
        return self.mode is Mode.EDITING

    @property
    def html(self) -> str:
        if self.mode is Mode.ERROR or self.display is None:
            return ""
        return self.display.html

    async def start(self, token: Optional[str] = None) -> None:
        """Запуск сессии; токен берется из параметра content адреса"""
        self.reporter.attach()

        if token is None:
            self.mode = Mode.EDITING
            logger.info(f"Session {self.uuid} started in editing mode")
            self._notify()
            return

        try:
            raw_text = decode(token)
        except DecodeError as e:
            logger.info(f"Session {self.uuid} got an invalid share token")
            self.fail(e.describe())
            return

        self.document.replace(raw_text)
        self.mode = Mode.VIEWING
        logger.info(f"Session {self.uuid} started in viewing mode")
        await self._render(self._next_generation(), raw_text)

    def edit(self, new_text: str) -> Optional[asyncio.Task]:
        """Правка текста; возвращает задачу рендера или None, если правка отклонена"""
        if self.mode is not Mode.EDITING:
            logger.warning(f"Session {self.uuid} rejected edit in {self.mode.value} mode")
            return None

        self.document.replace(new_text)
        generation = self._next_generation()
        return self.reporter.spawn(self._render(generation, new_text))

    def fail(self, detail: str) -> None:
        """Переход в ERROR; выхода из него нет до новой сессии"""
        if self.mode is Mode.ERROR:
            logger.error(f"Session {self.uuid} already failed, dropping: {detail}")
            return

        self.mode = Mode.ERROR
        self.error = detail
        # Рендеры в полете больше не применяются
        self._generation += 1
        logger.error(f"Session {self.uuid} entered error mode: {detail}")
        self._notify()

    def share_url(self, origin: str) -> Optional[str]:
        """Ссылка на текущий документ; доступна только в редакторе"""
        if self.mode is not Mode.EDITING:
            return None
        return build_share_url(origin, self.document.raw_text)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.uuid,
            mode=self.mode,
            editable=self.editable,
            content=self.document.raw_text,
            html=self.html,
            error=self.error,
        )

    async def close(self) -> None:
        """Завершение сессии: отмена рендеров и снятие подписки на ошибки"""
        await self.reporter.close()
        self._listeners.clear()
        logger.info(f"Session {self.uuid} closed")

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def _render(self, generation: int, raw_text: str) -> None:
        async with self._render_lock:
            if generation != self._generation:
                return

            try:
                outcome = await self.pipeline.render(raw_text)
            except Exception as e:
                self.reporter.report(e)
                return

            if generation != self._generation:
                logger.debug(f"Session {self.uuid} dropped superseded render {generation}")
                return
            self._apply(outcome)

    def _apply(self, outcome: RenderOutcome) -> None:
        if isinstance(outcome, Failure):
            self.fail(outcome.detail)
            return

        if self.display is None:
            self.display = DisplaySurface(self.pipeline.services.highlighter.service)
        self.display.attach(outcome.html)
        self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
