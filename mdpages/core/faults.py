import asyncio
import logging
import threading
from typing import Callable, Coroutine, List, Optional, Set

from mdpages.core.exceptions import RuntimeFault, describe_fault

logger = logging.getLogger(__name__)


class FaultHook:
    """Процессная точка подписки на необработанные ошибки.

    Хук ставится на текущий event loop и на ``threading.excepthook``, когда
    подписывается первый репортер, и снимается, когда уходит последний.
    Предыдущие обработчики при снятии восстанавливаются.
    """

    def __init__(self):
        self._reporters: List["FaultReporter"] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous_loop_handler = None
        self._previous_thread_hook = None

    @property
    def installed(self) -> bool:
        return self._loop is not None

    @property
    def subscribers(self) -> int:
        return len(self._reporters)

    def subscribe(self, reporter: "FaultReporter") -> None:
        """Подписка репортера; первый подписчик устанавливает хук"""
        loop = asyncio.get_running_loop()
        if self.installed and self._loop is not loop:
            # Старый loop уже не обслуживает запросы
            self._uninstall()
        if not self.installed:
            self._install(loop)
        if reporter not in self._reporters:
            self._reporters.append(reporter)

    def unsubscribe(self, reporter: "FaultReporter") -> None:
        """Отписка репортера; последний подписчик снимает хук"""
        if reporter in self._reporters:
            self._reporters.remove(reporter)
        if not self._reporters and self.installed:
            self._uninstall()

    def dispatch(self, exc: BaseException, owner: Optional[asyncio.Future] = None) -> None:
        """Передача ошибки владельцу задачи или, если владельца нет, всем подписчикам"""
        targets = [r for r in self._reporters if owner is not None and r.owns(owner)]
        if not targets:
            targets = list(self._reporters)
        if not targets:
            logger.error(f"Unhandled fault with no subscribers: {exc!r}")
            return
        for reporter in targets:
            reporter.report(exc)

    def _install(self, loop: asyncio.AbstractEventLoop) -> None:
        self._previous_loop_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._handle_loop_fault)
        self._previous_thread_hook = threading.excepthook
        threading.excepthook = self._handle_thread_fault
        self._loop = loop
        logger.info("Fault hook installed")

    def _uninstall(self) -> None:
        if not self._loop.is_closed():
            self._loop.set_exception_handler(self._previous_loop_handler)
        threading.excepthook = self._previous_thread_hook
        self._loop = None
        self._previous_loop_handler = None
        self._previous_thread_hook = None
        logger.info("Fault hook removed")

    def _handle_loop_fault(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        if exc is None:
            exc = RuntimeFault(context.get("message", "unknown fault"))
        owner = context.get("task") or context.get("future")
        self.dispatch(exc, owner)

    def _handle_thread_fault(self, args) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.error(f"Thread fault after hook removal: {args.exc_value!r}")
            return
        loop.call_soon_threadsafe(self.dispatch, args.exc_value, None)


fault_hook = FaultHook()


class FaultReporter:
    """Сводит ошибки рендера и необработанные ошибки в один колбэк ``on_fault``.

    Колбэк получает только готовый текст ошибки, поэтому вызывающему коду не
    нужно различать, откуда она пришла.
    """

    def __init__(self, on_fault: Callable[[str], None], hook: Optional[FaultHook] = None):
        self._on_fault = on_fault
        self._hook = hook or fault_hook
        self._tasks: Set[asyncio.Task] = set()
        self.attached = False

    def attach(self) -> None:
        self._hook.subscribe(self)
        self.attached = True

    def detach(self) -> None:
        self._hook.unsubscribe(self)
        self.attached = False

    def owns(self, future: asyncio.Future) -> bool:
        return future in self._tasks

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """Запуск задачи, ошибки которой придут в этот репортер"""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def report(self, exc: BaseException) -> None:
        detail = describe_fault(exc)
        logger.error(f"Fault reported: {detail}")
        self._on_fault(detail)

    async def close(self) -> None:
        """Отмена незавершенных задач и отписка от хука"""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        if self.attached:
            self.detach()

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.report(exc)
