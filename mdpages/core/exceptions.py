class MarkdownPagesError(Exception):
    """Базовая ошибка приложения"""

    prefix = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def describe(self) -> str:
        """Текст ошибки в том виде, в котором его видит пользователь"""
        return f"{self.prefix}: {self.detail}"


class ParseFailure(MarkdownPagesError):
    """Парсер Markdown упал или вернул не строку"""

    prefix = "markdown render error"


class SanitizeFailure(MarkdownPagesError):
    """Санитайзер нарушил контракт и выбросил исключение"""

    prefix = "sanitize error"


class DecodeError(MarkdownPagesError, ValueError):
    """Токен из ссылки не удалось раскодировать"""

    prefix = "share token decode error"


class ServiceUnavailable(MarkdownPagesError):
    """Тяжелый сервис не удалось загрузить"""

    prefix = "service unavailable"


class RuntimeFault(MarkdownPagesError):
    """Любая другая необработанная ошибка"""

    prefix = "runtime error"

    @classmethod
    def from_exception(cls, exc: BaseException) -> "RuntimeFault":
        if isinstance(exc, RuntimeFault):
            return exc
        name = exc.__class__.__name__
        message = str(exc)
        return cls(f"{name}: {message}" if message else name)


def describe_fault(exc: BaseException) -> str:
    """Единый текст ошибки для состояния ERROR, независимо от источника"""
    if isinstance(exc, MarkdownPagesError):
        return exc.describe()
    return RuntimeFault.from_exception(exc).describe()
