"""Подставные сервисы рендера для тестов"""

import asyncio

from mdpages.domains.rendering.services import RenderPipeline, ServiceRegistry


class FakeParser:
    """Парсер, который заворачивает текст в <p> или падает по требованию"""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def parse(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return f"<p>{text}</p>"


class FakeTypesetter:
    """Верстка формул: падает на выражениях из ``bad``"""

    def __init__(self, bad=(), output=None):
        self.bad = set(bad)
        self.output = output
        self.calls = []

    def typeset(self, expr, display=False):
        self.calls.append((expr, display))
        if expr in self.bad:
            raise ValueError(f"cannot typeset {expr!r}")
        if self.output is not None:
            return self.output
        mode = "block" if display else "inline"
        return f'<math display="{mode}"><mi>{expr}</mi></math>'


class FakeHighlighter:
    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    def highlight(self, node):
        self.calls += 1
        if self.error is not None:
            raise self.error
        node["data-highlighted"] = "yes"


class FailingSanitizer:
    def sanitize(self, markup):
        raise RuntimeError("sanitizer exploded")


def make_pipeline(parser=None, typesetter=None, highlighter=None, sanitizer=None):
    registry = ServiceRegistry.with_services(
        parser or FakeParser(),
        typesetter or FakeTypesetter(),
        highlighter or FakeHighlighter(),
        sanitizer=sanitizer,
    )
    return RenderPipeline(registry)


def run(coro):
    return asyncio.run(coro)


