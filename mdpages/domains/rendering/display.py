import logging

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class DisplaySurface:
    """Область показа результата рендера.

    После того как HTML попал на поверхность, каждый блок ``pre > code``
    отдается подсветке. Ошибка подсветки одного блока не мешает остальным и
    не меняет результат рендера.
    """

    def __init__(self, highlighter):
        self.highlighter = highlighter
        self.html = ""
        self.highlight_failures = 0

    def attach(self, markup: str) -> str:
        self.highlight_failures = 0
        soup = BeautifulSoup(markup, "html.parser")
        blocks = soup.select("pre > code")
        if not blocks:
            # Без кода разметка остается байт в байт
            self.html = markup
            return self.html

        for node in blocks:
            try:
                self.highlighter.highlight(node)
            except Exception as e:
                self.highlight_failures += 1
                logger.warning(f"Code highlighting failed: {e}")
        self.html = str(soup)
        return self.html
