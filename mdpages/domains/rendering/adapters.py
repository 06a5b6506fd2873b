"""
Адаптеры внешних библиотек рендера.

Каждый тяжелый сервис (парсер Markdown, верстка формул, подсветка кода)
импортируется лениво внутри своей функции ``load_*``, чтобы импорт модуля
ничего не стоил. Санитайзер легкий и создается сразу.
"""

import importlib
import logging
from typing import Any, Dict, List

import bleach
from bs4 import BeautifulSoup

from mdpages.core.config import settings
from mdpages.core.exceptions import ServiceUnavailable

logger = logging.getLogger(__name__)


def _import(module: str) -> Any:
    try:
        return importlib.import_module(module)
    except ImportError as exc:
        raise ServiceUnavailable(f"missing dependency '{module}'") from exc


class MarkdownParser:
    """Markdown -> HTML через markdown-it-py"""

    def __init__(self, allow_html: bool = True):
        markdown_it = _import("markdown_it")
        self._md = markdown_it.MarkdownIt(
            "commonmark",
            {"html": allow_html, "linkify": False, "typographer": False},
        ).enable(["table", "strikethrough"])

    def parse(self, text: str) -> str:
        return self._md.render(text)


class MathTypesetter:
    """LaTeX -> MathML через latex2mathml"""

    def __init__(self):
        self._converter = _import("latex2mathml.converter")

    def typeset(self, expr: str, display: bool = False) -> str:
        return self._converter.convert(expr, display="block" if display else "inline")


class CodeHighlighter:
    """Подсветка блоков кода через pygments.

    Работает с уже вставленным в страницу узлом ``<code>`` (bs4 Tag) и
    заменяет его содержимое размеченным HTML. Повторный вызов на том же
    узле ничего не делает.
    """

    marker = "data-highlighted"

    def __init__(self, style: str = "monokai"):
        self._pygments = _import("pygments")
        self._lexers = _import("pygments.lexers")
        self._util = _import("pygments.util")
        formatters = _import("pygments.formatters")
        self.formatter = formatters.HtmlFormatter(nowrap=True, style=style)

    def stylesheet(self, selector: str = ".hljs") -> str:
        return self.formatter.get_style_defs(selector)

    def highlight(self, node) -> None:
        if node.get(self.marker) == "yes":
            return
        code = node.get_text()
        lexer = self._lexer_for(node, code)
        marked = self._pygments.highlight(code, lexer, self.formatter)
        fragment = BeautifulSoup(marked, "html.parser")
        node.clear()
        for child in list(fragment.contents):
            node.append(child)
        classes = node.get("class", [])
        if "hljs" not in classes:
            node["class"] = classes + ["hljs"]
        node[self.marker] = "yes"

    def _lexer_for(self, node, code: str):
        language = None
        for css_class in node.get("class", []):
            if css_class.startswith("language-"):
                language = css_class[len("language-"):]
                break
        try:
            if language:
                return self._lexers.get_lexer_by_name(language)
            return self._lexers.guess_lexer(code)
        except self._util.ClassNotFound:
            return self._lexers.TextLexer()


# Теги и атрибуты, которые переживают санитайзер.
# MathML нужен для формул, class на code и span для подсветки.
ALLOWED_TAGS: List[str] = [
    "a", "abbr", "b", "blockquote", "br", "code", "del", "div", "em", "h1",
    "h2", "h3", "h4", "h5", "h6", "hr", "i", "img", "li", "ol", "p", "pre",
    "s", "span", "strong", "sub", "sup", "table", "tbody", "td", "th",
    "thead", "tr", "ul",
    # MathML
    "math", "semantics", "annotation", "mrow", "mi", "mn", "mo", "ms",
    "mtext", "mspace", "msup", "msub", "msubsup", "mfrac", "msqrt", "mroot",
    "mover", "munder", "munderover", "mtable", "mtr", "mtd", "mstyle",
    "menclose", "mpadded", "mphantom", "merror",
]

ALLOWED_ATTRIBUTES: Dict[str, List[str]] = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title"],
    "code": ["class"],
    "span": ["class"],
    "math": ["xmlns", "display"],
    "annotation": ["encoding"],
    "mo": ["stretchy", "fence", "separator", "lspace", "rspace", "form"],
    "mstyle": ["displaystyle", "scriptlevel", "mathvariant"],
    "mi": ["mathvariant"],
    "mspace": ["width"],
    "mtable": ["columnalign", "rowspacing", "columnspacing"],
    "mfrac": ["linethickness"],
    "menclose": ["notation"],
}

ALLOWED_PROTOCOLS: List[str] = ["http", "https", "mailto"]


class Sanitizer:
    """Очистка HTML через bleach по белому списку"""

    def __init__(self):
        self._cleaner = bleach.Cleaner(
            tags=ALLOWED_TAGS,
            attributes=ALLOWED_ATTRIBUTES,
            protocols=ALLOWED_PROTOCOLS,
            strip=True,
            strip_comments=True,
        )

    def sanitize(self, markup: str) -> str:
        return self._cleaner.clean(markup)


def load_parser() -> MarkdownParser:
    logger.info("Loading markdown parser")
    return MarkdownParser(allow_html=settings.markdown_allow_html)


def load_typesetter() -> MathTypesetter:
    logger.info("Loading math typesetter")
    return MathTypesetter()


def load_highlighter() -> CodeHighlighter:
    logger.info("Loading code highlighter")
    return CodeHighlighter(style=settings.highlight_style)

