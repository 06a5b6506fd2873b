"""MarkdownPages: Markdown-страницы, которые целиком живут в адресе ссылки."""

__version__ = "1.0.0"
