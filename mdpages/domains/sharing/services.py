import base64
import binascii
import re

from mdpages.core.exceptions import DecodeError

SHARE_PARAM = "content"

_ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")

# base64 с URL-безопасным алфавитом; паддинг необязателен
_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]*(={0,2})")


def encode(raw_text: str) -> str:
    """Кодирование документа в токен для ссылки (UTF-8 + urlsafe base64 без паддинга)"""
    data = raw_text.encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode(token: str) -> str:
    """Точное обратное преобразование токена; при любой ошибке - DecodeError"""
    match = _TOKEN_RE.fullmatch(token)
    if match is None:
        for ch in token:
            if ch not in _ALPHABET and ch != "=":
                raise DecodeError(f"invalid character {ch!r} in share token")
        raise DecodeError("misplaced padding in share token")

    padding = match.group(1)
    body = token[:len(token) - len(padding)]
    if len(body) % 4 == 1:
        raise DecodeError(f"share token has impossible length {len(body)}")
    expected_padding = "=" * (-len(body) % 4)
    if padding and padding != expected_padding:
        raise DecodeError("share token has wrong padding")

    try:
        data = base64.urlsafe_b64decode(body + expected_padding)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"share token is not valid base64: {e}") from e

    # Лишние биты в последнем символе означают поврежденный токен
    if base64.urlsafe_b64encode(data).decode("ascii").rstrip("=") != body:
        raise DecodeError(f"share token has stray bits in its last character {body[-1]!r}")

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"share token does not contain UTF-8 text: {e.reason} at byte {e.start}") from e


def build_share_url(origin: str, raw_text: str) -> str:
    """Ссылка вида <origin>?content=<token>"""
    token = encode(raw_text)
    return f"{origin.rstrip('/')}?{SHARE_PARAM}={token}"
