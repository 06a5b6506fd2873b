from mdpages.domains.sharing.services import SHARE_PARAM, build_share_url, decode, encode
from mdpages.domains.sharing.schemas import ShareRequest, ShareResponse

__all__ = [
    "SHARE_PARAM", "build_share_url", "decode", "encode",
    "ShareRequest", "ShareResponse"
]
