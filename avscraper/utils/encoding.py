"""Character encoding detection for response bodies."""

import codecs
import logging
import re
from typing import Optional, Tuple

from charset_normalizer import from_bytes


logger = logging.getLogger(__name__)

_CHARSET_RE = re.compile(r'charset\s*=\s*["\']?([\w\-:.]+)', re.IGNORECASE)
_META_CHARSET_RE = re.compile(rb'<meta[^>]+charset\s*=\s*["\']?([\w\-:.]+)', re.IGNORECASE)

_BOMS = (
    (codecs.BOM_UTF8, 'utf-8-sig'),
    (codecs.BOM_UTF16_LE, 'utf-16'),
    (codecs.BOM_UTF16_BE, 'utf-16'),
)

# Labels servers send that Python knows under another name or that are
# supersets in practice
_ALIASES = {
    'x-sjis': 'shift_jis',
    'shift-jis': 'shift_jis',
    'sjis': 'cp932',
    'shift_jis': 'cp932',
    'gb2312': 'gb18030',
    'gbk': 'gb18030',
    'euc-jp': 'euc_jp',
}


def _lookup(label: Optional[str]) -> Optional[str]:
    if not label:
        return None
    label = _ALIASES.get(label.strip().lower(), label.strip().lower())
    try:
        return codecs.lookup(label).name
    except LookupError:
        logger.debug(f"Unknown charset label: {label}")
        return None


def charset_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """Codec name declared in a Content-Type header, if valid."""
    if not content_type:
        return None
    match = _CHARSET_RE.search(content_type)
    return _lookup(match.group(1)) if match else None


def detect_encoding(body: bytes, content_type: Optional[str] = None) -> str:
    """
    Pick the encoding of a response body.

    Order: Content-Type charset, byte order mark, ``<meta charset>`` in the
    first 4 KB, charset_normalizer heuristics, then UTF-8.

    Args:
        body: Raw response bytes
        content_type: Content-Type header value

    Returns:
        Python codec name
    """
    declared = charset_from_content_type(content_type)
    if declared:
        return declared

    for bom, name in _BOMS:
        if body.startswith(bom):
            return name

    meta = _META_CHARSET_RE.search(body[:4096])
    if meta:
        found = _lookup(meta.group(1).decode('ascii', 'ignore'))
        if found:
            return found

    if body:
        match = from_bytes(body).best()
        if match and match.encoding:
            return match.encoding

    return 'utf-8'


def decode_body(body: bytes, content_type: Optional[str] = None) -> Tuple[str, str]:
    """Decode a body; returns ``(text, encoding)``. Undecodable bytes are replaced."""
    encoding = detect_encoding(body, content_type)
    return body.decode(encoding, errors='replace'), encoding
