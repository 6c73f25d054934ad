"""Fetched HTTP response."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..utils.encoding import decode_body


@dataclass
class HttpResponse:
    """
    A fully read HTTP response.

    The body is kept as bytes; ``text`` decodes it once using the declared or
    detected character encoding.
    """

    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    elapsed_ms: float = 0.0
    proxy: Optional[str] = None
    _text: Optional[str] = field(default=None, init=False, repr=False, compare=False)
    _encoding: Optional[str] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.headers = {str(k).lower(): str(v) for k, v in (self.headers or {}).items()}

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get('content-type')

    @property
    def text(self) -> str:
        if self._text is None:
            self._text, self._encoding = decode_body(self.body, self.content_type)
        return self._text

    @property
    def encoding(self) -> str:
        if self._encoding is None:
            self._text, self._encoding = decode_body(self.body, self.content_type)
        return self._encoding

    def json(self) -> Any:
        return json.loads(self.text)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)
