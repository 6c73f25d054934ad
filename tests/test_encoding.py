"""Tests for response body encoding detection."""

import codecs

import pytest

from avscraper.utils.encoding import charset_from_content_type, decode_body, detect_encoding


class TestEncoding:
    """Test cases for encoding helpers."""

    @pytest.mark.parametrize("content_type, expected", [
        ("text/html; charset=UTF-8", "utf-8"),
        ('text/html; charset="utf-8"', "utf-8"),
        ("text/html; charset=Shift_JIS", "cp932"),
        ("text/html; charset=x-sjis", "shift_jis"),
        ("text/html; charset=gbk", "gb18030"),
        ("text/html; charset=EUC-JP", "euc_jp"),
        ("text/html", None),
        ("text/html; charset=no-such-codec", None),
        (None, None),
    ])
    def test_charset_from_content_type(self, content_type, expected):
        assert charset_from_content_type(content_type) == expected

    def test_declared_charset_wins(self):
        body = codecs.BOM_UTF8 + b"<html></html>"
        assert detect_encoding(body, "text/html; charset=cp1252") == "cp1252"

    def test_byte_order_mark(self):
        assert detect_encoding(codecs.BOM_UTF8 + "テスト".encode('utf-8')) == "utf-8-sig"
        assert detect_encoding(codecs.BOM_UTF16_LE + "テスト".encode('utf-16-le')) == "utf-16"

    def test_meta_charset(self):
        body = b'<html><head><meta charset="euc-jp"></head><body></body></html>'
        assert detect_encoding(body, "text/html") == "euc_jp"

        http_equiv = b'<meta http-equiv="Content-Type" content="text/html; charset=Shift_JIS">'
        assert detect_encoding(http_equiv) == "cp932"

    def test_empty_body_defaults_to_utf8(self):
        assert detect_encoding(b"") == "utf-8"

    def test_heuristic_detection(self):
        body = ("日本語のテキストです。" * 20).encode('utf-8')
        text, _ = decode_body(body)
        assert text == "日本語のテキストです。" * 20

    def test_decode_replaces_bad_bytes(self):
        text, encoding = decode_body(b"ok \xff", "text/plain; charset=utf-8")

        assert encoding == "utf-8"
        assert text == "ok �"
