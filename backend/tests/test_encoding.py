"""Tests for linkmeta.services.encoding: charset detection and safe decoding."""

import codecs

import pytest

from linkmeta.services.encoding import (
    charset_from_content_type,
    decode_body,
    normalize_charset,
    resolve_encoding,
    sniff_meta_charset,
)


class TestNormalizeCharset:
    def test_aliases(self):
        assert normalize_charset("UTF8") == "utf-8"
        assert normalize_charset("Shift-JIS") == "shift_jis"
        assert normalize_charset("windows-31j") == "shift_jis"
        assert normalize_charset("ks_c_5601-1987") == "euc_kr"
        assert normalize_charset("'EUC-JP'") == "euc_jp"

    def test_latin1_labels_decode_as_cp1252(self):
        assert normalize_charset("ISO-8859-1") == "cp1252"

    def test_python_known_codec(self):
        assert normalize_charset("koi8-r") == codecs.lookup("koi8-r").name

    @pytest.mark.parametrize("label", ["undefined", "idna", "base64", "rot13"])
    def test_codecs_unusable_for_html_rejected(self, label):
        assert normalize_charset(label) is None

    def test_unknown_label(self):
        assert normalize_charset("utf-nine") is None
        assert normalize_charset("") is None
        assert normalize_charset(None) is None


class TestContentTypeCharset:
    def test_parameter(self):
        assert charset_from_content_type("text/html; charset=Big5") == "big5"

    def test_quoted_parameter(self):
        assert charset_from_content_type('text/html; charset="gb2312"') == "gb2312"

    def test_missing(self):
        assert charset_from_content_type("text/html") is None
        assert charset_from_content_type(None) is None


class TestSniffMetaCharset:
    def test_meta_charset(self):
        assert sniff_meta_charset(b'<html><head><meta charset="euc-kr">') == "euc_kr"

    def test_http_equiv(self):
        head = b'<meta http-equiv="Content-Type" content="text/html; charset=Shift_JIS">'
        assert sniff_meta_charset(head) == "shift_jis"

    def test_none_declared(self):
        assert sniff_meta_charset(b"<html><head><title>x</title>") is None


class TestResolveEncoding:
    def test_header_wins_over_meta(self):
        body = b'<meta charset="shift_jis">'
        assert resolve_encoding("text/html; charset=utf-8", body) == "utf-8"

    def test_unrecognized_header_falls_through_to_meta(self):
        body = b'<meta charset="iso-8859-1">'
        assert resolve_encoding("text/html; charset=bogus", body) == "cp1252"

    def test_bom(self):
        assert resolve_encoding("text/html; charset=gbk", codecs.BOM_UTF8 + b"<html>") == "utf-8-sig"

    def test_unusable_header_charset_ignored(self):
        body = b"<html><head><title>Real Title</title></head></html>"
        assert resolve_encoding("text/html; charset=undefined", body) == "utf-8"
        assert resolve_encoding("text/html; charset=idna", body) == "utf-8"

    def test_default_utf8(self):
        assert resolve_encoding("text/html", b"<html></html>") == "utf-8"

    def test_sniff_window_is_respected(self):
        body = b" " * 100 + b'<meta charset="big5">'
        assert resolve_encoding(None, body, sniff_bytes=50) == "utf-8"


class TestDecodeBody:
    def test_latin1_round_trip(self):
        assert decode_body("Café Über".encode("latin-1"), "cp1252") == "Café Über"

    def test_shift_jis(self):
        assert decode_body("作者：山田".encode("shift_jis"), "shift_jis") == "作者：山田"

    def test_invalid_sequences_replaced(self):
        assert decode_body(b"ok \xff\xfe", "utf-8").startswith("ok ")

    def test_unknown_encoding_falls_back(self):
        assert decode_body("héllo".encode("utf-8"), "no-such-codec") == "héllo"

    def test_unusable_codec_falls_back(self):
        assert decode_body("héllo".encode("utf-8"), "undefined") == "héllo"
        assert decode_body("héllo".encode("utf-8"), "idna") == "héllo"
