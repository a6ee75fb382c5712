"""
Tests for normalize.py - identifier/name normalization and digests.
"""

import hashlib

from docverify.normalize import (
    digest,
    identifier_digest,
    mask_identifier,
    normalize_identifier,
    normalize_name,
    normalize_text,
)


class TestNormalizeIdentifier:
    def test_strips_whitespace_and_uppercases(self):
        assert normalize_identifier(" abcde 1234 f ") == "ABCDE1234F"

    def test_strips_separators(self):
        assert normalize_identifier("27/ab-12.c") == "27AB12C"

    def test_none_and_empty(self):
        assert normalize_identifier(None) == ""
        assert normalize_identifier("   ") == ""

    def test_idempotent(self):
        once = normalize_identifier(" ab-12 x ")
        assert normalize_identifier(once) == once


class TestNormalizeName:
    def test_folds_case_and_whitespace(self):
        assert normalize_name("  Ravi   KUMAR ") == "ravi kumar"

    def test_drops_diacritics(self):
        assert normalize_name("José Müller") == "jose muller"

    def test_idempotent(self):
        once = normalize_name("  Ánne  Marie ")
        assert normalize_name(once) == once

    def test_none(self):
        assert normalize_name(None) == ""
        assert normalize_text(None) == ""


class TestDigest:
    def test_sha256_hex(self):
        assert digest("AB12") == hashlib.sha256(b"AB12").hexdigest()
        assert len(digest("AB12")) == 64

    def test_equivalent_identifiers_share_digest(self):
        """Formatting noise must not change the digest."""
        assert identifier_digest(" ab-12 ") == identifier_digest("AB12")

    def test_empty_identifier_has_no_digest(self):
        assert identifier_digest("") == ""
        assert identifier_digest(None) == ""


class TestMaskIdentifier:
    def test_keeps_last_four(self):
        assert mask_identifier("1234 5678 9012") == "XXXXXXXX9012"

    def test_short_identifier_unchanged(self):
        assert mask_identifier("ab1") == "AB1"

    def test_custom_visible_and_char(self):
        assert mask_identifier("ABCDE1234F", visible=2, mask_char="*") == "********4F"

    def test_empty(self):
        assert mask_identifier(None) == ""
