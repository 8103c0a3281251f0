"""
Unit Tests for Content Hashing
==============================
"""

import pytest

from pulsefeed.database.models import CanonicalNewsItem, Vertical
from pulsefeed.processing.hashing import generate_hash


class TestGenerateHash:
    """Test SHA-256 fingerprinting of title + url."""

    def test_known_digest(self):
        # sha256("abc")
        assert generate_hash("a", "bc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_deterministic_and_fixed_length(self):
        first = generate_hash("Fed cuts rates", "https://x/a")
        second = generate_hash("Fed cuts rates", "https://x/a")

        assert first == second
        assert len(first) == 64
        assert all(c in "0123456789abcdef" for c in first)

    def test_hash_depends_only_on_title_and_url(self):
        crypto = CanonicalNewsItem(
            source="CoinDesk", vertical=Vertical.CRYPTO, title="Fed cuts rates", url="https://x/a"
        )
        stocks = CanonicalNewsItem(
            source="Reuters", vertical=Vertical.STOCKS, title="Fed cuts rates", url="https://x/a",
            content="different body",
        )

        assert crypto.hash == stocks.hash == generate_hash("Fed cuts rates", "https://x/a")

    def test_different_inputs_differ(self):
        assert generate_hash("Title", "https://x/a") != generate_hash("Title", "https://x/b")

    def test_unicode_is_utf8_encoded(self):
        digest = generate_hash("Bitcoin durchbricht 100.000 €", "https://x/ü")
        assert len(digest) == 64

    @pytest.mark.parametrize("title,url", [(None, "https://x"), ("title", 42), (b"t", "u")])
    def test_non_string_input_raises(self, title, url):
        with pytest.raises(TypeError):
            generate_hash(title, url)
