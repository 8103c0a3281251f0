"""
Unit Tests for Content Cleaner
==============================
"""

from pulsefeed.ingestion.content_cleaner import ContentCleaner


class TestContentCleaner:
    def test_plain_text_is_unescaped(self):
        assert ContentCleaner().clean("Stocks &amp; bonds rally") == "Stocks & bonds rally"

    def test_html_reduced_to_text(self):
        raw = "<div><p>Bitcoin <em>jumps</em></p><p>after   approval</p></div>"
        assert ContentCleaner().clean(raw) == "Bitcoin jumps after approval"

    def test_dangerous_elements_removed(self):
        raw = "<p>Safe</p><script>alert('x')</script><style>p{}</style><iframe>frame</iframe>"
        assert ContentCleaner().clean(raw) == "Safe"

    def test_comments_removed(self):
        assert ContentCleaner().clean("<p>Body<!-- tracking pixel --></p>") == "Body"

    def test_empty_input(self):
        cleaner = ContentCleaner()
        assert cleaner.clean("") == ""
        assert cleaner.clean("   \n ") == ""

    def test_truncates_at_word_boundary(self):
        cleaner = ContentCleaner(max_length=20)
        result = cleaner.clean("alpha beta gamma delta epsilon")

        assert result == "alpha beta gamma..."

    def test_short_text_untouched(self):
        assert ContentCleaner(max_length=50).clean("short text") == "short text"
