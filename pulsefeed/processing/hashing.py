"""Content fingerprinting for news items."""

import hashlib


def generate_hash(title: str, url: str) -> str:
    """Return the SHA-256 hex digest of ``title + url``.

    The digest is the natural key of a news item: the same story published
    by two sources under the same title and link collapses to one row.

    Raises:
        TypeError: If either argument is not a string
    """
    if not isinstance(title, str) or not isinstance(url, str):
        raise TypeError(
            f"title and url must be str, got {type(title).__name__} and {type(url).__name__}"
        )
    return hashlib.sha256((title + url).encode("utf-8")).hexdigest()
