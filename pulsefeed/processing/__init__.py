"""
PulseFeed Processing Module
===========================

Content hashing and the ingestion pipeline. Import the pipeline from
``pulsefeed.processing.pipeline``; this package stays import-light because
the data models depend on the hash generator.
"""

from .hashing import generate_hash

__all__ = ["generate_hash"]
