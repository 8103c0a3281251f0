"""
PulseFeed AI Module
===================

Groq-backed sentiment, price impact and summary analysis of articles.
"""

from .groq_analyzer import GroqAnalyzer, parse_analysis_response

__all__ = ["GroqAnalyzer", "parse_analysis_response"]
