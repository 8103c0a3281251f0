"""
Analysis Prompts
================

Vertical-specific prompt construction for article sentiment and impact
analysis.
"""

from typing import Optional

from ..database.models import AnalysisRequest, Vertical

PROMPT_CONTENT_CHARS = 1000

RESPONSE_SCHEMA = """{
  "sentiment": {
    "label": "bullish" | "bearish" | "neutral",
    "confidence": 0.0-1.0,
    "reasoning": "brief explanation (1 sentence)"
  },
  "price_impact": {
    "level": "critical" | "high" | "medium" | "low",
    "direction": "up" | "down" | "uncertain",
    "reasoning": "brief explanation (1 sentence)"
  },
  "summary": {
    "tldr": "2-3 sentence summary",
    "key_points": ["point 1", "point 2", "point 3"],
    "entities": ["entity1", "entity2"]
  }
}"""

VERTICAL_GUIDANCE = {
    Vertical.CRYPTO: (
        "cryptocurrency",
        "Focus on:\n"
        "- Sentiment: bullish if positive for crypto prices, bearish if negative, otherwise neutral\n"
        "- Impact: critical for regulation or major hacks, high for listings and ETF news, "
        "medium for partnerships, low for opinion pieces\n"
        "- Entities: coins, companies and protocols mentioned",
    ),
    Vertical.STOCKS: (
        "stock market",
        "Focus on:\n"
        "- Sentiment: bullish if positive for the share price, bearish if negative, otherwise neutral\n"
        "- Impact: critical for earnings surprises and major events, high for earnings or guidance, "
        "medium for analyst rating changes, low for general news\n"
        "- Entities: companies, tickers, executives and sectors mentioned",
    ),
    Vertical.SPORTS: (
        "sports betting",
        "Focus on:\n"
        "- Sentiment: bullish if favorable for betting outcomes, bearish if unfavorable, otherwise neutral\n"
        "- Impact: critical for game-changing injuries or suspensions, high for lineup changes, "
        "medium for performance trends, low for commentary\n"
        "- Entities: teams, players and leagues mentioned",
    ),
}


def build_analysis_prompt(request: AnalysisRequest, content_chars: Optional[int] = None) -> str:
    """Build the analysis prompt for one article."""
    expert, guidance = VERTICAL_GUIDANCE[request.vertical]
    if request.vertical == Vertical.STOCKS and request.ticker:
        guidance = f"Analyzing news for {request.ticker}. {guidance}"

    article_text = ""
    if request.content:
        article_text = f"\n\nArticle Content:\n{request.content[: content_chars or PROMPT_CONTENT_CHARS]}"

    return (
        f"You are an expert {expert} analyst. Analyze this news article and "
        f"provide structured JSON output.\n\n"
        f"{guidance}\n\n"
        f"Article Title: {request.title}{article_text}\n\n"
        f"Provide your analysis as a JSON object with this exact structure:\n"
        f"{RESPONSE_SCHEMA}\n\n"
        f"IMPORTANT: Respond ONLY with valid JSON. No additional text or explanation."
    )
