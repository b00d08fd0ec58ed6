# app/agents/prompts.py
"""
Prompt builders for every generation task.

Each builder returns the ordered message list (system first, then any history,
then the current turn). The output shape described in the prompt is a soft
contract; app.agents.validator enforces it.
"""
import json
from datetime import datetime, timezone
from typing import Any, Iterable

from app.agents.schemas import (
    DAILY_POSTS_COUNT,
    GenerationTask,
    ModelMessage,
    TaskType,
)

NEWS_ITEMS_LIMIT = 5
SIMPLE_QUERY_MAX_CHARS = 50

SYSTEM_ANALYST = (
    "You are a professional financial analyst and writer. Generate comprehensive, "
    "well-structured articles with proper formatting. Return only valid JSON."
)
SYSTEM_CUSTOM_ARTICLE = "You are a professional financial analyst. Return only valid JSON."
SYSTEM_JSON_ASSISTANT = "You are a financial assistant. Return only JSON."
SYSTEM_DAILY_POSTS = "You are a financial assistant. Always respond in JSON array format only."

SYSTEM_PORTFOLIO_EXTRACTOR = """You are a financial portfolio assistant. Your goal is to extract portfolio details from a user prompt.

Return a JSON object with the following structure:
{
  "name": "Portfolio Name",
  "description": "Portfolio Description",
  "total_investment": 10000,
  "holdings": [
    {"ticker": "AAPL", "quantity": 10, "allocation_percentage": 0, "average_price": 150.00}
  ],
  "missing_info": []
}

Rules:
1. "name" is REQUIRED. If missing, add "Portfolio name" to "missing_info".
2. If the user provides explicit holdings (e.g., "10 shares of Apple"), extract "ticker" and "quantity".
3. If the user provides THEMATIC or PERCENTAGE-based requests (e.g., "20% AI stocks"):
   a. You MUST have a "Total Investment Amount" (budget). Extract it to "total_investment".
   b. If the budget is missing, add "Total investment amount" to "missing_info".
   c. Select 3-5 representative tickers for each theme.
   d. Set "allocation_percentage" (0-100) for each ticker based on the user's request.
4. "quantity" is optional when "allocation_percentage" is provided; "average_price" is optional and will be looked up.
5. If a holding is mentioned but lacks quantity/price AND it's not a percentage request, add specific missing info.
6. If the user provides a company name, convert it to the ticker.
7. "description" is optional.
8. Return ONLY valid JSON. No markdown formatting."""


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _msgs(*pairs: tuple[str, str]) -> list[ModelMessage]:
    return [ModelMessage(role=role, content=content) for role, content in pairs]


# -------------------------
# Articles
# -------------------------
def _ticker_analysis_request(tickers: list[str]) -> str:
    return f"""
Generate a comprehensive financial analysis article for these tickers: {", ".join(tickers)}.

Requirements:
1. Create an engaging title that captures the investment opportunity or analysis focus
2. Write a compelling summary (2-3 sentences) highlighting key insights
3. Structure the article with these sections:
   - Market Overview (current market conditions affecting these stocks)
   - Company Analysis (fundamental analysis for each ticker)
   - Technical Analysis (price trends, support/resistance levels)
   - Investment Thesis (why invest/don't invest)
   - Risk Factors (key risks to consider)
   - Conclusion (final recommendation)
4. Use professional financial language but make it accessible
5. Include specific data points, metrics, and recent developments
6. Keep each section concise but informative (200-400 words per major section)
""".strip()


def _format_news_item(i: int, item: Any) -> str:
    if not isinstance(item, dict):
        return f"{i}. {item}"
    title = item.get("title") or "Untitled"
    source = item.get("source") or "unknown source"
    summary = item.get("summary") or "No summary available"
    return f"{i}. {title} ({source}) - {summary}"


def _news_summary_request(news_items: list[Any]) -> str:
    news_text = "\n".join(
        _format_news_item(i, item) for i, item in enumerate(news_items[:NEWS_ITEMS_LIMIT], start=1)
    )
    return f"""
Generate a market news summary article based on these recent financial news items:

{news_text}

Requirements:
1. Create a title that captures the main themes from today's financial news
2. Write a 2-3 sentence summary of the key market developments
3. Structure with these sections:
   - Market Headlines (top 3-4 most important stories)
   - Sector Impact (how different sectors are affected)
   - Economic Indicators (any economic data or policy news)
   - Market Sentiment (overall investor mood and implications)
   - Looking Ahead (what to watch for in coming days)
4. Focus on actionable insights for investors
5. Highlight both opportunities and risks emerging from the news
""".strip()


def _market_overview_request() -> str:
    return """
Generate a general market overview article covering current market conditions, trends, and investment opportunities.

Requirements:
1. Create an engaging title about current market conditions
2. Write a 2-3 sentence summary of current market state
3. Structure with these sections:
   - Market Performance (major indices and recent performance)
   - Sector Rotation (which sectors are leading/lagging)
   - Economic Backdrop (key economic indicators and Fed policy)
   - Investment Themes (emerging trends and opportunities)
   - Risk Assessment (current market risks and concerns)
4. Provide balanced, evidence-based analysis
""".strip()


def build_article_messages(
    article_type: TaskType,
    tickers: list[str] | None = None,
    news_items: list[Any] | None = None,
    *,
    custom_prompt: str | None = None,
    model_name: str | None = None,
    now: str | None = None,
) -> list[ModelMessage]:
    if custom_prompt:
        return _msgs(("system", SYSTEM_CUSTOM_ARTICLE), ("user", custom_prompt))

    tickers = tickers or []
    # Without tickers or news the request degrades to a general overview
    if article_type == TaskType.TICKER_ANALYSIS and tickers:
        request = _ticker_analysis_request(tickers)
    elif article_type == TaskType.NEWS_SUMMARY and news_items:
        request = _news_summary_request(news_items)
    else:
        request = _market_overview_request()

    metadata = {
        "generated_at": now or _utcnow_iso(),
        "article_version": "1.0",
        "ai_model": model_name,
    }
    user = f"""
{request}

Return the article in this exact JSON format:
{{
  "title": "Compelling article title",
  "summary": "2-3 sentence summary of key insights",
  "content": {{
    "sections": [
      {{"title": "Section Title", "content": "Detailed section content with multiple paragraphs..."}}
    ]
  }},
  "article_type": "{article_type.value}",
  "tickers": {json.dumps(tickers)},
  "tags": ["relevant", "tags", "for", "categorization"],
  "metadata": {json.dumps(metadata)}
}}

Ensure the content is professional, insightful, and provides genuine value to investors.
""".strip()
    return _msgs(("system", SYSTEM_ANALYST), ("user", user))


# -------------------------
# Portfolio sentiment
# -------------------------
def _num(v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


def invested_amount(holding: dict[str, Any]) -> float:
    if holding.get("total_invested") is not None:
        return _num(holding["total_invested"])
    return _num(holding.get("quantity")) * _num(holding.get("average_price"))


def build_sentiment_messages(portfolio_id: str, holdings: list[dict[str, Any]]) -> list[ModelMessage]:
    lines = []
    for h in holdings:
        notes = f" notes={h['notes']}" if h.get("notes") else ""
        lines.append(
            f"- {h.get('ticker') or 'UNKNOWN'}: quantity={_num(h.get('quantity')):g}, "
            f"average_price={_num(h.get('average_price')):.2f}, "
            f"total_invested={invested_amount(h):.2f}{notes}"
        )
    total_value = sum(invested_amount(h) for h in holdings)
    holdings_text = "\n".join(lines) if lines else "- (no holdings recorded)"

    user = f"""
You are a financial assistant. Return ONLY JSON (application/json).

Portfolio id: {portfolio_id}
Total market value (estimated from total_invested): {total_value:.2f}
Number of holdings: {len(holdings)}
Holdings:
{holdings_text}

Task:
- Provide an overall sentiment for this portfolio ("bullish", "neutral", or "bearish") and a 1-2 sentence justification.
- List the top 3 risks affecting this portfolio and why (each with a short explanation).
- Offer 3 concise, actionable recommendations (no marketing language).

Output only a single JSON object with these keys:
{{
  "sentiment": "string",
  "justification": "string",
  "risks": [{{"title": "string", "explanation": "string"}}],
  "recommendations": [{{"title": "string", "action": "string"}}],
  "assumptions": ["string"]
}}

Do not output any text outside the JSON object. Use short, factual sentences.
""".strip()
    return _msgs(("system", SYSTEM_JSON_ASSISTANT), ("user", user))


# -------------------------
# Ticker chat
# -------------------------
def build_chat_system_prompt(ticker: str, portfolio_id: str | None = None) -> str:
    portfolio_line = f"Portfolio: {portfolio_id}\n" if portfolio_id else ""
    return f"""You are a concise financial assistant. Be brief and to the point. Use bullet points when possible.

Ticker: {ticker}
{portfolio_line}
Guidelines:
- Keep responses under 3 sentences when possible
- Use bullet points for multiple items
- Skip unnecessary introductions
- Focus on key metrics and actions"""


def build_chat_messages(
    ticker: str,
    message: str,
    history: Iterable[ModelMessage | dict] | None = None,
    portfolio_id: str | None = None,
) -> list[ModelMessage]:
    messages = [ModelMessage(role="system", content=build_chat_system_prompt(ticker, portfolio_id))]
    for turn in history or []:
        messages.append(turn if isinstance(turn, ModelMessage) else ModelMessage.model_validate(turn))
    messages.append(ModelMessage(role="user", content=message))
    return messages


def is_simple_query(message: str) -> bool:
    lowered = message.lower()
    return (
        len(message.strip()) < SIMPLE_QUERY_MAX_CHARS
        and "analyze" not in lowered
        and "compare" not in lowered
    )


# -------------------------
# Daily posts
# -------------------------
def build_daily_posts_messages(count: int = DAILY_POSTS_COUNT) -> list[ModelMessage]:
    user = f"""
Generate {count} stock news updates.
Each item must strictly follow this schema:

[
  {{
    "ticker": "AAPL",
    "content": "Apple announced a new iPhone today...",
    "post_type": "UPDATE"
  }}
]

Rules:
- Return ONLY valid JSON, no explanations.
- Return EXACTLY {count} objects in the array, no more, no less.
- Tickers must be real (AAPL, TSLA, MSFT, AMZN, NVDA, etc).
- Each content must be 1 to 3 sentences max.
- Do not include markdown fences (like ```json).
""".strip()
    return _msgs(("system", SYSTEM_DAILY_POSTS), ("user", user))


# -------------------------
# Portfolio extraction
# -------------------------
def build_portfolio_extraction_messages(prompt: str) -> list[ModelMessage]:
    return _msgs(("system", SYSTEM_PORTFOLIO_EXTRACTOR), ("user", prompt))


# -------------------------
# Dispatch
# -------------------------
def build_messages(task: GenerationTask) -> list[ModelMessage]:
    p = task.parameters
    t = task.task_type

    if t in (TaskType.TICKER_ANALYSIS, TaskType.NEWS_SUMMARY, TaskType.MARKET_OVERVIEW):
        return build_article_messages(
            t,
            p.get("tickers"),
            p.get("news_items"),
            custom_prompt=p.get("custom_prompt"),
            model_name=p.get("model_name"),
            now=p.get("now"),
        )
    if t == TaskType.PORTFOLIO_SENTIMENT:
        return build_sentiment_messages(str(p.get("portfolio_id", "")), p.get("holdings") or [])
    if t == TaskType.TICKER_CHAT:
        return build_chat_messages(p["ticker"], p["message"], p.get("history"), p.get("portfolio_id"))
    if t == TaskType.DAILY_POSTS:
        return build_daily_posts_messages(p.get("count", DAILY_POSTS_COUNT))
    if t == TaskType.PORTFOLIO_EXTRACTION:
        return build_portfolio_extraction_messages(p["prompt"])
    raise ValueError(f"Unsupported task type: {t}")


def generation_params(task: GenerationTask) -> dict[str, Any]:
    """Sampling parameters per task; unset values fall back to the provider defaults."""
    t = task.task_type
    if t in (TaskType.TICKER_ANALYSIS, TaskType.NEWS_SUMMARY, TaskType.MARKET_OVERVIEW):
        return {"max_tokens": 4000, "temperature": 0.7}
    if t == TaskType.TICKER_CHAT:
        simple = is_simple_query(task.parameters.get("message", ""))
        return {
            "max_tokens": 150 if simple else 350,
            "temperature": 0.3 if simple else 0.7,
            # Stop on double newlines or double spaces to keep replies short
            "stop": ["\n\n", "  "],
        }
    return {}
