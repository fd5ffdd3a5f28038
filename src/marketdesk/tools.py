"""Tool catalogue and the text-only operation boundary.

Every tool call returns a string. Failures of any kind come back as text
starting with ``Error:`` so tool-calling clients always get content.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from marketdesk.exceptions import MarketDataError
from marketdesk.logging import get_logger, tool_context
from marketdesk.periods import VALID_INTERVALS, VALID_PERIODS
from marketdesk.service import DEFAULT_INDICES, MarketDataService

logger = get_logger(__name__)

SYMBOL_DESCRIPTION = "Stock ticker symbol (e.g., AAPL, MSFT, TSLA)"

Region = Literal["US", "GB", "AU", "CA", "IN", "FR", "DE", "HK", "IT", "ES", "BR", "MX", "SG", "JP"]
Language = Literal[
    "en-US", "en-GB", "en-AU", "en-CA", "en-IN", "fr-FR", "de-DE",
    "zh-HK", "it-IT", "es-ES", "pt-BR", "es-MX", "en-SG", "ja-JP",
]
ScreenerCriteria = Literal[
    "day_gainers",
    "day_losers",
    "most_actives",
    "most_shorted_stocks",
    "undervalued_large_caps",
    "aggressive_small_caps",
    "conservative_foreign_funds",
    "growth_technology_stocks",
    "high_yield_bond",
    "portfolio_anchors",
    "solid_large_growth_funds",
    "solid_midcap_growth_funds",
    "top_mutual_funds",
    "undervalued_growth_stocks",
]


class QuoteArgs(BaseModel):
    symbol: str = Field(description=SYMBOL_DESCRIPTION)


class MarketDataArgs(BaseModel):
    indices: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INDICES),
        description="List of index symbols to fetch (e.g., ^GSPC for S&P 500, ^DJI for Dow Jones)",
    )


class SeriesArgs(BaseModel):
    # Plain strings: the service validates the vocabulary so the error lists valid values
    symbol: str = Field(description=SYMBOL_DESCRIPTION)
    period: str = Field(default="1mo", description=f"Time period ({', '.join(VALID_PERIODS)})")
    interval: str = Field(default="1d", description=f"Data interval ({', '.join(VALID_INTERVALS)})")


class SearchArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(description="Search query (e.g., 'Apple', 'Tesla', 'S&P 500')")
    quotes_count: int = Field(default=10, ge=0, alias="quotesCount", description="Number of quotes to return")
    news_count: int = Field(default=0, ge=0, alias="newsCount", description="Number of news items to return")


class AutocompleteArgs(BaseModel):
    query: str = Field(description="Search query for autocomplete suggestions")


class TrendingArgs(BaseModel):
    count: int = Field(default=10, ge=1, description="Number of trending items to return")
    region: Region = Field(default="US", description="Region to get trending symbols for")
    lang: Language = Field(default="en-US", description="Language for the response")


class ScreenerArgs(BaseModel):
    criteria: ScreenerCriteria = Field(description="Screening criteria (e.g., 'day_gainers', 'most_actives')")
    count: int = Field(default=50, ge=1, description="Maximum number of results to return")


@dataclass(frozen=True)
class ToolSpec:
    """A callable tool: name, description, argument model and handler."""

    name: str
    description: str
    args_model: type[BaseModel]
    handler: Callable[[MarketDataService, Any], Awaitable[str]]

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.args_model.model_json_schema(),
        }


TOOLS: dict[str, ToolSpec] = {
    tool.name: tool
    for tool in (
        ToolSpec(
            name="yahoo_stock_quote",
            description="Get current stock quote information from Yahoo Finance",
            args_model=QuoteArgs,
            handler=lambda svc, args: svc.stock_quote(args.symbol),
        ),
        ToolSpec(
            name="yahoo_market_data",
            description="Get current market data from Yahoo Finance",
            args_model=MarketDataArgs,
            handler=lambda svc, args: svc.market_overview(args.indices),
        ),
        ToolSpec(
            name="yahoo_stock_history",
            description="Get historical stock data from Yahoo Finance",
            args_model=SeriesArgs,
            handler=lambda svc, args: svc.stock_history(args.symbol, args.period, args.interval),
        ),
        ToolSpec(
            name="yahoo_chart",
            description="Get chart data for a stock from Yahoo Finance",
            args_model=SeriesArgs,
            handler=lambda svc, args: svc.chart(args.symbol, args.period, args.interval),
        ),
        ToolSpec(
            name="yahoo_search",
            description="Search for stocks, ETFs, mutual funds, and other securities on Yahoo Finance",
            args_model=SearchArgs,
            handler=lambda svc, args: svc.search(args.query, args.quotes_count, args.news_count),
        ),
        ToolSpec(
            name="yahoo_autoc",
            description="Get autocomplete suggestions from Yahoo Finance",
            args_model=AutocompleteArgs,
            handler=lambda svc, args: svc.autocomplete(args.query),
        ),
        ToolSpec(
            name="yahoo_trending",
            description="Get trending stocks and market movers from Yahoo Finance",
            args_model=TrendingArgs,
            handler=lambda svc, args: svc.trending(args.count, args.region, args.lang),
        ),
        ToolSpec(
            name="yahoo_screener",
            description="Screen stocks based on predefined criteria using Yahoo Finance",
            args_model=ScreenerArgs,
            handler=lambda svc, args: svc.screener(args.criteria, args.count),
        ),
        ToolSpec(
            name="yahoo_recommendations",
            description="Get stock recommendations and analysis from Yahoo Finance",
            args_model=QuoteArgs,
            handler=lambda svc, args: svc.recommendations(args.symbol),
        ),
    )
}


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "Invalid arguments: " + "; ".join(parts)


async def call_tool(service: MarketDataService, name: str, arguments: dict[str, Any] | None) -> str:
    """Validate ``arguments`` for tool ``name``, run it, and always return text.

    Raises:
        KeyError: ``name`` is not a registered tool.
    """
    tool = TOOLS[name]
    with tool_context(name):
        try:
            args = tool.args_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.warning("tool_invalid_arguments", error=str(e))
            return f"Error: {_validation_message(e)}"

    with tool_context(name, getattr(args, "symbol", None)):
        try:
            text = await tool.handler(service, args)
        except MarketDataError as e:
            logger.warning("tool_failed", error_type=type(e).__name__, error=str(e))
            return f"Error: {e}"
        except Exception as e:
            logger.exception("tool_crashed")
            return f"Error: {e}"
        logger.info("tool_completed", chars=len(text))
        return text
