"""Entry point for the market data tool server.

Component wiring order (in lifespan):
1. AppSettings (configuration, read in run())
2. Logging setup
3. httpx.AsyncClient (shared connection pool, closed on shutdown)
4. RequestBudget (process-wide, lives as long as the app)
5. ResilientFetcher
6. MarketDataService
"""

import asyncio
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from marketdesk.budget import RequestBudget
from marketdesk.config import AppSettings
from marketdesk.fetch.fetcher import ResilientFetcher
from marketdesk.logging import get_logger, setup_logging
from marketdesk.server import create_app
from marketdesk.service import MarketDataService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the upstream client and build the service; close the client on shutdown."""
    logger = get_logger("marketdesk.main")
    settings: AppSettings = app.state.settings

    async with httpx.AsyncClient(
        timeout=settings.fetch.timeout_seconds,
        follow_redirects=True,
    ) as client:
        budget = RequestBudget(settings.budget)
        fetcher = ResilientFetcher(client, settings.fetch)
        app.state.budget = budget
        app.state.service = MarketDataService(fetcher, budget, settings.fetch)

        logger.info(
            "lifespan_started",
            per_minute=settings.budget.per_minute,
            per_day=settings.budget.per_day,
            max_retries=settings.fetch.max_retries,
        )

        yield

    logger.info("marketdesk_stopped")


async def run() -> None:
    """Serve the tool API with uvicorn on the configured host and port."""
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("marketdesk.main")

    app = create_app(lifespan=lifespan)
    app.state.settings = settings

    logger.info("starting_server", host=settings.server.host, port=settings.server.port)

    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
