"""Upstream HTTP access with retry and exponential backoff."""

from marketdesk.fetch.fetcher import BROWSER_HEADERS, ResilientFetcher, backoff_schedule

__all__ = ["BROWSER_HEADERS", "ResilientFetcher", "backoff_schedule"]
