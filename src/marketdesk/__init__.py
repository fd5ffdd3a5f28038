"""Market data tools for tool-calling assistants."""

__version__ = "0.1.0"
