"""FastAPI application factory exposing the tool catalogue over HTTP."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from marketdesk import __version__
from marketdesk.logging import get_logger
from marketdesk.tools import TOOLS, call_tool

logger = get_logger(__name__)

router = APIRouter()


def _text_content(text: str) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}]}


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    budget = getattr(request.app.state, "budget", None)
    remaining = budget.remaining() if budget is not None else {}
    return JSONResponse(content={"status": "ok", "version": __version__, "budget_remaining": remaining})


@router.get("/tools")
async def list_tools() -> JSONResponse:
    """Name, description and JSON schema of every tool."""
    return JSONResponse(content={"tools": [tool.schema() for tool in TOOLS.values()]})


async def _read_arguments(request: Request) -> dict[str, Any] | None:
    """Decode the request body as tool arguments; an empty body means none.

    Raises:
        ValueError: the body is not a JSON object.
    """
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        arguments = json.loads(raw)
    except ValueError as e:
        raise ValueError("request body is not valid JSON") from e
    if arguments is not None and not isinstance(arguments, dict):
        raise ValueError(f"expected a JSON object, got {type(arguments).__name__}")
    return arguments


@router.post("/tools/{name}")
async def invoke_tool(name: str, request: Request) -> JSONResponse:
    """Run a tool. Tool and argument failures still answer 200 with ``Error:`` text."""
    if name not in TOOLS:
        return JSONResponse(status_code=404, content=_text_content(f"Error: Unknown tool: {name}"))

    try:
        arguments = await _read_arguments(request)
    except ValueError as e:
        logger.warning("tool_body_rejected", tool=name, error=str(e))
        return JSONResponse(content=_text_content(f"Error: Invalid arguments: {e}"))

    text = await call_tool(request.app.state.service, name, arguments)
    return JSONResponse(content=_text_content(text))


def create_app(lifespan: Any = None) -> FastAPI:
    """Create the tool server app.

    Args:
        lifespan: Optional async context manager that wires ``app.state.service``
                  and ``app.state.budget``. Tests set them directly instead.
    """
    app = FastAPI(title="Market Data Tools", version=__version__, lifespan=lifespan)
    app.state.service = None
    app.state.budget = None
    app.include_router(router)
    return app
