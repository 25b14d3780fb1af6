from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import Context, FastMCP

from second_brain.config import AppConfig
from second_brain.tools import (
    SecondBrain,
    index_directory,
    open_second_brain,
    recent_activity,
    semantic_search,
    summarize_file,
)

LOG_LEVEL = os.environ.get("SECOND_BRAIN_LOG_LEVEL", "INFO").upper()

LOG = logging.getLogger("second_brain.server")


def _validate_required(name: str, value: Optional[str]) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"Missing required field: {name}")


def _json_payload(model) -> dict:
    return model.model_dump(mode="json")


def _brain(ctx: Context) -> SecondBrain:
    return ctx.request_context.lifespan_context


def build_server(config: Optional[AppConfig] = None) -> FastMCP:
    @asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[SecondBrain]:
        async with open_second_brain(config) as brain:
            LOG.info("Index database: %s", brain.config.db_path)
            yield brain

    server = FastMCP("second-brain-mcp", lifespan=lifespan)

    @server.tool(
            name="index_directory",
            description="Index a directory for semantic search",
    )
    async def index_directory_tool(path: str, ctx: Context) -> dict:
        _validate_required("path", path)
        report = await index_directory(_brain(ctx), path)
        return _json_payload(report)

    @server.tool(
            name="semantic_search",
            description="Search indexed files semantically",
    )
    async def semantic_search_tool(query: str, ctx: Context, limit: int = 5) -> dict:
        _validate_required("query", query)
        report = await semantic_search(_brain(ctx), query, limit)
        return _json_payload(report)

    @server.tool(
            name="summarize_file",
            description="Get a size and preview summary of a file",
    )
    def summarize_file_tool(path: str) -> dict:
        _validate_required("path", path)
        return _json_payload(summarize_file(path))

    @server.tool(
            name="recent_activity",
            description="Show recent file changes",
    )
    def recent_activity_tool(ctx: Context, days: float = 7) -> dict:
        return _json_payload(recent_activity(_brain(ctx), days))

    return server


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    server = build_server(AppConfig.from_env())
    LOG.info("Second Brain MCP server running on stdio")
    server.run()


if __name__ == "__main__":
    main()
