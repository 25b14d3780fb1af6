"""
second-brain: semantic indexing and retrieval over a local codebase.

Turns text files into chunked embedding vectors stored in SQLite, and
answers nearest-neighbour and recency queries over them. Exposed to MCP
clients through ``second_brain.server``.
"""

from __future__ import annotations

__version__ = "1.0.0"
