"""Recency queries: files modified within the last N days."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from second_brain.models import RecentFile
from second_brain.storage.vector_store import VectorStore

LOG = logging.getLogger("rag.activity")

SECONDS_PER_DAY = 86400
DEFAULT_DAYS = 7
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def recent_files(
    store: VectorStore,
    days: float = DEFAULT_DAYS,
    now: Optional[datetime] = None,
) -> List[RecentFile]:
    """Files with mtime strictly after ``now - days``, newest first."""
    if isinstance(days, bool) or not isinstance(days, (int, float)) or days < 0:
        raise ValueError(f"days must be a non-negative number, got {days!r}")

    now = now or datetime.now(timezone.utc)
    try:
        cutoff = now - timedelta(seconds=days * SECONDS_PER_DAY)
    except OverflowError:
        # Window reaches past year 1: every file qualifies
        cutoff = EARLIEST
    files = store.files_modified_after(cutoff)
    LOG.debug("%d files modified since %s", len(files), cutoff.isoformat())
    return files
