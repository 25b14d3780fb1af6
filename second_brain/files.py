"""
File enumeration for indexing.

Walks a directory, drops paths matched by the default, configured,
``.mcpignore`` and ``.gitignore`` patterns (gitignore semantics), and reads the
remaining text files under the size limit.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

import pathspec

from second_brain.models import IndexedFile

LOG = logging.getLogger("files")

MAX_FILE_SIZE = 1024 * 1024

DEFAULT_IGNORE_PATTERNS = [
    "node_modules/",
    ".git/",
    "*.log",
    "dist/",
    "build/",
    ".next/",
    "coverage/",
    "*.lock",
    "package-lock.json",
    "yarn.lock",
    ".second-brain.yml",
]

IGNORE_FILE_NAMES = (".mcpignore", ".gitignore")

TEXT_EXTENSIONS = frozenset({
    ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".c", ".cpp", ".h",
    ".css", ".scss", ".html", ".xml", ".json", ".yaml", ".yml", ".md",
    ".txt", ".sh", ".bash", ".go", ".rs", ".rb", ".php", ".sql",
    ".graphql", ".vue", ".svelte", ".astro",
})


def is_text_file(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in TEXT_EXTENSIONS


def _read_ignore_file(path: Path) -> List[str]:
    try:
        return [line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
    except FileNotFoundError:
        return []
    except OSError as exc:
        LOG.warning("Could not read %s: %s", path, exc)
        return []


class FileEnumerator:
    """Collects indexable text files beneath a root directory."""

    def __init__(
        self,
        ignore_patterns: Optional[Iterable[str]] = None,
        max_file_size: int = MAX_FILE_SIZE,
    ) -> None:
        self._extra_patterns = list(ignore_patterns or [])
        self._max_file_size = max_file_size

    def build_spec(self, root: Path) -> pathspec.GitIgnoreSpec:
        patterns = list(DEFAULT_IGNORE_PATTERNS) + self._extra_patterns
        for name in IGNORE_FILE_NAMES:
            patterns.extend(_read_ignore_file(root / name))
        return pathspec.GitIgnoreSpec.from_lines(patterns)

    def enumerate(self, root: Path | str) -> List[IndexedFile]:
        """Return the indexable files under ``root``, sorted by relative path."""
        root = Path(root).expanduser()
        if not root.is_dir():
            raise ValueError(f"Not a directory: {root}")
        root = root.resolve()
        spec = self.build_spec(root)

        indexed: List[IndexedFile] = []
        skipped = 0
        for dirpath, dirnames, filenames in os.walk(root):
            rel_dir = Path(dirpath).relative_to(root)
            # Prune ignored directories before descending
            dirnames[:] = sorted(
                d for d in dirnames if not spec.match_file((rel_dir / d).as_posix() + "/")
            )
            for name in sorted(filenames):
                rel_path = (rel_dir / name).as_posix()
                if spec.match_file(rel_path) or not is_text_file(name):
                    continue
                record = self._read(root / rel_path)
                if record is None:
                    skipped += 1
                else:
                    indexed.append(record)

        indexed.sort(key=lambda f: Path(f.path).relative_to(root).as_posix())
        LOG.info("Enumerated %d files under %s (%d skipped)", len(indexed), root, skipped)
        return indexed

    def _read(self, full_path: Path) -> Optional[IndexedFile]:
        try:
            stats = full_path.stat()
            if stats.st_size > self._max_file_size:
                return None
            with full_path.open("r", encoding="utf-8", newline="") as handle:
                content = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            LOG.warning("Skipping %s: %s", full_path, exc)
            return None

        return IndexedFile(
            path=str(full_path),
            content=content,
            mtime=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            size=stats.st_size,
            extension=full_path.suffix,
        )
