"""Serialize a corpus into the character-budgeted context window."""

from __future__ import annotations

from typing import List, Optional

from . import config
from .models import FileCorpus

TRUNCATION_MARKER = "\n... [truncated]"
# Kept free after the header when the last file is cut short
HEADER_RESERVE = 100
# A truncated tail shorter than this is not worth sending
MIN_TRUNCATED_CHARS = 200


def file_header(path: str, line_count: int) -> str:
    return f"\n\n### FILE: {path} ({line_count} lines)\n"


def build_context(corpus: FileCorpus, max_chars: Optional[int] = None) -> str:
    """Concatenate files in corpus order until ``max_chars`` is reached.

    The first file that does not fit is cut to the remaining budget (minus the
    header and a small reserve) and marked as truncated; everything after it
    is dropped. When that remaining budget is 200 characters or less the file
    is dropped as well.
    """
    if max_chars is None:
        max_chars = config.CONTEXT_MAX_CHARS

    parts: List[str] = []
    chars = 0

    for path, content in corpus.items():
        header = file_header(path, len(content.split("\n")))
        entry = header + content
        if chars + len(entry) > max_chars:
            remaining = max_chars - chars - len(header) - HEADER_RESERVE
            if remaining > MIN_TRUNCATED_CHARS:
                parts.append(header + content[:remaining] + TRUNCATION_MARKER)
            break
        parts.append(entry)
        chars += len(entry)

    return "".join(parts)


def file_manifest(corpus: FileCorpus, limit: Optional[int] = None) -> List[str]:
    """First ``limit`` paths, in corpus order, for the engine's file list."""
    if limit is None:
        limit = config.MANIFEST_LIMIT
    return corpus.paths[:limit]
