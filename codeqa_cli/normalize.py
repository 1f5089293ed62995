"""Strip the single wrapper directory that archives and repos tend to share."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from .models import FileCorpus

logger = logging.getLogger(__name__)


def common_prefix(paths: Sequence[str]) -> str:
    """Return the leading directory segments shared by every path.

    The result includes the trailing ``/`` (``"proj/src/"``) or is empty when
    the paths do not agree on their first segment.
    """
    if not paths:
        return ""

    split_paths = [path.split("/") for path in paths]
    first = split_paths[0]
    prefix_parts = []
    for index, segment in enumerate(first[:-1]):
        if all(len(parts) > index and parts[index] == segment for parts in split_paths):
            prefix_parts.append(segment)
        else:
            break
    return "/".join(prefix_parts) + "/" if prefix_parts else ""


def normalize(raw: Mapping[str, str]) -> FileCorpus:
    """Build a corpus with the shared root directory removed from every path."""
    prefix = common_prefix(list(raw))
    if prefix:
        logger.debug("Stripping shared prefix %r", prefix)

    normalized = {}
    for path, content in raw.items():
        stripped = path[len(prefix):]
        if stripped:
            normalized[stripped] = content
    return FileCorpus(normalized)
