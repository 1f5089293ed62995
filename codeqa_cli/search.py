"""Linear, case-insensitive full-text search over a corpus."""

from __future__ import annotations

from typing import List, Optional

from .models import FileCorpus, SearchHit, SearchMatch


def search(corpus: FileCorpus, query: str, limit: Optional[int] = None) -> List[SearchHit]:
    """Return every line containing ``query``, grouped by file in corpus order.

    A blank query matches nothing. ``limit`` caps the number of files returned.
    """
    if not query or not query.strip():
        return []

    needle = query.lower()
    results: List[SearchHit] = []
    for path, content in corpus.items():
        matches = tuple(
            SearchMatch(line_number=index, line=line.rstrip())
            for index, line in enumerate(content.split("\n"), start=1)
            if needle in line.lower()
        )
        if matches:
            results.append(SearchHit(path=path, matches=matches))
            if limit is not None and len(results) >= limit:
                break
    return results


def count_matches(hits: List[SearchHit]) -> int:
    return sum(len(hit.matches) for hit in hits)
