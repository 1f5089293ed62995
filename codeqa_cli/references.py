"""Map the engine's (file, line-range) claims back onto the stored source."""

from __future__ import annotations

import dataclasses
from typing import Iterable, List

from .models import FileCorpus, Reference

DEFAULT_SPAN_END = 10


def resolve_reference(corpus: FileCorpus, reference: Reference) -> Reference:
    """Attach the exact lines a reference points at.

    Unknown files are returned untouched. Line numbers are clamped into the
    file, so ``actual_start``/``actual_end`` can differ from what the engine
    claimed.
    """
    content = corpus.get(reference.file)
    if content is None:
        return reference

    lines = content.split("\n")
    start = reference.start_line or 1
    end = reference.end_line or reference.start_line or DEFAULT_SPAN_END

    actual_start = min(max(1, start), len(lines))
    actual_end = min(max(end, actual_start), len(lines))

    return dataclasses.replace(
        reference,
        lines=tuple(lines[actual_start - 1:actual_end]),
        actual_start=actual_start,
        actual_end=actual_end,
    )


def resolve_references(corpus: FileCorpus, references: Iterable[Reference]) -> List[Reference]:
    return [resolve_reference(corpus, reference) for reference in references]
