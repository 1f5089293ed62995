"""Core data models shared by ingestion, search, resolution and history."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class FileCorpus(Mapping):
    """Immutable, ordered ``path -> content`` map for one ingestion.

    Iteration order is acquisition order, which is also the order used when
    assembling the context window.
    """

    __slots__ = ("_files",)

    def __init__(self, files: Mapping[str, str] | None = None) -> None:
        copied: Dict[str, str] = {}
        for path, content in (files or {}).items():
            if not path:
                raise ValueError("Corpus paths must be non-empty")
            if path.startswith("/"):
                raise ValueError(f"Corpus paths must be relative: {path}")
            copied[path] = content
        self._files = copied

    def __getitem__(self, path: str) -> str:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"FileCorpus({len(self._files)} files)"

    @property
    def paths(self) -> List[str]:
        return list(self._files)

    def line_count(self, path: str) -> int:
        return len(self._files[path].split("\n"))

    def total_chars(self) -> int:
        return sum(len(content) for content in self._files.values())


@dataclass(frozen=True)
class RepositoryMeta:
    owner: str
    repo: str
    branch: str
    root: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def html_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"

    def blob_url(self, path: str, start: int | None = None, end: int | None = None) -> str:
        """Link to a file on GitHub, optionally anchored to a line range."""
        url = f"{self.html_url}/blob/{self.branch}/{self.root}{path}"
        if start is not None:
            url += f"#L{start}"
            if end is not None and end != start:
                url += f"-L{end}"
        return url


class SkipReason(str, Enum):
    TOO_LARGE = "too_large"
    NOT_TEXT = "not_text"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class SkippedFile:
    path: str
    reason: SkipReason
    detail: str = ""


@dataclass(frozen=True)
class IngestResult:
    """Corpus of record plus diagnostics for everything that was dropped."""

    corpus: FileCorpus
    source: str
    meta: Optional[RepositoryMeta] = None
    skipped: Tuple[SkippedFile, ...] = ()

    def skipped_by_reason(self) -> Dict[SkipReason, int]:
        counts: Dict[SkipReason, int] = {}
        for item in self.skipped:
            counts[item.reason] = counts.get(item.reason, 0) + 1
        return counts


@dataclass(frozen=True)
class Reference:
    """A (file, line-range) claim made by the reasoning engine.

    ``lines``, ``actual_start`` and ``actual_end`` are only set once the
    reference has been resolved against a corpus.
    """

    file: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    snippet: str = ""
    explanation: str = ""
    lines: Optional[Tuple[str, ...]] = None
    actual_start: Optional[int] = None
    actual_end: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self.lines is not None

    @property
    def display_range(self) -> str:
        start = self.actual_start or self.start_line
        end = self.actual_end or self.end_line
        if start is None:
            return ""
        if end is None or end == start:
            return f"L{start}"
        return f"L{start}-{end}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "file": self.file,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "snippet": self.snippet,
            "explanation": self.explanation,
        }
        if self.resolved:
            data["lines"] = list(self.lines or ())
            data["actualStart"] = self.actual_start
            data["actualEnd"] = self.actual_end
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reference":
        lines = data.get("lines")
        return cls(
            file=str(data.get("file", "")),
            start_line=data.get("startLine"),
            end_line=data.get("endLine"),
            snippet=data.get("snippet") or "",
            explanation=data.get("explanation") or "",
            lines=tuple(lines) if isinstance(lines, list) else None,
            actual_start=data.get("actualStart"),
            actual_end=data.get("actualEnd"),
        )


@dataclass(frozen=True)
class Answer:
    answer: str
    references: Tuple[Reference, ...] = ()
    tags: Tuple[str, ...] = ()
    refactor_suggestion: Optional[str] = None


@dataclass(frozen=True)
class SearchMatch:
    line_number: int
    line: str


@dataclass(frozen=True)
class SearchHit:
    path: str
    matches: Tuple[SearchMatch, ...]


@dataclass
class HistoryEntry:
    id: str
    timestamp: str
    question: str
    answer: str
    references: List[Reference] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    refactor_suggestion: Optional[str] = None
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "question": self.question,
            "answer": self.answer,
            "references": [ref.to_dict() for ref in self.references],
            "tags": list(self.tags),
            "refactorSuggestion": self.refactor_suggestion,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            id=str(data["id"]),
            timestamp=str(data.get("timestamp", "")),
            question=str(data.get("question", "")),
            answer=str(data.get("answer", "")),
            references=[
                Reference.from_dict(ref)
                for ref in data.get("references") or []
                if isinstance(ref, dict)
            ],
            tags=[str(tag) for tag in data.get("tags") or []],
            refactor_suggestion=data.get("refactorSuggestion"),
            source=str(data.get("source", "")),
        )
