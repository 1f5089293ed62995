"""Validate the reasoning engine's JSON answer.

The engine is asked for::

    {
      "answer": "...",
      "references": [{"file": "...", "startLine": 1, "endLine": 2,
                      "snippet": "...", "explanation": "..."}],
      "tags": ["..."],
      "refactorSuggestion": "..." | null
    }

Models are not always obedient, so :func:`parse_answer` also accepts the
object wrapped in prose or code fences, and returns a tagged result instead of
trusting field presence.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import MalformedResponseError
from .models import Answer, Reference


class ReferencePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file: str
    start_line: Optional[int] = Field(default=None, alias="startLine")
    end_line: Optional[int] = Field(default=None, alias="endLine")
    snippet: str = ""
    explanation: str = ""

    @field_validator("start_line", "end_line", mode="before")
    @classmethod
    def _lenient_line(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("snippet", "explanation", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_reference(self) -> Reference:
        return Reference(
            file=self.file.strip().lstrip("/"),
            start_line=self.start_line,
            end_line=self.end_line,
            snippet=self.snippet,
            explanation=self.explanation,
        )


class AnswerPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    answer: str
    references: List[ReferencePayload] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    refactor_suggestion: Optional[str] = Field(default=None, alias="refactorSuggestion")

    @field_validator("references", "tags", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("refactor_suggestion", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in ("", "null", "none"):
            return None
        return value

    def to_answer(self) -> Answer:
        return Answer(
            answer=self.answer,
            references=tuple(ref.to_reference() for ref in self.references),
            tags=tuple(tag for tag in self.tags if tag),
            refactor_suggestion=self.refactor_suggestion,
        )


@dataclass(frozen=True)
class AnswerParsed:
    answer: Answer
    kind: Literal["parsed"] = "parsed"


@dataclass(frozen=True)
class AnswerRejected:
    reason: str
    raw: str
    kind: Literal["rejected"] = "rejected"


AnswerParseResult = Union[AnswerParsed, AnswerRejected]


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` substring, ignoring braces inside strings."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def _load_object(text: str) -> Optional[dict]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def parse_answer(content: str) -> AnswerParseResult:
    """Parse raw engine output into an :class:`AnswerParsed` or :class:`AnswerRejected`."""
    if not content or not content.strip():
        return AnswerRejected(reason="Empty response", raw=content or "")

    payload = _load_object(content)
    if payload is None:
        embedded = extract_json_object(content)
        if embedded is not None:
            payload = _load_object(embedded)
    if payload is None:
        return AnswerRejected(reason="Could not parse AI response as JSON", raw=content)

    try:
        model = AnswerPayload.model_validate(payload)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in exc.errors())
        return AnswerRejected(reason=f"AI response has an unexpected shape ({fields})", raw=content)
    return AnswerParsed(answer=model.to_answer())


def require_answer(result: AnswerParseResult) -> Answer:
    """Unwrap a parse result, raising :class:`MalformedResponseError` on rejection."""
    if isinstance(result, AnswerParsed):
        return result.answer
    raise MalformedResponseError(result.reason)
