"""Session object coordinating ingestion, context assembly, the reasoning engine and history."""

from __future__ import annotations

import logging
import os
from typing import List, Optional

import requests

from . import config
from .answer_schema import require_answer
from .context_builder import build_context, file_manifest
from .errors import CodeQAError
from .file_tree import TreeNode, build_tree
from .ingest import ingest_source
from .llm import ReasoningEngine, create_provider
from .models import Answer, FileCorpus, IngestResult, Reference, SearchHit
from .references import resolve_reference, resolve_references
from .search import search
from .storage import HistoryStore, JsonHistoryStore, SettingsStore, TomlSettingsStore, make_entry
from .tasks import IngestionRunner

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = ("GROQ_API_KEY", "CODEQA_API_KEY")


def resolve_api_key(explicit: Optional[str] = None, settings: Optional[SettingsStore] = None) -> str:
    """Pick the API key: explicit, settings store, environment, then ``[llm] api_key``."""
    if explicit:
        return explicit
    if settings is not None:
        stored = settings.get("api_key")
        if stored:
            return str(stored)
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return config.LLM_API_KEY or ""


class CodeQASession:
    """One loaded codebase plus the services needed to ask questions about it."""

    def __init__(
        self,
        history: Optional[HistoryStore] = None,
        settings: Optional[SettingsStore] = None,
        engine: Optional[ReasoningEngine] = None,
        http: Optional[requests.Session] = None,
        runner: Optional[IngestionRunner] = None,
        api_key: Optional[str] = None,
    ):
        self.history = history if history is not None else JsonHistoryStore()
        self.settings = settings if settings is not None else TomlSettingsStore()
        self.http = http
        self.runner = runner
        self._engine = engine
        self._api_key = api_key
        self._result: Optional[IngestResult] = None

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def load(self, source: str) -> IngestResult:
        """Ingest a ZIP path or GitHub URL and make it the current codebase.

        With a runner, the ingestion runs in the background and any ingestion
        still in flight is cancelled first.
        """
        kwargs = {"session": self.http} if self.http is not None else {}
        if self.runner is not None:
            result = self.runner.submit(ingest_source, source, **kwargs).result()
        else:
            result = ingest_source(source, **kwargs)
        self._result = result
        logger.info("Loaded %s (%d files)", result.source, len(result.corpus))
        return result

    @property
    def result(self) -> IngestResult:
        if self._result is None:
            raise CodeQAError("No codebase loaded")
        return self._result

    @property
    def corpus(self) -> FileCorpus:
        return self.result.corpus

    # ------------------------------------------------------------------
    # Queries over the corpus
    # ------------------------------------------------------------------

    def context(self, max_chars: Optional[int] = None) -> str:
        return build_context(self.corpus, max_chars=max_chars)

    def manifest(self) -> List[str]:
        return file_manifest(self.corpus)

    def search(self, query: str, limit: Optional[int] = None) -> List[SearchHit]:
        return search(self.corpus, query, limit=limit)

    def tree(self) -> TreeNode:
        return build_tree(self.corpus.paths)

    def resolve(self, file: str, start_line: Optional[int] = None, end_line: Optional[int] = None) -> Reference:
        return resolve_reference(self.corpus, Reference(file=file, start_line=start_line, end_line=end_line))

    # ------------------------------------------------------------------
    # Reasoning
    # ------------------------------------------------------------------

    @property
    def engine(self) -> ReasoningEngine:
        if self._engine is None:
            provider = create_provider(
                api_key=resolve_api_key(self._api_key, self.settings),
                session=self.http,
            )
            self._engine = ReasoningEngine(provider)
        return self._engine

    def ask(self, question: str, max_chars: Optional[int] = None, save: bool = True) -> Answer:
        """Ask one question about the loaded codebase.

        Args:
            question: Natural-language question
            max_chars: Context budget (defaults to ``CONTEXT_MAX_CHARS``)
            save: Record the answer in history

        Returns:
            The validated answer with references resolved against the corpus.
        """
        question = question.strip()
        if not question:
            raise CodeQAError("Question must not be empty")

        corpus = self.corpus
        context = build_context(corpus, max_chars=max_chars)
        parsed = require_answer(self.engine.ask(question, context, file_manifest(corpus)))

        answer = Answer(
            answer=parsed.answer,
            references=tuple(resolve_references(corpus, parsed.references)),
            tags=parsed.tags,
            refactor_suggestion=parsed.refactor_suggestion,
        )
        unresolved = sum(1 for ref in answer.references if not ref.resolved)
        if unresolved:
            logger.info("%d reference(s) point at files outside the corpus", unresolved)

        if save:
            self.history.append(make_entry(question, answer, source=self.result.source))
        return answer
