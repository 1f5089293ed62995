"""Cancellable ingestion tasks.

Only one ingestion is meaningful at a time: starting a new one cancels the
token handed to the previous one, and the acquirers poll that token between
units of work.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from .errors import IngestionCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """Thread-safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise IngestionCancelledError("Ingestion was cancelled by a newer request")


def check_cancelled(token: Optional[CancelToken]) -> None:
    if token is not None:
        token.raise_if_cancelled()


class IngestionRunner:
    """Run ingestions in the background, keeping only the latest one alive.

    Usage::

        runner = IngestionRunner()
        future = runner.submit(ingest_github_repo, url)
        result = future.result()

    ``fn`` must accept a ``cancel_token`` keyword argument.
    """

    def __init__(self, max_workers: int = 2) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="codeqa-ingest")
        self._lock = threading.Lock()
        self._current: Optional[CancelToken] = None

    @property
    def current_token(self) -> Optional[CancelToken]:
        return self._current

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        token = CancelToken()
        with self._lock:
            if self._current is not None:
                logger.debug("Cancelling previous ingestion")
                self._current.cancel()
            self._current = token
        kwargs["cancel_token"] = token
        return self._executor.submit(fn, *args, **kwargs)

    def cancel(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.cancel()
                self._current = None

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "IngestionRunner":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()
