"""Source acquisition: load a ZIP archive or a public GitHub repo into a corpus.

Both strategies produce an :class:`~codeqa_cli.models.IngestResult`:

- the normalized :class:`~codeqa_cli.models.FileCorpus`
- a list of :class:`~codeqa_cli.models.SkippedFile` diagnostics for per-file
  failures (binary content, oversized files, failed fetches), which are never
  raised
- :class:`~codeqa_cli.models.RepositoryMeta` for remote repositories

Acquisition-level failures (bad URL, missing repo, rate limit, nothing left
after filtering) raise subclasses of :class:`~codeqa_cli.errors.CodeQAError`.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
import zlib
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from . import config
from .classifier import DEFAULT_CLASSIFIER, PathClassifier
from .errors import (
    EmptyCorpusError,
    InvalidArchiveError,
    InvalidUrlError,
    RateLimitedError,
    RemoteError,
    RepoNotFoundError,
)
from .models import IngestResult, RepositoryMeta, SkippedFile, SkipReason
from .normalize import common_prefix, normalize
from .tasks import CancelToken, check_cancelled

logger = logging.getLogger(__name__)

GITHUB_URL_PATTERN = re.compile(r"github\.com[:/]([^/]+)/([^/\s?#]+)")

# UTF-8 never needs more than four bytes per character
_MAX_BYTES_PER_CHAR = 4

_EntryOutcome = Tuple[str, Optional[str], Optional[SkippedFile]]


# ============================================================
# Archive strategy
# ============================================================

def sanitize_entry_name(name: str) -> Optional[str]:
    """Normalize an archive member name to a relative forward-slash path.

    Returns ``None`` for names that try to escape the archive root.
    """
    parts = [part for part in name.replace("\\", "/").split("/") if part not in ("", ".")]
    if not parts or ".." in parts:
        return None
    return "/".join(parts)


def _decode_text(data: bytes) -> Optional[str]:
    # Null byte is a strong binary indicator
    if b"\x00" in data:
        return None
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return None


def _read_entry(
    archive: zipfile.ZipFile,
    max_file_chars: int,
    cancel_token: Optional[CancelToken],
    item: Tuple[str, zipfile.ZipInfo],
) -> _EntryOutcome:
    path, info = item
    check_cancelled(cancel_token)

    if info.file_size > max_file_chars * _MAX_BYTES_PER_CHAR:
        return path, None, SkippedFile(path, SkipReason.TOO_LARGE, f"{info.file_size} bytes")

    try:
        data = archive.read(info)
    except (zipfile.BadZipFile, NotImplementedError, RuntimeError, OSError, zlib.error) as exc:
        return path, None, SkippedFile(path, SkipReason.NOT_TEXT, str(exc))

    text = _decode_text(data)
    if text is None:
        return path, None, SkippedFile(path, SkipReason.NOT_TEXT, "binary or non-UTF-8 content")
    if len(text) > max_file_chars:
        return path, None, SkippedFile(path, SkipReason.TOO_LARGE, f"{len(text)} characters")
    return path, text, None


def ingest_zip_bytes(
    zip_bytes: bytes,
    *,
    classifier: Optional[PathClassifier] = None,
    max_file_chars: Optional[int] = None,
    cancel_token: Optional[CancelToken] = None,
    source: str = "archive.zip",
) -> IngestResult:
    """Ingest a ZIP archive held in memory.

    Args:
        zip_bytes: Raw ZIP file bytes
        classifier: Path filter (defaults to the built-in allow/skip lists)
        max_file_chars: Per-file cap on decoded characters
        cancel_token: Token checked before each entry is decoded
        source: Label recorded on the result (usually the file name)

    Returns:
        IngestResult with a normalized corpus and skip diagnostics
    """
    classifier = classifier or DEFAULT_CLASSIFIER
    limit = max_file_chars or config.MAX_FILE_CHARS
    check_cancelled(cancel_token)

    try:
        archive = zipfile.ZipFile(io.BytesIO(zip_bytes))
    except (zipfile.BadZipFile, OSError) as exc:
        raise InvalidArchiveError(f"Invalid ZIP: {exc}") from exc

    with archive:
        entries: List[Tuple[str, zipfile.ZipInfo]] = []
        for info in archive.infolist():
            if info.is_dir():
                continue
            path = sanitize_entry_name(info.filename)
            if path is None:
                logger.debug("Ignoring unsafe archive entry %r", info.filename)
                continue
            if not classifier.includes(path):
                continue
            entries.append((path, info))

        # Entries are independent; map() keeps enumeration order for the merge.
        with ThreadPoolExecutor(thread_name_prefix="codeqa-unzip") as executor:
            outcomes = list(executor.map(partial(_read_entry, archive, limit, cancel_token), entries))

    raw: Dict[str, str] = {}
    skipped: List[SkippedFile] = []
    for path, text, skip in outcomes:
        if skip is not None:
            logger.debug("Skipped %s (%s): %s", skip.path, skip.reason.value, skip.detail)
            skipped.append(skip)
        elif text is not None:
            raw[path] = text

    if not raw:
        raise EmptyCorpusError("No code files found in ZIP")

    corpus = normalize(raw)
    if not corpus:
        raise EmptyCorpusError("No code files found in ZIP")

    logger.info("Ingested %d files from %s (%d skipped)", len(corpus), source, len(skipped))
    return IngestResult(corpus=corpus, source=source, skipped=tuple(skipped))


def ingest_zip_file(path: str | Path, **kwargs: Any) -> IngestResult:
    """Read a ZIP archive from disk and ingest it."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise InvalidArchiveError(f"Failed to read {path}: {exc}") from exc
    kwargs.setdefault("source", path.name)
    return ingest_zip_bytes(data, **kwargs)


# ============================================================
# Remote repository strategy
# ============================================================

def parse_repo_url(url: str) -> Tuple[str, str]:
    """Extract ``(owner, repo)`` from a GitHub URL."""
    match = GITHUB_URL_PATTERN.search(url.strip())
    if not match:
        raise InvalidUrlError("Invalid GitHub URL. Expected: https://github.com/owner/repo")
    owner = match.group(1)
    repo = re.sub(r"\.git$", "", match.group(2))
    if not repo:
        raise InvalidUrlError("Invalid GitHub URL. Expected: https://github.com/owner/repo")
    return owner, repo


def _json_body(response: requests.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _api_get(http: requests.Session, url: str, timeout: float, **kwargs: Any) -> requests.Response:
    try:
        return http.get(url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        raise RemoteError(f"GitHub request failed: {exc}") from exc


def _resolve_default_branch(
    http: requests.Session, api_base: str, owner: str, repo: str, timeout: float
) -> str:
    response = _api_get(http, f"{api_base}/repos/{owner}/{repo}", timeout)
    if not response.ok:
        status = response.status_code
        if status == 404:
            raise RepoNotFoundError(
                f"Repo not found or private: {owner}/{repo}. Use a public repo or download as ZIP."
            )
        if status == 403:
            raise RateLimitedError("GitHub rate limit hit. Try again in a minute.")
        message = _json_body(response).get("message") or f"GitHub API error: {status}"
        raise RemoteError(str(message), status_code=status)

    return _json_body(response).get("default_branch") or "main"


def _list_tree(
    http: requests.Session, api_base: str, owner: str, repo: str, branch: str, timeout: float
) -> List[Dict[str, Any]]:
    response = _api_get(
        http,
        f"{api_base}/repos/{owner}/{repo}/git/trees/{branch}",
        timeout,
        params={"recursive": "1"},
    )
    if not response.ok:
        raise RemoteError("Could not fetch repo tree", status_code=response.status_code)

    tree_data = _json_body(response)
    if tree_data.get("truncated"):
        logger.warning("Repo tree truncated; very large repo")
    tree = tree_data.get("tree")
    return [item for item in tree if isinstance(item, dict)] if isinstance(tree, list) else []


def _fetch_raw(
    http: requests.Session,
    base_url: str,
    max_file_chars: int,
    timeout: float,
    path: str,
) -> _EntryOutcome:
    url = f"{base_url}/{quote(path)}"
    try:
        response = http.get(url, timeout=timeout)
    except requests.RequestException as exc:
        return path, None, SkippedFile(path, SkipReason.FETCH_FAILED, str(exc))
    if not response.ok:
        return path, None, SkippedFile(path, SkipReason.FETCH_FAILED, f"HTTP {response.status_code}")

    text = response.text
    if len(text) > max_file_chars:
        return path, None, SkippedFile(path, SkipReason.TOO_LARGE, f"{len(text)} characters")
    return path, text, None


def ingest_github_repo(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    classifier: Optional[PathClassifier] = None,
    max_file_chars: Optional[int] = None,
    max_files: Optional[int] = None,
    batch_size: Optional[int] = None,
    cancel_token: Optional[CancelToken] = None,
    api_base: Optional[str] = None,
    raw_base: Optional[str] = None,
    timeout: float = 30.0,
) -> IngestResult:
    """Ingest a public GitHub repository through the REST API.

    Files are fetched in sequential batches of ``batch_size`` concurrent
    requests. A file that fails to download is dropped from this ingestion
    and reported in ``skipped``; nothing is retried.
    """
    owner, repo = parse_repo_url(url)

    classifier = classifier or DEFAULT_CLASSIFIER
    limit = max_file_chars or config.MAX_FILE_CHARS
    max_files = max_files or config.MAX_REMOTE_FILES
    batch_size = batch_size or config.FETCH_BATCH_SIZE
    api_base = (api_base or config.GITHUB_API_BASE).rstrip("/")
    raw_base = (raw_base or config.GITHUB_RAW_BASE).rstrip("/")
    http = session or requests.Session()

    check_cancelled(cancel_token)
    branch = _resolve_default_branch(http, api_base, owner, repo, timeout)

    check_cancelled(cancel_token)
    tree = _list_tree(http, api_base, owner, repo, branch, timeout)

    candidates = [
        item["path"]
        for item in tree
        if item.get("type") == "blob"
        and isinstance(item.get("path"), str)
        and classifier.includes(item["path"])
    ][:max_files]
    logger.info("Fetching %d files from %s/%s@%s", len(candidates), owner, repo, branch)

    fetch = partial(_fetch_raw, http, f"{raw_base}/{owner}/{repo}/{branch}", limit, timeout)
    files: Dict[str, str] = {}
    skipped: List[SkippedFile] = []

    with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="codeqa-fetch") as executor:
        for start in range(0, len(candidates), batch_size):
            check_cancelled(cancel_token)
            batch = candidates[start:start + batch_size]
            # list() waits for the whole batch before the next one starts
            for path, text, skip in list(executor.map(fetch, batch)):
                if skip is not None:
                    logger.debug("Skipped %s (%s): %s", skip.path, skip.reason.value, skip.detail)
                    skipped.append(skip)
                elif text is not None:
                    files[path] = text

    if not files:
        raise EmptyCorpusError("No code files found in repo")

    prefix = common_prefix(list(files))
    corpus = normalize(files)
    meta = RepositoryMeta(owner=owner, repo=repo, branch=branch, root=prefix)

    logger.info("Ingested %d files from %s (%d skipped)", len(corpus), meta.full_name, len(skipped))
    return IngestResult(corpus=corpus, source=url.strip(), meta=meta, skipped=tuple(skipped))


def is_remote_source(source: str) -> bool:
    lowered = source.strip().lower()
    return lowered.startswith(("http://", "https://", "git@")) or lowered.startswith("github.com/")


def ingest_source(source: str, **kwargs: Any) -> IngestResult:
    """Dispatch to the remote or archive strategy based on what ``source`` looks like."""
    if is_remote_source(source):
        return ingest_github_repo(source, **kwargs)

    archive_kwargs = {
        key: value
        for key, value in kwargs.items()
        if key in ("classifier", "max_file_chars", "cancel_token", "source")
    }
    return ingest_zip_file(source, **archive_kwargs)
