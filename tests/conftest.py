"""Pytest configuration and fixtures for CodeQA CLI tests."""

import io
import json
import shutil
import tempfile
import threading
import zipfile
from pathlib import Path
from typing import Dict, Generator, Optional

import pytest
import requests

from codeqa_cli.models import FileCorpus
from codeqa_cli.storage import InMemoryHistoryStore, InMemorySettingsStore


class FakeResponse:
    """Just enough of ``requests.Response`` for the ingest and LLM code."""

    def __init__(self, status_code: int = 200, json_data=None, text: Optional[str] = None):
        self.status_code = status_code
        self._json = json_data
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ""
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class FakeSession:
    """Routes GET/POST by exact URL; unknown URLs answer 404."""

    def __init__(self, routes: Optional[Dict[str, FakeResponse]] = None):
        self.routes = dict(routes or {})
        self.calls = []
        self._lock = threading.Lock()

    def _respond(self, method: str, url: str, **kwargs) -> FakeResponse:
        with self._lock:
            self.calls.append((method, url, kwargs))
        response = self.routes.get(url)
        if isinstance(response, Exception):
            raise response
        return response or FakeResponse(404, {"message": "Not Found"})

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)

    def urls(self):
        return [url for _, url, _ in self.calls]


@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Fail loudly if any test reaches for the real network."""

    def _refuse(*args, **kwargs):
        raise AssertionError("Tests must not make real HTTP requests")

    monkeypatch.setattr(requests.Session, "request", _refuse)
    monkeypatch.setattr(requests, "post", _refuse)
    monkeypatch.setattr(requests, "get", _refuse)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's own keys and limits out of the tests."""
    for name in (
        "GROQ_API_KEY",
        "CODEQA_API_KEY",
        "CODEQA_MAX_FILE_CHARS",
        "CODEQA_CONTEXT_MAX_CHARS",
        "CODEQA_MAX_REMOTE_FILES",
        "CODEQA_FETCH_BATCH_SIZE",
        "CODEQA_MANIFEST_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("codeqa_cli.config.LLM_API_KEY", "")
    monkeypatch.setattr("codeqa_cli.config.LLM_PROVIDER", "groq")
    monkeypatch.setattr("codeqa_cli.config.LLM_MODEL", "llama-3.3-70b-versatile")
    monkeypatch.setattr("codeqa_cli.config.LLM_ENDPOINT", "")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch) -> Path:
    """Point config and history files at a temporary CODEQA_HOME."""
    home = temp_dir / "codeqa"
    config_file = home / "config.toml"
    history_file = home / "history.json"

    # Patch every module that captured the paths at import time
    monkeypatch.setattr("codeqa_cli.config_manager.BASE_DIR", home)
    monkeypatch.setattr("codeqa_cli.config_manager.CONFIG_FILE", config_file)
    monkeypatch.setattr("codeqa_cli.config.BASE_DIR", home)
    monkeypatch.setattr("codeqa_cli.config.CONFIG_FILE", config_file)
    monkeypatch.setattr("codeqa_cli.config.HISTORY_FILE", history_file)
    monkeypatch.setattr("codeqa_cli.storage.HISTORY_FILE", history_file)
    return home


@pytest.fixture
def make_zip():
    """Build an in-memory ZIP archive from ``{name: str | bytes}``."""

    def _make(files: Dict[str, object]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for name, content in files.items():
                if name.endswith("/"):
                    archive.writestr(zipfile.ZipInfo(name), b"")
                elif isinstance(content, bytes):
                    archive.writestr(name, content)
                else:
                    archive.writestr(name, str(content).encode("utf-8"))
        return buffer.getvalue()

    return _make


@pytest.fixture
def sample_files() -> Dict[str, str]:
    """A small project wrapped in a single top-level directory."""
    return {
        "myapp-main/README.md": "# My App\n\nSample project.\n",
        "myapp-main/src/auth.js": (
            "const jwt = require('jsonwebtoken');\n"
            "\n"
            "function verifyToken(req, res, next) {\n"
            "  const token = req.headers.authorization;\n"
            "  if (!token) return res.status(401).end();\n"
            "  req.user = jwt.verify(token, process.env.SECRET);\n"
            "  next();\n"
            "}\n"
            "\n"
            "module.exports = { verifyToken };\n"
        ),
        "myapp-main/src/server.js": (
            "const express = require('express');\n"
            "const { verifyToken } = require('./auth');\n"
            "const app = express();\n"
            "app.use('/api', verifyToken);\n"
            "app.listen(3000);\n"
        ),
        "myapp-main/node_modules/express/index.js": "module.exports = {};\n",
        "myapp-main/assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00",
    }


@pytest.fixture
def sample_zip_path(temp_dir: Path, make_zip, sample_files) -> Path:
    path = temp_dir / "myapp.zip"
    path.write_bytes(make_zip(sample_files))
    return path


@pytest.fixture
def sample_corpus() -> FileCorpus:
    return FileCorpus({
        "src/auth.js": "line 1\nline 2\nline 3\nline 4\nline 5",
        "src/server.js": "const app = express();\napp.listen(3000);",
        "README.md": "# Title",
    })


@pytest.fixture
def memory_history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def memory_settings() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def llm_answer_json() -> str:
    """Well-formed engine output pointing at the sample project."""
    return json.dumps({
        "answer": "Requests are authenticated by the verifyToken middleware.",
        "references": [
            {
                "file": "src/auth.js",
                "startLine": 3,
                "endLine": 8,
                "snippet": "function verifyToken(req, res, next) {",
                "explanation": "Checks the Authorization header",
            },
            {
                "file": "src/missing.js",
                "startLine": 1,
                "endLine": 2,
                "snippet": "",
                "explanation": "Does not exist",
            },
        ],
        "tags": ["auth", "middleware"],
        "refactorSuggestion": None,
    })


def groq_completion(content: str) -> FakeResponse:
    return FakeResponse(200, {"choices": [{"message": {"role": "assistant", "content": content}}]})


def github_routes(
    owner: str,
    repo: str,
    files: Dict[str, str],
    branch: str = "main",
    api: str = "https://api.github.com",
    raw: str = "https://raw.githubusercontent.com",
    extra_tree=(),
) -> Dict[str, FakeResponse]:
    """Routes for a public repo whose tree holds ``files`` (plus ``extra_tree`` items)."""
    tree = [{"path": path, "type": "blob"} for path in files] + list(extra_tree)
    routes = {
        f"{api}/repos/{owner}/{repo}": FakeResponse(200, {"default_branch": branch}),
        f"{api}/repos/{owner}/{repo}/git/trees/{branch}": FakeResponse(200, {"tree": tree, "truncated": False}),
    }
    for path, content in files.items():
        routes[f"{raw}/{owner}/{repo}/{branch}/{path}"] = FakeResponse(200, text=content)
    return routes
