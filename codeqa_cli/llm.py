"""Reasoning engine adapter for OpenAI-compatible chat APIs (Groq, OpenAI, OpenRouter)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from . import config
from .answer_schema import AnswerParseResult, parse_answer
from .config_manager import DEFAULT_CONFIGS
from .errors import LLMError, MissingApiKeyError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are an expert code analysis assistant. You are given a codebase and must answer questions about it with precision and proof.

ALWAYS respond in this exact JSON format:
{{
  "answer": "Clear explanation of the answer",
  "references": [
    {{
      "file": "exact/file/path.js",
      "startLine": 10,
      "endLine": 25,
      "snippet": "the actual code snippet from those lines",
      "explanation": "why this file/section is relevant"
    }}
  ],
  "tags": ["auth", "middleware"],
  "refactorSuggestion": "optional: one concrete refactor suggestion if relevant, else null"
}}

Rules:
- File paths must exactly match files in the codebase
- Line numbers must be realistic based on the file content shown
- Snippets must be actual code from the files, not made up
- Include 1-5 references, prioritize the most relevant
- Tags should be 1-4 short descriptive keywords
- If you cannot find relevant code, say so clearly in the answer and return empty references array
- refactorSuggestion should be a concrete, actionable suggestion or null

The codebase files available are:
{file_list}

Codebase content:
{context}"""


def build_system_prompt(context: str, file_paths: Sequence[str], manifest_limit: Optional[int] = None) -> str:
    if manifest_limit is None:
        manifest_limit = config.MANIFEST_LIMIT
    return SYSTEM_PROMPT_TEMPLATE.format(
        file_list="\n".join(list(file_paths)[:manifest_limit]),
        context=context,
    )


def build_messages(question: str, context: str, file_paths: Sequence[str]) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": build_system_prompt(context, file_paths)},
        {"role": "user", "content": f"Question: {question}"},
    ]


class LLMProvider:
    """Base class for LLM providers."""

    name = "base"

    def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: float = 0.1,
        max_tokens: int = 2048,
        json_mode: bool = True,
    ) -> str:
        """Return the assistant message content; raise :class:`LLMError` on failure."""
        raise NotImplementedError


class OpenAIProvider(LLMProvider):
    """OpenAI chat-completions API (also any compatible endpoint)."""

    name = "openai"
    display_name = "OpenAI"

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        defaults = DEFAULT_CONFIGS.get(self.name, {})
        self.model = model or defaults.get("model", "")
        self.api_key = api_key or ""
        self.endpoint = endpoint or defaults.get("endpoint", "")
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: float = 0.1,
        max_tokens: int = 2048,
        json_mode: bool = True,
    ) -> str:
        if not self.api_key:
            raise MissingApiKeyError(
                f"No {self.display_name} API key configured. Run 'cq config set-key <KEY>' or set GROQ_API_KEY."
            )

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        logger.debug("POST %s model=%s", self.endpoint, self.model)
        try:
            response = self.session.post(
                self.endpoint,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise LLMError(f"{self.display_name} request failed: {exc}") from exc

        if not response.ok:
            raise self._http_error(response)

        try:
            content = self._extract_content(response.json())
        except ValueError as exc:
            raise LLMError(f"{self.display_name} returned invalid JSON") from exc

        if not content:
            raise LLMError(f"Empty response from {self.display_name}")
        return content

    def _http_error(self, response: requests.Response) -> LLMError:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {}
        error = body.get("error") if isinstance(body, dict) else None
        message = ""
        if isinstance(error, dict):
            message = str(error.get("message") or "")
        elif isinstance(error, str):
            message = error
        message = message or f"{self.display_name} API error: {status}"

        if status == 401:
            return LLMError(f"Invalid {self.display_name} API key. Check your key and try again.", status)
        if status == 429:
            return LLMError(f"{self.display_name} rate limit hit. Wait a moment and retry.", status)

        # Friendlier message when the request/context is too large for the current tier
        lower = message.lower()
        if "request too large" in lower or "tokens per minute" in lower:
            return LLMError(
                f"This codebase + question is too large for the current {self.display_name} limits. "
                "Try a smaller repo/ZIP or a more focused question.",
                status,
            )
        return LLMError(message, status)

    @staticmethod
    def _extract_content(payload: Any) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        return ""


class GroqProvider(OpenAIProvider):
    """Groq cloud API provider."""

    name = "groq"
    display_name = "Groq"


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter API provider (OpenAI-compatible, multi-model gateway)."""

    name = "openrouter"
    display_name = "OpenRouter"


PROVIDERS = {
    "groq": GroqProvider,
    "openai": OpenAIProvider,
    "openrouter": OpenRouterProvider,
}


def create_provider(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    endpoint: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> LLMProvider:
    """Create the provider named in configuration (Groq when unset)."""
    provider_name = (provider or config.LLM_PROVIDER or "groq").lower()
    provider_cls = PROVIDERS.get(provider_name)
    if provider_cls is None:
        raise LLMError(f"Unknown provider '{provider_name}'. Choose from: {', '.join(PROVIDERS)}")

    # Configured model/endpoint only apply to the configured provider
    same_provider = provider_name == (config.LLM_PROVIDER or "").lower()
    return provider_cls(
        model=model or (config.LLM_MODEL if same_provider else None),
        api_key=api_key,
        endpoint=endpoint or (config.LLM_ENDPOINT if same_provider else None),
        session=session,
    )


class ReasoningEngine:
    """Ask one question about a serialized codebase and validate the answer."""

    def __init__(self, provider: LLMProvider, temperature: float = 0.1, max_tokens: int = 2048):
        self.provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens

    def ask(self, question: str, context: str, file_paths: Sequence[str]) -> AnswerParseResult:
        messages = build_messages(question, context, file_paths)
        content = self.provider.complete(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            json_mode=True,
        )
        return parse_answer(content)
