"""Completion backends: one adapter per provider request/response shape."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

import openai
import requests
from openai import OpenAI

from ..errors import (
    CompletionTimeoutError,
    FatalProviderError,
    ProviderError,
    RecoverableProviderError,
)

__all__ = [
    "CompletionBackend",
    "OpenAICompatibleBackend",
    "CohereBackend",
    "error_for_status",
]

_DEFAULT_SYSTEM = "You are a helpful learning assistant. Be concise and clear."
# Leave the outer timeout race room to win against the HTTP client's own.
_HTTP_TIMEOUT_BUFFER = 1.0


class CompletionBackend(Protocol):
    """Protocol satisfied by provider adapters."""

    name: str

    def complete(
        self, prompt: str, system_instruction: str, timeout: float
    ) -> str:
        """Return generated text or raise a ``ProviderError``."""


def error_for_status(
    backend: str, status: Optional[int], detail: str
) -> ProviderError:
    """Classify an HTTP failure into the provider error taxonomy."""

    message = f"{backend} request failed ({status or 'no status'}): {detail}"
    if status in (401, 403):
        return FatalProviderError(message, status_hint=status)
    return RecoverableProviderError(message, status_hint=status)


def _http_timeout(timeout: float) -> float:
    return max(timeout - _HTTP_TIMEOUT_BUFFER, timeout / 2)


class OpenAICompatibleBackend:
    """Chat completions against OpenAI or an OpenAI-compatible gateway.

    OpenRouter is the default deployment; ``extra_headers`` carries its
    attribution headers.
    """

    def __init__(
        self,
        *,
        name: str,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        temperature: float = 0.4,
        top_p: float = 0.9,
        extra_headers: Optional[Mapping[str, str]] = None,
        client: Any | None = None,
    ) -> None:
        self.name = name
        self.model = model
        self._temperature = temperature
        self._top_p = top_p
        self._extra_headers = dict(extra_headers or {})
        if client is not None:
            self._client = client
        else:
            self._client = OpenAI(
                api_key=api_key, base_url=base_url, max_retries=0
            )

    def complete(
        self, prompt: str, system_instruction: str, timeout: float
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": system_instruction or _DEFAULT_SYSTEM,
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=self._temperature,
                top_p=self._top_p,
                stream=False,
                timeout=_http_timeout(timeout),
                extra_headers=self._extra_headers or None,
            )
        except openai.APITimeoutError as exc:
            raise CompletionTimeoutError(
                f"{self.name} timed out after {timeout:g}s"
            ) from exc
        except openai.APIStatusError as exc:
            raise error_for_status(
                self.name, exc.status_code, str(exc)
            ) from exc
        except openai.OpenAIError as exc:
            raise RecoverableProviderError(
                f"{self.name} request failed: {exc}"
            ) from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise RecoverableProviderError(
                f"{self.name} returned an unexpected response shape"
            ) from exc
        return (content or "").strip()


class CohereBackend:
    """Cohere v1 chat endpoint over plain HTTP."""

    def __init__(
        self,
        *,
        name: str,
        model: str,
        api_key: str,
        base_url: str = "https://api.cohere.ai/v1/chat",
        temperature: float = 0.4,
        top_p: float = 0.9,
        session: requests.Session | None = None,
    ) -> None:
        self.name = name
        self.model = model
        self._api_key = api_key
        self._url = base_url
        self._temperature = temperature
        self._top_p = top_p
        self._session = session or requests.Session()

    def complete(
        self, prompt: str, system_instruction: str, timeout: float
    ) -> str:
        payload = {
            "model": self.model,
            "message": prompt,
            "preamble": system_instruction or _DEFAULT_SYSTEM,
            "temperature": self._temperature,
            "p": self._top_p,
            "stream": False,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self._session.post(
                self._url,
                json=payload,
                headers=headers,
                timeout=_http_timeout(timeout),
            )
        except requests.Timeout as exc:
            raise CompletionTimeoutError(
                f"{self.name} timed out after {timeout:g}s"
            ) from exc
        except requests.RequestException as exc:
            raise RecoverableProviderError(
                f"{self.name} request failed: {exc}"
            ) from exc

        if response.status_code >= 400:
            raise error_for_status(
                self.name, response.status_code, _error_detail(response)
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise RecoverableProviderError(
                f"{self.name} returned a non-JSON response"
            ) from exc
        text = data.get("text") if isinstance(data, Mapping) else None
        if not isinstance(text, str):
            raise RecoverableProviderError(
                f"{self.name} response did not include generated text"
            )
        return text.strip()


def _error_detail(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return (response.text or "").strip()[:200]
    if isinstance(data, Mapping):
        return str(data.get("message") or data.get("error") or data)[:200]
    return str(data)[:200]
