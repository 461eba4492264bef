"""Ordered-fallback text completion client with a per-call timeout race."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Mapping, Optional, Sequence

from dotenv import load_dotenv

from ..core.config import BackendConfig, ProvidersConfig
from ..errors import (
    CompletionTimeoutError,
    ConfigError,
    FatalProviderError,
    ProviderError,
    RecoverableProviderError,
)
from .backends import CohereBackend, CompletionBackend, OpenAICompatibleBackend

__all__ = ["FallbackCompletionClient", "build_backends", "build_client"]

logger = logging.getLogger(__name__)

_OPENROUTER_HEADERS = {
    "HTTP-Referer": "http://localhost:5000",
    "X-Title": "Quizlyst AI",
}


class FallbackCompletionClient:
    """Try each backend in order until one returns text.

    Every backend call races ``timeout`` seconds on a worker thread; a late
    answer is discarded. When all backends fail the last failure is
    re-raised with a user-facing message. The error is fatal only when every
    backend failed with an authentication error.
    """

    def __init__(
        self,
        backends: Sequence[CompletionBackend],
        *,
        timeout: float = 60.0,
    ) -> None:
        if not backends:
            raise ConfigError("At least one completion backend is required.")
        self._backends = tuple(backends)
        self._timeout = timeout

    @property
    def backends(self) -> tuple[CompletionBackend, ...]:
        return self._backends

    def complete(
        self,
        prompt: str,
        system_instruction: str = "",
        timeout: Optional[float] = None,
    ) -> str:
        budget = self._timeout if timeout is None else timeout
        failures: list[ProviderError] = []
        for position, backend in enumerate(self._backends, start=1):
            logger.info(
                "Requesting completion",
                extra={
                    "backend": backend.name,
                    "position": position,
                    "timeout_seconds": budget,
                },
            )
            try:
                text = _race(backend, prompt, system_instruction, budget)
            except ProviderError as exc:
                failures.append(exc)
                logger.warning(
                    "Completion backend failed",
                    extra={
                        "backend": backend.name,
                        "status_hint": exc.status_hint,
                        "error": str(exc),
                    },
                )
                continue
            logger.info(
                "Completion received",
                extra={"backend": backend.name, "chars": len(text)},
            )
            return text
        raise _summarize(failures)


def _race(
    backend: CompletionBackend,
    prompt: str,
    system_instruction: str,
    timeout: float,
) -> str:
    executor = ThreadPoolExecutor(
        max_workers=1, thread_name_prefix=f"quizlyst-{backend.name}"
    )
    future = executor.submit(
        backend.complete, prompt, system_instruction, timeout
    )
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        raise CompletionTimeoutError(
            f"{backend.name} timed out after {timeout:g}s"
        ) from None
    except ProviderError:
        raise
    except Exception as exc:
        raise RecoverableProviderError(
            f"{backend.name} failed unexpectedly: {exc}"
        ) from exc
    finally:
        executor.shutdown(wait=False)


def _summarize(failures: Sequence[ProviderError]) -> ProviderError:
    last = failures[-1]
    status = last.status_hint
    if all(isinstance(item, FatalProviderError) for item in failures):
        error: ProviderError = FatalProviderError(
            "API authentication failed. Please check your API keys.",
            status_hint=status,
        )
    elif isinstance(last, CompletionTimeoutError):
        error = CompletionTimeoutError(
            "AI processing is taking too long. Please try with shorter "
            "content.",
            status_hint=status,
        )
    elif status == 429:
        error = RecoverableProviderError(
            "API rate limit exceeded. Please try again later.",
            status_hint=status,
        )
    elif status == 503:
        error = RecoverableProviderError(
            "AI model is currently overloaded. Please try again in a few "
            "minutes.",
            status_hint=status,
        )
    else:
        error = RecoverableProviderError(
            f"All AI models are currently unavailable: {last.message}",
            status_hint=status,
        )
    error.__cause__ = last
    return error


def _backend_for(config: BackendConfig, api_key: str) -> CompletionBackend:
    if config.name == "cohere":
        return CohereBackend(
            name=config.name,
            model=config.model,
            api_key=api_key,
            base_url=config.base_url,
            temperature=config.temperature,
            top_p=config.top_p,
        )
    return OpenAICompatibleBackend(
        name=config.name,
        model=config.model,
        api_key=api_key,
        base_url=config.base_url,
        temperature=config.temperature,
        top_p=config.top_p,
        extra_headers=_OPENROUTER_HEADERS,
    )


def build_backends(
    providers: ProvidersConfig,
    *,
    env: Mapping[str, str] | None = None,
) -> list[CompletionBackend]:
    """Instantiate configured backends whose API key is available."""

    if env is None:
        load_dotenv()
        env = os.environ
    backends: list[CompletionBackend] = []
    for backend_config in providers.ordered():
        api_key = (env.get(backend_config.api_key_env) or "").strip()
        if not api_key:
            logger.warning(
                "Skipping completion backend without API key",
                extra={
                    "backend": backend_config.name,
                    "api_key_env": backend_config.api_key_env,
                },
            )
            continue
        backends.append(_backend_for(backend_config, api_key))
    if not backends:
        names = ", ".join(
            config.api_key_env for config in providers.ordered()
        )
        raise ConfigError(
            f"No completion backend is configured. Set one of: {names} "
            "(environment or .env)."
        )
    return backends


def build_client(
    providers: ProvidersConfig, *, env: Mapping[str, str] | None = None
) -> FallbackCompletionClient:
    return FallbackCompletionClient(
        build_backends(providers, env=env),
        timeout=providers.timeout_seconds,
    )
