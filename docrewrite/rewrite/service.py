"""Rewrite service clients.

The orchestrator only depends on the ``RewriteService`` protocol: one
blocking request/response call per chunk. ``LLMRewriteService`` is the
shipped implementation and talks to hosted chat models. DeepSeek, OpenAI
and Perplexity share the OpenAI-compatible API; Anthropic has its own SDK.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

from docrewrite.config import AppConfig, ProviderConfig
from docrewrite.exceptions import TransformError
from docrewrite.models.run import RewriteRequest, RewriteResponse
from docrewrite.rewrite.prompts import build_rewrite_prompt, remove_markup_symbols

logger = logging.getLogger(__name__)


class RewriteService(Protocol):
    """Anything that can rewrite one chunk of text."""

    def rewrite(self, request: RewriteRequest) -> RewriteResponse:
        """Rewrite ``request.text`` following ``request.instructions``.

        Raises:
            Exception: Any failure; no partial text is kept.
        """
        ...


class FunctionRewriteService:
    """Adapts a plain ``(text, instructions, provider) -> str`` function."""

    def __init__(self, func: Callable[[str, str, str], str]) -> None:
        self._func = func

    def rewrite(self, request: RewriteRequest) -> RewriteResponse:
        result = self._func(request.text, request.instructions, request.provider)
        if not isinstance(result, str):
            raise TransformError(f"Rewrite function returned {type(result).__name__}, expected str")
        return RewriteResponse(rewritten_text=result)


class LLMRewriteService:
    """Rewrites chunks with a hosted chat model.

    Clients are created on first use per provider and reused afterwards.
    An unknown provider name falls back to the configured default.

    Args:
        config: Application config with rewrite settings and API keys.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._clients: dict[str, Any] = {}

    @property
    def providers(self) -> list[str]:
        return sorted(self._config.rewrite.providers)

    def rewrite(self, request: RewriteRequest) -> RewriteResponse:
        """Send one chunk to the model and return the cleaned reply.

        Raises:
            TransformError: On a missing API key, an API error, or an
                empty reply.
        """
        provider = self._resolve_provider(request.provider)
        prompt = build_rewrite_prompt(request.text, request.instructions)

        try:
            if provider == "anthropic":
                raw = self._complete_anthropic(prompt)
            else:
                raw = self._complete_openai(provider, prompt)
        except TransformError:
            raise
        except Exception as exc:
            logger.error("Rewrite request to %s failed: %s", provider, exc)
            raise TransformError(f"{provider} rewrite request failed: {exc}") from exc

        text = remove_markup_symbols(raw or "")
        if not text:
            raise TransformError(f"{provider} returned an empty rewrite")
        return RewriteResponse(rewritten_text=text)

    def _resolve_provider(self, provider: str) -> str:
        name = provider.strip().lower()
        if name in self._config.rewrite.providers:
            return name
        fallback = self._config.rewrite.default_provider
        logger.warning("Unknown rewrite provider %r, using %s", provider, fallback)
        return fallback

    def _provider_config(self, provider: str) -> ProviderConfig:
        try:
            return self._config.rewrite.providers[provider]
        except KeyError:
            raise TransformError(f"No configuration for rewrite provider {provider!r}") from None

    def _api_key(self, provider: str) -> str:
        key = self._config.api_key_for(provider)
        if not key:
            raise TransformError(
                f"{self._config.api_key_env_for(provider)} is not set; "
                f"cannot call the {provider} API"
            )
        return key

    def _complete_openai(self, provider: str, prompt: str) -> str:
        """Run a chat completion against an OpenAI-compatible endpoint."""
        settings = self._provider_config(provider)
        client = self._clients.get(provider)
        if client is None:
            from openai import OpenAI

            client = OpenAI(
                api_key=self._api_key(provider),
                base_url=settings.base_url,
                timeout=self._config.rewrite.timeout_seconds,
            )
            self._clients[provider] = client

        response = client.chat.completions.create(
            model=settings.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self._config.rewrite.max_tokens,
            temperature=self._config.rewrite.temperature,
        )
        if not response.choices:
            raise TransformError(f"{provider} returned no choices")
        return response.choices[0].message.content or ""

    def _complete_anthropic(self, prompt: str) -> str:
        """Run a Messages API call against Anthropic."""
        settings = self._provider_config("anthropic")
        client = self._clients.get("anthropic")
        if client is None:
            import anthropic

            client = anthropic.Anthropic(
                api_key=self._api_key("anthropic"),
                timeout=self._config.rewrite.timeout_seconds,
            )
            self._clients["anthropic"] = client

        response = client.messages.create(
            model=settings.model,
            max_tokens=self._config.rewrite.max_tokens,
            temperature=self._config.rewrite.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
