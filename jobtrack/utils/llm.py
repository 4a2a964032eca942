"""
LLM provider abstraction for chat-completion calls.

Provides a provider-agnostic interface for a single chat-completion attempt.
Retries are not performed here: the intake context's RequestCoordinator is the
only place that decides whether a failed call is attempted again.

SDK-specific exceptions are translated at this boundary into three
provider-neutral types so callers can classify failures without importing any
SDK:

- LLMTransportError: the service could not be reached (connection, timeout)
- LLMServiceError: the service answered but rejected or failed the request
- LLMConfigurationError: credentials or provider configuration are missing/invalid
"""

import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_PROVIDER = "cerebras"
CEREBRAS_BASE_URL = "https://api.cerebras.ai/v1"


# --- Errors ---


class LLMTransportError(ConnectionError):
    """The generation service could not be reached."""


class LLMServiceError(RuntimeError):
    """
    The generation service rejected or failed the request.

    Attributes:
        status_code: HTTP status returned by the service (None if the response
            was malformed at the transport level)
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message if status_code is None else f"HTTP {status_code}: {message}")


class LLMConfigurationError(ValueError):
    """Provider credentials or configuration are missing or invalid."""


# --- Request/response types ---


@dataclass(frozen=True)
class RequestOptions:
    """Generation parameters sent with every completion request."""

    temperature: float = 0.2
    top_p: float = 1.0
    max_completion_tokens: int = 2048
    json_response: bool = True
    timeout_s: float = 60.0


@dataclass
class LLMResponse:
    """Response from an LLM provider. content is None when the service sent no text."""

    content: Optional[str]
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


# --- LLM Provider Classes ---


class LLMProvider(ABC):
    """
    Abstract base for LLM providers.

    Subclasses must:
    - Set _provider_prefix class attribute (e.g., "cerebras", "openai")
    - Set self._sdk to the imported SDK module (used for error translation)
    - Implement _call_api() for the actual API call
    - Call update_model(model) in __init__ to set model and name

    Provider instances hold a client but no per-request state, so a single
    instance can be shared by concurrent sessions.
    """

    _provider_prefix: str
    _sdk: Any

    name: str
    model: str

    def update_model(self, model: str):
        """Update the model and refresh the provider name."""
        self.model = model
        self.name = f"{self._provider_prefix}/{model}"

    @abstractmethod
    def _call_api(
        self, system_prompt: str, user_prompt: str, options: RequestOptions
    ) -> LLMResponse:
        """Make a single API call. Implemented by subclasses."""
        pass

    def complete(
        self, system_prompt: str, user_prompt: str, options: Optional[RequestOptions] = None
    ) -> LLMResponse:
        """
        Perform one completion attempt, translating SDK errors.

        Args:
            system_prompt: System instruction
            user_prompt: User content
            options: Generation parameters (default: RequestOptions())

        Returns:
            LLMResponse (content may be None or empty)

        Raises:
            LLMTransportError, LLMServiceError, LLMConfigurationError
        """
        options = options or RequestOptions()
        sdk = self._sdk
        try:
            return self._call_api(system_prompt, user_prompt, options)
        except sdk.APIConnectionError as e:
            # Includes APITimeoutError
            raise LLMTransportError(f"{self.name}: {e}") from e
        except (sdk.AuthenticationError, sdk.PermissionDeniedError) as e:
            raise LLMConfigurationError(f"{self.name}: invalid API key or permissions ({e})") from e
        except sdk.APIStatusError as e:
            raise LLMServiceError(f"{self.name}: {e}", status_code=e.status_code) from e
        except sdk.APIError as e:
            raise LLMServiceError(f"{self.name}: {e}") from e


class OpenAIProvider(LLMProvider):
    """OpenAI chat-completions provider (also used for OpenAI-compatible services)."""

    _provider_prefix = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key_env: str = "OPENAI_API_KEY",
        base_url: Optional[str] = None,
    ):
        # Lazy import - openai SDK is heavy, only load if this provider is used
        try:
            import openai
        except ImportError:
            raise ImportError("openai package required. Install with: pip install openai")

        api_key = os.getenv(api_key_env)
        if not api_key:
            raise LLMConfigurationError(f"{api_key_env} environment variable not set")

        self._sdk = openai
        self.client = openai.OpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self.update_model(model)

    def _call_api(
        self, system_prompt: str, user_prompt: str, options: RequestOptions
    ) -> LLMResponse:
        request = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": options.temperature,
            "top_p": options.top_p,
            "max_completion_tokens": options.max_completion_tokens,
            "timeout": options.timeout_s,
        }
        if options.json_response:
            request["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(**request)

        choices = response.choices or []
        content = choices[0].message.content if choices and choices[0].message else None
        usage = response.usage
        return LLMResponse(
            content=content,
            model=self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


class CerebrasProvider(OpenAIProvider):
    """Cerebras inference through its OpenAI-compatible endpoint."""

    _provider_prefix = "cerebras"

    def __init__(self, model: str = "llama-4-scout-17b-16e-instruct"):
        super().__init__(
            model=model,
            api_key_env="CEREBRAS_API_KEY",
            base_url=os.getenv("CEREBRAS_BASE_URL", CEREBRAS_BASE_URL),
        )


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider. Ignores the JSON response-format hint (not supported)."""

    _provider_prefix = "anthropic"

    def __init__(self, model: str = "claude-sonnet-4-20250514"):
        # Lazy import - anthropic SDK is heavy, only load if this provider is used
        try:
            import anthropic
        except ImportError:
            raise ImportError("anthropic package required. Install with: pip install anthropic")

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise LLMConfigurationError("ANTHROPIC_API_KEY environment variable not set")

        self._sdk = anthropic
        self.client = anthropic.Anthropic(api_key=api_key, max_retries=0)
        self.update_model(model)

    def _call_api(
        self, system_prompt: str, user_prompt: str, options: RequestOptions
    ) -> LLMResponse:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=options.max_completion_tokens,
            temperature=options.temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            timeout=options.timeout_s,
        )
        text_blocks = [block.text for block in response.content if block.type == "text"]
        return LLMResponse(
            content="".join(text_blocks) if text_blocks else None,
            model=self.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# --- Provider Factory ---

_PROVIDERS = {
    "cerebras": CerebrasProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}

_provider_cache: dict[tuple[str, Optional[str]], LLMProvider] = {}
_provider_cache_lock = threading.Lock()


def get_provider(provider_name: Optional[str] = None, model: Optional[str] = None) -> LLMProvider:
    """
    Get a shared LLM provider instance, building it on first use.

    Instances are cached per (provider, model), so every session reuses the
    same client.

    Args:
        provider_name: "cerebras", "openai" or "anthropic" (default: LLM_PROVIDER env var)
        model: Model name (default: provider-specific default)

    Returns:
        LLMProvider instance

    Raises:
        LLMConfigurationError: Unknown provider or missing API key
    """
    if provider_name is None:
        provider_name = os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER)
    provider_name = provider_name.lower()

    if provider_name not in _PROVIDERS:
        raise LLMConfigurationError(
            f"Unknown provider: {provider_name}. Use one of: {', '.join(_PROVIDERS)}"
        )

    key = (provider_name, model)
    with _provider_cache_lock:
        if key not in _provider_cache:
            provider_cls = _PROVIDERS[provider_name]
            _provider_cache[key] = provider_cls(model=model) if model else provider_cls()
        return _provider_cache[key]


def clear_provider_cache() -> None:
    """Drop cached providers (e.g. after changing API keys)."""
    with _provider_cache_lock:
        _provider_cache.clear()
