"""
Parsing configuration.

Loads provider, request parameters and retry policy from parsing.yaml.

Precedence (later wins):
    1. configs/parsing.yaml (or PARSING_CONFIG_PATH)
    2. LLM_PROVIDER / LLM_MODEL environment variables
    3. Dot-list overrides passed by the caller (e.g. ["retry.max_attempts=3"])

A layer that changes the provider without naming a model resets the model
to the provider default.

Examples:
    >>> config = load_parsing_config()
    >>> coordinator = config.build_coordinator()

    >>> config = load_parsing_config(overrides=["provider=openai", "model=gpt-4o-mini"])
"""

import os
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from omegaconf import OmegaConf

from jobtrack.contexts.intake.exceptions import ErrorKind
from jobtrack.contexts.intake.request_coordinator import (
    RequestCoordinator,
    RetryPolicy,
    exponential_backoff_ms,
)
from jobtrack.utils.llm import RequestOptions

load_dotenv()
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "parsing.yaml"
PARSING_CONFIG_PATH = Path(os.getenv("PARSING_CONFIG_PATH", DEFAULT_CONFIG_PATH))


@dataclass(frozen=True)
class ParsingConfig:
    """
    Resolved parsing settings.

    Attributes:
        provider: LLM provider name ("cerebras", "openai", "anthropic")
        model: Model name (None for the provider default)
        request: Generation parameters
        max_attempts: Retries after the first attempt
        base_delay_ms: First backoff delay; doubles on each retry
        retryable_kinds: Error kinds that are retried
    """

    provider: str
    model: Optional[str]
    request: RequestOptions
    max_attempts: int
    base_delay_ms: int
    retryable_kinds: frozenset

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff_schedule_ms=partial(exponential_backoff_ms, base_delay_ms=self.base_delay_ms),
            retryable_kinds=self.retryable_kinds,
        )

    def request_options(self) -> RequestOptions:
        return self.request

    def build_coordinator(self, **kwargs) -> RequestCoordinator:
        """Build a RequestCoordinator for this config (extra kwargs pass through)."""
        return RequestCoordinator(
            policy=self.retry_policy(),
            options=self.request_options(),
            provider_name=self.provider,
            model=self.model,
            **kwargs,
        )


def _parse_kinds(values: Sequence[str]) -> frozenset:
    """Convert kind names ("network_error") to ErrorKind members."""
    kinds = set()
    for value in values:
        try:
            kinds.add(ErrorKind(str(value).lower()))
        except ValueError:
            valid = ", ".join(kind.value for kind in ErrorKind)
            raise ValueError(f"Unknown error kind in retry.retryable_kinds: {value} (use: {valid})")
    if ErrorKind.ABORT_ERROR in kinds:
        raise ValueError("abort_error cannot be retryable")
    return frozenset(kinds)


def _apply_overrides(conf, dotlist: Sequence[str]):
    """
    Merge one layer of dot-list overrides into conf.

    A layer that switches provider without naming a model clears the model,
    so the new provider falls back to its own default model.
    """
    layer = OmegaConf.from_dotlist(list(dotlist))
    previous_provider = str(conf.get("provider") or "").lower()
    merged = OmegaConf.merge(conf, layer)

    if "provider" in layer and "model" not in layer:
        if str(merged.get("provider") or "").lower() != previous_provider:
            merged.model = None
    return merged


def load_parsing_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Sequence[str]] = None,
) -> ParsingConfig:
    """
    Load and validate parsing configuration.

    Args:
        config_path: YAML file (defaults to PARSING_CONFIG_PATH)
        overrides: Dot-list overrides, e.g. ["retry.max_attempts=3"]

    Returns:
        ParsingConfig

    Raises:
        ValueError: If a value is out of range or a kind name is unknown
    """
    if config_path is None:
        config_path = PARSING_CONFIG_PATH

    conf = OmegaConf.load(config_path)

    env_overrides = []
    if os.getenv("LLM_PROVIDER"):
        env_overrides.append(f"provider={os.getenv('LLM_PROVIDER')}")
    if os.getenv("LLM_MODEL"):
        env_overrides.append(f"model={os.getenv('LLM_MODEL')}")

    for dotlist in (env_overrides, list(overrides or [])):
        if dotlist:
            conf = _apply_overrides(conf, dotlist)

    data = OmegaConf.to_container(conf, resolve=True)
    request = data.get("request") or {}
    retry = data.get("retry") or {}

    max_attempts = int(retry.get("max_attempts", 2))
    if max_attempts < 0:
        raise ValueError(f"retry.max_attempts must be >= 0, got: {max_attempts}")

    base_delay_ms = int(retry.get("base_delay_ms", 1000))
    if base_delay_ms < 0:
        raise ValueError(f"retry.base_delay_ms must be >= 0, got: {base_delay_ms}")

    max_tokens = int(request.get("max_completion_tokens", 2048))
    if max_tokens <= 0:
        raise ValueError(f"request.max_completion_tokens must be > 0, got: {max_tokens}")

    return ParsingConfig(
        provider=str(data.get("provider", "cerebras")).lower(),
        model=data.get("model") or None,
        request=RequestOptions(
            temperature=float(request.get("temperature", 0.2)),
            top_p=float(request.get("top_p", 1.0)),
            max_completion_tokens=max_tokens,
            json_response=bool(request.get("json_response", True)),
            timeout_s=float(request.get("timeout_s", 60.0)),
        ),
        max_attempts=max_attempts,
        base_delay_ms=base_delay_ms,
        retryable_kinds=_parse_kinds(retry.get("retryable_kinds", ["network_error", "api_error"])),
    )
