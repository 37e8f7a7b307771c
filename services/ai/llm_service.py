# services/ai/llm_service.py
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, TypeVar

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from services.ai.json_helpers import extract_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_STATUS_CODES = {408, 429, 500, 502, 503, 504}


# ============================================================================
# PUBLIC INTERFACE
# ============================================================================

class LLMClient(Protocol):
    async def generate_json(self, *, system: str, user: str) -> str:
        """Return raw text that should be JSON."""


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule for the network call to the LLM provider only."""

    max_attempts: int = 3
    initial_delay: float = 2.0
    backoff_multiplier: float = 1.5
    max_delay: float = 30.0

    @staticmethod
    def from_env() -> "RetryPolicy":
        return RetryPolicy(
            max_attempts=max(1, int(os.getenv("EXTRACT_MAX_ATTEMPTS", "3"))),
            initial_delay=float(os.getenv("EXTRACT_INITIAL_DELAY_S", "2.0")),
            backoff_multiplier=float(os.getenv("EXTRACT_BACKOFF_MULTIPLIER", "1.5")),
            max_delay=float(os.getenv("EXTRACT_MAX_DELAY_S", "30")),
        )


def is_retryable(exc: BaseException) -> bool:
    # auth / bad request errors won't fix themselves
    if isinstance(exc, (APIConnectionError, RateLimitError, InternalServerError)):
        return True
    if isinstance(exc, APIStatusError):
        return exc.status_code in RETRY_STATUS_CODES
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRY_STATUS_CODES
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    return False


def _log_retry(policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def log(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "LLM call attempt %d/%d failed (%s), retrying in %.1fs",
            state.attempt_number, policy.max_attempts, type(exc).__name__,
            state.next_action.sleep if state.next_action else 0.0,
        )
    return log


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `fn` under `policy`; the last error is re-raised unchanged."""
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(
            multiplier=policy.initial_delay,
            exp_base=policy.backoff_multiplier,
            max=policy.max_delay,
        ),
        retry=retry_if_exception(is_retryable),
        sleep=sleep,
        before_sleep=_log_retry(policy),
        reraise=True,
    )
    return await retrying(fn)


@dataclass
class LLMConfig:
    provider: str = "openai"  # openai | cloud
    temperature: float = 0.0

    # OpenAI (or any OpenAI-compatible gateway via base_url)
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4o"
    openai_timeout_s: float = 120.0

    # Cloud gateway (optional)
    cloud_base_url: str = ""
    cloud_api_key: str = ""
    cloud_timeout_s: float = 120.0

    @staticmethod
    def from_env() -> "LLMConfig":
        provider = (os.getenv("AI_PROVIDER") or "openai").lower()
        return LLMConfig(
            provider=provider,
            temperature=float(os.getenv("AI_TEMPERATURE", "0")),

            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_base_url=os.getenv("OPENAI_BASE_URL", ""),
            openai_model=os.getenv("OPENAI_MODEL") or "gpt-4o",
            openai_timeout_s=float(os.getenv("OPENAI_TIMEOUT_S", "120")),

            cloud_base_url=os.getenv("CLOUD_LLM_BASE_URL", ""),
            cloud_api_key=os.getenv("CLOUD_LLM_API_KEY", ""),
            cloud_timeout_s=float(os.getenv("CLOUD_LLM_TIMEOUT_S", "120")),
        )


# ============================================================================
# PROVIDER CLIENTS
# ============================================================================

class OpenAIClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float,
        timeout_s: float = 120.0,
        base_url: str = "",
    ):
        self.model = model
        self.temperature = temperature
        # retries are owned by RetryPolicy, not the SDK
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout_s,
            max_retries=0,
        )

    async def generate_json(self, *, system: str, user: str) -> str:
        resp = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        return resp.choices[0].message.content or ""


class CloudLLMClient:
    def __init__(self, base_url: str, api_key: str, timeout_s: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s

    async def generate_json(self, *, system: str, user: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            r = await client.post(
                f"{self.base_url}/v1/generate",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"system": system, "user": user},
            )
            r.raise_for_status()
            data = r.json()
            return data["text"]


# ============================================================================
# LLM SERVICE
# ============================================================================

class LLMService:
    def __init__(
        self,
        cfg: Optional[LLMConfig] = None,
        *,
        client: Optional[LLMClient] = None,
        retry: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cfg = cfg or LLMConfig.from_env()
        self.client: LLMClient = client or self._resolve_client(self.cfg)
        self.retry = retry or RetryPolicy.from_env()
        self._sleep = sleep

    def _resolve_client(self, cfg: LLMConfig) -> LLMClient:
        p = (cfg.provider or "openai").lower()

        if p == "cloud":
            if not cfg.cloud_base_url or not cfg.cloud_api_key:
                raise ValueError("Missing CLOUD_LLM_BASE_URL or CLOUD_LLM_API_KEY")
            return CloudLLMClient(
                base_url=cfg.cloud_base_url,
                api_key=cfg.cloud_api_key,
                timeout_s=cfg.cloud_timeout_s,
            )

        if not cfg.openai_api_key:
            raise ValueError("Missing OPENAI_API_KEY")
        return OpenAIClient(
            api_key=cfg.openai_api_key,
            model=cfg.openai_model,
            temperature=cfg.temperature,
            timeout_s=cfg.openai_timeout_s,
            base_url=cfg.openai_base_url,
        )

    async def generate_text(self, *, system: str, user: str) -> str:
        # tenacity only awaits coroutine functions, not lambdas returning coroutines
        async def _call() -> str:
            return await self.client.generate_json(system=system, user=user)

        return await call_with_retry(_call, self.retry, sleep=self._sleep)

    async def generate_json(self, *, system: str, user: str) -> Dict[str, Any]:
        raw = await self.generate_text(system=system, user=user)
        return extract_json(raw)


_llm_singleton: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    global _llm_singleton
    if _llm_singleton is None:
        _llm_singleton = LLMService()
    return _llm_singleton
