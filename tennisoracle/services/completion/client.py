"""Chat completion API client.

Thin async wrapper over an OpenAI-compatible /chat/completions endpoint:
- One request per call, no retry or backoff
- Error classification
- Optional JSON response format for structured replies

The client is constructed explicitly and passed to the services that need it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

from tennisoracle.config import get_settings

logger = structlog.get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert tennis analyst with deep knowledge of player statistics, "
    "match dynamics, and predictive analysis."
)


class CompletionErrorType(Enum):
    """Classification of completion API errors."""

    NOT_CONFIGURED = "NOT_CONFIGURED"
    AUTHENTICATION = "AUTHENTICATION"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    INVALID_REQUEST = "INVALID_REQUEST"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    UNKNOWN = "UNKNOWN"


class CompletionError(Exception):
    """Completion API error with classification."""

    def __init__(
        self,
        message: str,
        error_type: CompletionErrorType = CompletionErrorType.UNKNOWN,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.retryable = retryable


@dataclass
class CompletionUsage:
    """Token accounting reported by the API."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class CompletionResult:
    """Result of a completion call."""

    text: str
    model: str
    usage: CompletionUsage | None = None
    finish_reason: str | None = None


class CompletionClient:
    """
    Async chat completion client.

    Usage:
        async with CompletionClient(api_key="...") as client:
            result = await client.complete("Who serves better?")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the completion client.

        Args:
            api_key: API key, defaults to settings.openai_api_key
            model: Model name, defaults to settings.openai_model
            base_url: API base URL, defaults to settings.openai_base_url
            timeout: Request timeout in seconds
            http_client: Optional preconfigured httpx client (tests)
        """
        self.settings = get_settings()
        self.api_key = api_key if api_key is not None else self.settings.openai_api_key
        self.model = model or self.settings.openai_model
        self.base_url = (base_url or self.settings.openai_base_url).rstrip("/")
        self.timeout = timeout or self.settings.completion_timeout
        self._http_client = http_client

    async def __aenter__(self) -> "CompletionClient":
        """Async context manager entry."""
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._http_client = None

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        response_format: str | None = None,
    ) -> CompletionResult:
        """
        Run a single chat completion.

        Args:
            prompt: User message
            system_prompt: System message, defaults to the tennis analyst persona
            temperature: Sampling temperature
            max_tokens: Completion token limit
            response_format: "json" to request a JSON object reply

        Returns:
            CompletionResult with the reply text and token usage

        Raises:
            CompletionError: If the call fails or the reply has no content
        """
        if not self.api_key:
            raise CompletionError(
                "Completion API key not configured",
                CompletionErrorType.NOT_CONFIGURED,
            )

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": (
                temperature
                if temperature is not None
                else self.settings.completion_temperature
            ),
            "max_tokens": max_tokens or self.settings.completion_max_tokens,
        }
        if response_format == "json":
            payload["response_format"] = {"type": "json_object"}

        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("completion_timeout", model=self.model)
            raise CompletionError(
                "Completion request timeout", CompletionErrorType.TIMEOUT, retryable=True
            ) from e
        except httpx.HTTPStatusError as e:
            error_type, retryable = self._classify_status(e.response.status_code)
            logger.error(
                "completion_http_error",
                model=self.model,
                status_code=e.response.status_code,
                response_text=e.response.text[:500] if e.response.text else "",
            )
            raise CompletionError(
                f"Completion API returned {e.response.status_code}",
                error_type,
                retryable,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("completion_request_failed", model=self.model, error=str(e))
            raise CompletionError(str(e), CompletionErrorType.UNKNOWN) from e

        return self._parse_response(data)

    def _parse_response(self, data: dict[str, Any]) -> CompletionResult:
        choices = data.get("choices") or []
        message = choices[0].get("message", {}) if choices else {}
        content = message.get("content")
        if not content or not content.strip():
            raise CompletionError(
                "No response from completion API", CompletionErrorType.EMPTY_RESPONSE
            )

        usage = None
        raw_usage = data.get("usage")
        if raw_usage:
            usage = CompletionUsage(
                prompt_tokens=raw_usage.get("prompt_tokens", 0),
                completion_tokens=raw_usage.get("completion_tokens", 0),
                total_tokens=raw_usage.get("total_tokens", 0),
            )

        return CompletionResult(
            text=content,
            model=data.get("model", self.model),
            usage=usage,
            finish_reason=choices[0].get("finish_reason"),
        )

    @staticmethod
    def _classify_status(status_code: int) -> tuple[CompletionErrorType, bool]:
        """Classify an HTTP status into error type and retryability."""
        if status_code in (401, 403):
            return CompletionErrorType.AUTHENTICATION, False
        if status_code == 429:
            return CompletionErrorType.RATE_LIMITED, True
        if status_code == 400:
            return CompletionErrorType.INVALID_REQUEST, False
        if status_code >= 500:
            return CompletionErrorType.SERVICE_UNAVAILABLE, True
        return CompletionErrorType.UNKNOWN, False
