from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from chambita.errors import (
    ApiError,
    ConfigurationError,
    ExternalServiceFailure,
    classify_external_error,
)
from chambita.models import ChatReply

LOGGER = logging.getLogger("chambita.chat")

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0
CHAT_MODEL = "gpt-3.5-turbo"
SEARCH_MODEL = "gpt-5-mini"

ASSISTANT_PROMPT = (
    "You are a virtual assistant that helps people find jobs in Bolivia. "
    "Share information about job portals, companies that are hiring and "
    "advice for the job search."
)
DEFAULT_SUGGESTIONS = (
    "Job portals in Bolivia",
    "Companies that are hiring",
    "Interview tips",
)
NO_RESPONSE_TEXT = "Could not generate a response."
FALLBACK_JOB_SEARCH_TEXT = """Job portals in Bolivia:
- CompuTrabajo: https://www.computrabajo.com.bo
- LinkedIn: https://www.linkedin.com/jobs/search/?location=Bolivia
- Indeed: https://bo.indeed.com

Bolivian employers:
- Banks: BNB, Banco Mercantil
- Tech: Viva, Tigo, Entel
- Consulting: Deloitte, EY, KPMG"""

T = TypeVar("T")


class UpstreamError(Exception):
    """Non-success answer from the AI provider."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_search_input(user_query: str) -> str:
    return (
        "You are a job search assistant for BOLIVIA.\n\n"
        "BE BRIEF. Answer in at most 10 lines.\n\n"
        "RESPONSE FORMAT:\n"
        "1. List 2-3 Bolivian job portals with links\n"
        f'2. List 2-3 companies hiring for "{user_query}" in Bolivia\n\n'
        f"Looking for: {user_query} in Bolivia\n\n"
        "Give ONLY portals and companies. At most 10 lines."
    )


def extract_output_text(data: dict[str, Any]) -> str:
    """Pull the assistant text out of a Responses API payload.

    The message item normally follows a reasoning item, so the second output
    entry is preferred; ``output_text`` is used when that shape is missing.
    """
    output = data.get("output")
    if isinstance(output, list) and len(output) > 1:
        message = output[1]
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, list) and content and isinstance(content[0], dict):
            text = content[0].get("text")
            if text:
                return str(text)
    fallback = data.get("output_text")
    if fallback:
        return str(fallback)
    return NO_RESPONSE_TEXT


class AIChatClient:
    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.configured:
            raise ConfigurationError()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(
                method="POST",
                url=f"{self.base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            raise UpstreamError(
                response.status_code,
                f"AI API error: {response.status_code}",
            )
        if not isinstance(body, dict):
            raise UpstreamError(502, "AI API returned a malformed payload")
        return body

    async def ask(self, message: str, context: dict[str, Any] | None = None) -> ChatReply:
        messages = [{"role": "system", "content": ASSISTANT_PROMPT}]
        if context:
            messages.append(
                {
                    "role": "system",
                    "content": f"Conversation context: {json.dumps(context, ensure_ascii=False)}",
                }
            )
        messages.append({"role": "user", "content": message})

        data = await self._post(
            "/chat/completions",
            {
                "model": CHAT_MODEL,
                "messages": messages,
                "max_tokens": 500,
                "temperature": 0.7,
            },
        )
        try:
            reply = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamError(502, "AI API returned a malformed payload") from exc
        return ChatReply(reply=str(reply), suggestions=list(DEFAULT_SUGGESTIONS))

    async def search_jobs(self, user_query: str) -> str:
        data = await self._post(
            "/responses",
            {
                "model": SEARCH_MODEL,
                "input": build_search_input(user_query),
                "reasoning": {"effort": "minimal"},
                "text": {"verbosity": "low"},
                "max_output_tokens": 500,
            },
        )
        LOGGER.info("job search answered for query=%r", user_query)
        return extract_output_text(data)


async def safe_external_call(call: Callable[[], Awaitable[T]]) -> T:
    """Await ``call`` and turn any raw failure into an ``ExternalServiceFailure``.

    Failures are classified once and never retried. ``ApiError`` subclasses
    raised before the request leaves the process pass through unchanged.
    """
    try:
        return await call()
    except ApiError:
        raise
    except Exception as exc:
        failure = classify_external_error(exc)
        LOGGER.warning(
            json.dumps(
                {
                    "event": "external_call_failed",
                    "code": failure.code,
                    "http_status": failure.http_status,
                    "error": str(exc),
                }
            )
        )
        raise ExternalServiceFailure(failure, details=str(exc)) from exc
