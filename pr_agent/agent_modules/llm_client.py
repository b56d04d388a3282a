"""Async client for an OpenAI-compatible chat completions endpoint.

The client never raises for service problems: timeouts, transport errors,
non-2xx responses and malformed envelopes all resolve to ``None`` after a
warning naming the reason.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from .config import LLM_TIMEOUT_SECONDS, AgentConfig
from .utils import truncate

logger = logging.getLogger(__name__)


class LLMClient:
    """Sends a single prompt and returns the model's text reply."""

    def __init__(self, config: AgentConfig, timeout: float = LLM_TIMEOUT_SECONDS):
        self.config = config
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return self.config.llm_base_url.rstrip("/") + "/chat/completions"

    def build_request(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            "model": self.config.llm_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0,
        }

    async def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        """Return the reply text, or None when the service is unavailable."""

        if not self.config.llm_api_key:
            logger.info("External patch skipped: no LLM API key configured")
            return None

        try:
            return await asyncio.wait_for(self._post(system_prompt, user_prompt), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"External patch rejected [timeout]: no reply within {self.timeout:.0f}s")
            return None
        except httpx.HTTPStatusError as exc:
            logger.warning(
                f"External patch rejected [http_status:{exc.response.status_code}]: {truncate(exc.response.text, 200)}"
            )
            return None
        except httpx.RequestError as exc:
            logger.warning(f"External patch rejected [transport_error]: {exc}")
            return None

    async def _post(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        headers = {
            "Authorization": f"Bearer {self.config.llm_api_key}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.endpoint,
                json=self.build_request(system_prompt, user_prompt),
                headers=headers,
            )
            response.raise_for_status()

        try:
            data = response.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning(f"External patch rejected [empty_response]: unexpected envelope ({exc})")
            return None

        if not isinstance(text, str) or not text.strip():
            logger.warning("External patch rejected [empty_response]: model returned no content")
            return None
        return text


__all__ = ["LLMClient"]
