"""
Claude (Anthropic Messages API) client for the claude draft producer.

Plain ``requests`` calls, no SDK. A secondary API key takes over when the
primary one is rate limited or the API is overloaded.
"""

import json
import logging
import os
import re
import time
from typing import Any, Dict, Optional

from django.conf import settings

import requests

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

FENCED_JSON = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def parse_llm_json(raw_text: str):
    """Decode a JSON reply, tolerating a markdown code fence. None if unparseable."""
    text = (raw_text or '').strip()
    if not text:
        return None

    match = FENCED_JSON.match(text)
    if match:
        text = match.group(1).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _proxies_from_env() -> Optional[Dict[str, str]]:
    proxies = {}
    for scheme in ('http', 'https'):
        value = os.getenv(f"{scheme.upper()}_PROXY") or os.getenv(f"{scheme}_proxy")
        if value:
            proxies[scheme] = value
    return proxies or None


class ClaudeClient:
    """
    Minimal Messages API wrapper.

    ``run_prompt`` makes up to MAX_ATTEMPTS calls. A 429/503/529 on the
    primary key switches to the fallback key once; transport errors and
    empty replies use up an attempt.
    """

    FALLBACK_STATUS_CODES = {429, 503, 529}
    MAX_ATTEMPTS = 3

    def __init__(
        self,
        api_key: Optional[str] = None,
        fallback_api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.fallback_api_key = fallback_api_key or settings.ANTHROPIC_API_KEY_FALLBACK
        self.model = model or settings.LLM_MODEL
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.proxies = _proxies_from_env()
        self._using_fallback = False

    @property
    def available(self) -> bool:
        return bool(self.api_key or self.fallback_api_key)

    @property
    def using_fallback(self) -> bool:
        return self._using_fallback

    @property
    def active_key(self) -> str:
        if self._using_fallback and self.fallback_api_key:
            return self.fallback_api_key
        return self.api_key

    def _payload(self, prompt: str, system: Optional[str], max_tokens: Optional[int]) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        }
        if system:
            payload["system"] = system
        return payload

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        if not self.active_key:
            raise ValueError("No Anthropic API key configured")
        return requests.post(
            ANTHROPIC_MESSAGES_URL,
            headers={
                "x-api-key": self.active_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            json=payload,
            timeout=self.timeout,
            proxies=self.proxies,
        )

    @staticmethod
    def _first_text(data: Dict[str, Any]) -> str:
        content = data.get("content") or []
        if not content:
            raise ValueError("Claude returned no content blocks")
        block = content[0]
        text = block.get("text") if isinstance(block, dict) else str(block)
        if not text:
            raise ValueError("Claude returned an empty text block")
        return text

    def run_prompt(self, prompt: str, system: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
        """Return the first text block of the reply; re-raises the last error."""
        payload = self._payload(prompt, system, max_tokens)
        started = time.monotonic()
        last_error: Optional[Exception] = None

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                response = self._post(payload)
                if (
                    response.status_code in self.FALLBACK_STATUS_CODES
                    and self.fallback_api_key
                    and not self._using_fallback
                ):
                    logger.warning("Primary API key got HTTP %s, switching to fallback key", response.status_code)
                    self._using_fallback = True
                    continue
                if response.status_code != 200:
                    logger.warning("Claude HTTP %s: %s", response.status_code, (response.text or '')[:400])
                    response.raise_for_status()

                text = self._first_text(response.json())
            except requests.RequestException as exc:
                last_error = exc
                logger.warning("Claude request failed (attempt %s): %s", attempt, exc)
                continue
            except ValueError as exc:
                if not self.active_key:
                    raise
                last_error = exc
                logger.warning("Unusable Claude reply (attempt %s): %s", attempt, exc)
                continue

            logger.info(
                "Claude call succeeded in %sms (model=%s, attempt=%s)",
                int((time.monotonic() - started) * 1000),
                self.model,
                attempt,
            )
            return text

        if last_error is None:
            raise ValueError("Claude call made no usable attempt")
        raise last_error
