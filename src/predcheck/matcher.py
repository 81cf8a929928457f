# SPDX-License-Identifier: MIT
"""Semantic journal and publisher name matching through an LLM.

Any endpoint speaking the OpenAI chat-completions dialect works; the default
is Groq's hosted ``llama-3.3-70b-versatile``.
"""

import json
from typing import Any

import aiohttp

from .constants import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_MATCHER_BASE_URL,
    DEFAULT_MATCHER_MODEL,
    DEFAULT_MATCHER_TIMEOUT,
    MATCHER_MAX_TOKENS,
    MATCHER_TEMPERATURE,
)
from .exceptions import MatcherUnavailableError, RateLimitError
from .logging_config import get_detail_logger
from .models import MatchResult
from .retry_utils import async_retry_with_backoff


detail_logger = get_detail_logger()

SYSTEM_PROMPT = (
    "You are a precise academic journal name matching expert. "
    "Always respond with valid JSON."
)

USER_PROMPT_TEMPLATE = """You are an expert in academic journal name matching. Compare these two journal/publisher names and determine if they refer to the same entity.

Name 1: "{name_a}"
Name 2: "{name_b}"

Consider:
- Common abbreviations and variations
- Word order differences
- "The", "Journal of", "International" prefixes
- Spelling variations
- Punctuation differences

Respond in JSON format:
{{
  "isMatch": true/false,
  "confidence": 0-100,
  "reasoning": "Brief explanation"
}}

Be strict: Only return confidence {threshold}+ if you're very certain they're the same entity."""


class LLMNameMatcher:
    """Asks a chat-completions model whether two names denote the same entity.

    The model's own ``isMatch`` flag is advisory only: a pair matches when the
    reported confidence reaches the caller's threshold.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MATCHER_MODEL,
        base_url: str = DEFAULT_MATCHER_BASE_URL,
        timeout: float = DEFAULT_MATCHER_TIMEOUT,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def match_names(
        self, name_a: str, name_b: str, threshold: int = DEFAULT_MATCH_THRESHOLD
    ) -> MatchResult:
        """Compare two names.

        Raises:
            MatcherUnavailableError: If no API key is configured or the model
                gives no usable answer
            RateLimitError: If the endpoint keeps rejecting with HTTP 429
        """
        if not self.api_key:
            raise MatcherUnavailableError(
                "No API key configured for the name matcher", source_name="matcher"
            )

        content = await self._complete(
            USER_PROMPT_TEMPLATE.format(name_a=name_a, name_b=name_b, threshold=threshold)
        )
        payload = parse_match_payload(content)

        confidence = _clamp_confidence(payload.get("confidence"))
        result = MatchResult(
            is_match=confidence >= threshold,
            confidence=confidence,
            reasoning=str(payload.get("reasoning") or "No reasoning provided"),
        )
        detail_logger.debug(
            f"Matcher: '{name_a}' vs '{name_b}' -> {result.confidence}% "
            f"({'match' if result.is_match else 'no match'})"
        )
        return result

    @async_retry_with_backoff(max_retries=2, exceptions=(RateLimitError,))
    async def _complete(self, prompt: str) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": MATCHER_TEMPERATURE,
            "max_tokens": MATCHER_MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    f"{self.base_url}/chat/completions", headers=headers, json=body
                ) as response:
                    if response.status == 429:
                        retry_after = response.headers.get("Retry-After")
                        raise RateLimitError(
                            retry_after=int(retry_after)
                            if retry_after and retry_after.isdigit()
                            else None,
                            source_name="matcher",
                        )
                    if response.status != 200:
                        raise MatcherUnavailableError(
                            f"Matcher endpoint returned status {response.status}",
                            source_name="matcher",
                        )
                    try:
                        data = await response.json()
                    except ValueError as e:
                        raise MatcherUnavailableError(
                            f"Matcher returned a non-JSON body: {e}", source_name="matcher"
                        ) from e
        except aiohttp.ClientError as e:
            raise MatcherUnavailableError(
                f"Matcher request failed: {e}", source_name="matcher"
            ) from e

        content = _message_content(data)
        if not content:
            raise MatcherUnavailableError(
                "Matcher returned no message content", source_name="matcher"
            )
        return content


def parse_match_payload(content: str) -> dict[str, Any]:
    """Decode the model's JSON answer, tolerating a surrounding code fence.

    Raises:
        MatcherUnavailableError: If the answer is not a JSON object
    """
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MatcherUnavailableError(
            f"Matcher did not return valid JSON: {text[:200]}", source_name="matcher"
        ) from e

    if not isinstance(payload, dict):
        raise MatcherUnavailableError(
            "Matcher answer is not a JSON object", source_name="matcher"
        )
    return payload


def _message_content(data: Any) -> str | None:
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices, list):
        return None
    message = (choices[0] or {}).get("message") or {}
    content = message.get("content")
    return content if isinstance(content, str) else None


def _clamp_confidence(value: Any) -> int:
    try:
        confidence = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, min(100, confidence))
