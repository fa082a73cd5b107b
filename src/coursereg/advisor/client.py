"""AdvisorClient - Short study-advice answers from a generative text model."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from coursereg.advisor.exceptions import AdvisorNotConfiguredError, AdvisorRequestError
from coursereg.logging import sanitize_for_log, truncate_output

logger = logging.getLogger("coursereg.advisor")

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1"
DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_MAX_WORDS = 60
NO_RESPONSE = "No response."


def limit_words(text: str, max_words: int = DEFAULT_MAX_WORDS) -> str:
    """Cut ``text`` to ``max_words`` whitespace-separated words, marking the cut with '...'."""
    if not text:
        return ""
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "..."


class AdvisorClient:
    """Client for the Gemini ``generateContent`` endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        max_words: int = DEFAULT_MAX_WORDS,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key sent as the ``key`` query parameter
            model: Model name in the request path
            base_url: API root (for testing)
            max_words: Word limit applied to answers
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_words = max_words
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _generate(self, prompt: str) -> dict[str, Any]:
        if not self.api_key:
            raise AdvisorNotConfiguredError("Advisor API key is not configured")

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = self.client.post(self.endpoint, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            detail = sanitize_for_log(str(e))
            raise AdvisorRequestError(f"Request to advisor failed: {detail}") from e

        if response.status_code != 200:
            body = truncate_output(sanitize_for_log(response.text), max_length=500)
            raise AdvisorRequestError(f"Advisor request failed: {response.status_code} - {body}")

        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise AdvisorRequestError("Advisor returned invalid JSON") from e
        return data

    def ask(self, prompt: str) -> str:
        """Send ``prompt`` and return the first candidate's text, word-limited.

        Returns:
            The answer, or "No response." when the model returned no text.

        Raises:
            AdvisorError: If the key is missing or the request fails.
        """
        data = self._generate(prompt)
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = ""
        if not isinstance(text, str) or not text:
            logger.info("Advisor returned no text for prompt")
            return NO_RESPONSE
        return limit_words(text, self.max_words)

