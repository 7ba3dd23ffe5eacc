"""
Chat-completions client for the trainer, backed by Groq.

Every failure mode (missing key, transport error, API error, empty reply)
surfaces as UpstreamError so the caller has one thing to handle.
"""

import logging
from typing import Callable, Dict, List, Optional

import groq

from looped.core.config import settings
from looped.core.errors import UpstreamError

logger = logging.getLogger("looped")


class TrainerClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client_factory: Optional[Callable[..., object]] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client_factory = client_factory or groq.Groq

    def complete(self, messages: List[Dict[str, str]], *, json_mode: bool = False) -> str:
        """
        Run one non-streaming completion and return the reply text.

        Args:
            messages: OpenAI-style role/content messages
            json_mode: Ask the model for a single JSON object

        Raises:
            UpstreamError: the trainer could not produce a reply
        """
        api_key = self.api_key or settings.GROQ_API_KEY
        if not api_key:
            raise UpstreamError("Trainer is not configured (missing GROQ_API_KEY)")

        params = {
            "messages": messages,
            "model": self.model or settings.GROQ_MODEL,
            "temperature": 0.5 if json_mode else 0.7,
            "max_tokens": 450 if json_mode else 250,
            "top_p": 0.9,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            client = self.client_factory(
                api_key=api_key,
                timeout=self.timeout or settings.TRAINER_TIMEOUT_SECONDS,
            )
            response = client.chat.completions.create(**params)
        except groq.GroqError as e:
            logger.error(f"[trainer] Groq request failed: {e}")
            raise UpstreamError("Trainer request failed") from e

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise UpstreamError("Trainer returned a malformed response") from e
        if not content.strip():
            raise UpstreamError("Trainer returned an empty response")
        return content
