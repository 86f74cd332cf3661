"""
Shared OpenAI GPT helper for report generation and the knowledge assistant.

Used by:
  - pipeline.py   (template report generation)
  - assistant.py  (/ask and /analyze)

Every call is bounded by a timeout and every failure is classified into the
error taxonomy. Calls are never retried here: a completion spends tokens and
is not idempotent, so retrying is the caller's decision.
"""

import asyncio
import json
import logging
import re
from typing import Optional

import openai
from openai import AsyncOpenAI

from generation.errors import ModelOutputError, ModelServiceError, ModelTimeout, ServiceUnavailable

log = logging.getLogger("generation.gpt")

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_SYSTEM = "You are a helpful assistant. Output only what is asked."
DEFAULT_TIMEOUT_SECONDS = 60.0


class GPTClient:
    """
    Chat-completions wrapper.

    client=None means no API key was configured; every call then fails with
    ServiceUnavailable instead of crashing at import time.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_api_key(cls, api_key: Optional[str], model: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> "GPTClient":
        # The SDK's own retries are disabled: retry policy belongs to the caller
        client = AsyncOpenAI(api_key=api_key, max_retries=0) if api_key else None
        return cls(client, model=model, timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def complete(
        self,
        prompt: str,
        system: str = DEFAULT_SYSTEM,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        json_output: bool = False,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Call OpenAI Chat Completions and return the assistant message text.

        Args:
            prompt:      User-turn message
            system:      System prompt (assistant persona)
            temperature: Sampling temperature
            max_tokens:  Max response tokens
            json_output: Ask the model for a JSON object (response_format)
            timeout:     Seconds before ModelTimeout; defaults to the client's

        Returns:
            Raw string content of the model response ("" when empty)
        """
        if self.client is None:
            raise ServiceUnavailable(
                "OpenAI service unavailable",
                details="OpenAI client is not properly configured",
            )

        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        limit = timeout if timeout is not None else self.timeout
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(**kwargs),
                timeout=limit,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError) as e:
            log.warning(f"[GPT] call exceeded {limit}s")
            raise ModelTimeout(f"Model call exceeded {limit} seconds") from e
        except (
            openai.APIConnectionError,
            openai.RateLimitError,
            openai.InternalServerError,
            openai.AuthenticationError,
        ) as e:
            log.error(f"[GPT] service unavailable: {type(e).__name__}: {e}")
            raise ServiceUnavailable("OpenAI service unavailable", details=str(e)) from e
        except openai.APIStatusError as e:
            log.error(f"[GPT] request rejected ({e.status_code}): {e}")
            raise ModelServiceError("OpenAI API error", details=str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def extract_json_object(raw: str):
    """
    Parse a JSON object out of a model answer, tolerating ``` fences.

    Raises ModelOutputError when no valid object is present.
    """
    text = (raw or "").strip()
    text = re.sub(r"^```(?:json)?\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"\s*```$", "", text, flags=re.MULTILINE)
    start = text.find("{")
    end = text.rfind("}") + 1
    if start == -1 or end == 0:
        raise ModelOutputError("Model output is not a JSON object", details=f"No JSON object found: {text[:200]}")
    try:
        return json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ModelOutputError("Model output is not valid JSON", details=str(e)) from e
