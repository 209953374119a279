from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Union

import requests

logger = logging.getLogger(__name__)

RaterOutput = Union[str, Mapping[str, Any]]


class RaterError(RuntimeError):
    """Transport-level failure talking to an external rater."""


class Rater(Protocol):
    async def rate(self, system_prompt: str, user_payload: str) -> RaterOutput:
        ...


class CallableRater:
    """Adapt a bare async callable to the Rater interface."""

    def __init__(self, fn: Callable[[str, str], Awaitable[RaterOutput]]) -> None:
        self._fn = fn

    async def rate(self, system_prompt: str, user_payload: str) -> RaterOutput:
        return await self._fn(system_prompt, user_payload)


class ChatCompletionsRater:
    """
    Rater backed by an OpenAI-compatible chat-completions endpoint.

    The blocking HTTP call runs in a worker thread. Returns the raw message
    content; parsing and clamping happen in the gate. Built from config, a
    missing API key raises RaterError on the first call.
    """

    def __init__(
        self,
        url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 60,
        temperature: float = 0.1,
        session: Optional[requests.Session] = None,
        api_key_env: Optional[str] = None,
    ) -> None:
        self.url = url
        self.model = model
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.api_key_env = api_key_env
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, endpoint: Mapping[str, Any]) -> "ChatCompletionsRater":
        key_env = str(endpoint.get("api_key_env", "OPENAI_API_KEY"))
        return cls(
            url=str(endpoint["url"]),
            model=str(endpoint["model"]),
            api_key=os.getenv(key_env) or None,
            api_key_env=key_env,
            timeout_seconds=float(endpoint.get("timeout_seconds", 60)),
            temperature=float(endpoint.get("temperature", 0.1)),
        )

    def _request_body(self, system_prompt: str, user_payload: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_payload},
            ],
        }

    def _post(self, system_prompt: str, user_payload: str) -> str:
        if self.api_key_env and not self.api_key:
            raise RaterError(f"Missing API key: set the {self.api_key_env} environment variable.")
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            r = self._session.post(
                self.url,
                json=self._request_body(system_prompt, user_payload),
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise RaterError(f"Rater request failed: {self.url} ({exc})") from exc
        if not r.ok:
            raise RaterError(f"Rater request failed: {self.url} (status {r.status_code})")
        try:
            body = r.json()
            return str(body["choices"][0]["message"]["content"])
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise RaterError(f"Unexpected rater response shape from {self.url}") from exc

    async def rate(self, system_prompt: str, user_payload: str) -> RaterOutput:
        logger.debug("posting setup to %s model=%s", self.url, self.model)
        return await asyncio.to_thread(self._post, system_prompt, user_payload)
