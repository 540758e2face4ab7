from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import ProviderKind, Settings
from .errors import (
    ExtractionError,
    MissingCredentialError,
    TransportFailedError,
    TransportTimeoutError,
)
from .extract import extract
from .prompt import Prompt

logger = logging.getLogger(__name__)


def _messages(prompt: Prompt) -> list:
    return [
        {"role": "system", "content": prompt.system},
        {"role": "user", "content": prompt.user},
    ]


class ProviderTransport:
    """POST one prompt to the configured service and hand back the raw body."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self._client = client or httpx.Client(http2=True, timeout=float(settings.http_timeout_secs))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ProviderTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, prompt: Prompt):
        s = self.settings
        base = s.base_url.rstrip("/")
        if s.llm_service is ProviderKind.OLLAMA:
            body: Dict[str, Any] = {
                "model": s.model,
                "stream": False,
                "format": "json",
                "messages": _messages(prompt),
            }
            return f"{base}/api/chat", {}, body

        if not s.api_key:
            raise MissingCredentialError(
                "OpenAI API key is not set (export SHELLPLAN_OPENAI_API_KEY or OPENAI_API_KEY)"
            )
        body = {
            "model": s.model,
            "input": _messages(prompt),
            "text": {"format": {"type": "json_object"}},
            "store": False,
        }
        headers = {"Authorization": f"Bearer {s.api_key}"}
        return f"{base}/v1/responses", headers, body

    def send(self, prompt: Prompt) -> str:
        url, headers, body = self._request(prompt)
        logger.debug("POST %s (model=%s)", url, self.settings.model)
        try:
            resp = self._client.post(url, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(
                f"provider did not answer within {self.settings.http_timeout_secs}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportFailedError(None, "", str(exc)) from exc

        if not resp.is_success:
            raise TransportFailedError(resp.status_code, resp.text, resp.reason_phrase or "HTTP error")
        return resp.text


def request_answer(transport: ProviderTransport, prompt: Prompt) -> str:
    """Send the prompt and pull the model's answer text out of the envelope."""
    raw = transport.send(prompt)
    try:
        return extract(raw, transport.settings.llm_service.locator)
    except ExtractionError:
        logger.debug("raw provider response:\n%s", raw)
        raise
