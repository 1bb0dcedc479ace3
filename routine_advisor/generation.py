from __future__ import annotations

"""Generation backends.

Every backend exposes ``async complete(payload) -> str``. The worker backend posts the
payload to a remote endpoint, the Gemini backend sends the same chat messages to
Gemini, and the local backend produces an offline preview when neither is configured.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from google.api_core import exceptions as google_exceptions

from .config import Settings
from .errors import FetchError, RemoteRejection
from .gemini_client import GeminiClient
from .models import Product
from .normalizer import error_text, extract_assistant_text

logger = logging.getLogger("routine_advisor.generation")


class Generator(Protocol):
    async def complete(self, payload: Dict[str, Any]) -> str:
        ...


class WorkerGenerator:
    """POST the JSON payload to a worker URL and normalize whatever comes back."""

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client

    async def complete(self, payload: Dict[str, Any]) -> str:
        """Purpose: Send one generation request to the worker.
        Inputs/Outputs: Input is the payload dict; returns normalized reply text.
        Side Effects / State: One HTTP POST; no retries.
        Dependencies: httpx, extract_assistant_text, error_text.
        Failure Modes: Transport errors raise FetchError; non-2xx raises RemoteRejection.
        If Removed: The configured worker is never called.
        Testing Notes: Use httpx.MockTransport for success, error, and non-JSON bodies.
        """
        # Post, decode leniently, then map status to text or rejection.
        logger.debug("worker payload=%s", payload)
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise FetchError(f"worker request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None
        logger.debug("worker status=%s response=%s", response.status_code, data)

        if not response.is_success:
            raise RemoteRejection(response.status_code, error_text(data, response.status_code))
        return extract_assistant_text(data)


class GeminiGenerator:
    """Answer payload messages with Gemini."""

    def __init__(self, client: GeminiClient) -> None:
        self._client = client

    async def complete(self, payload: Dict[str, Any]) -> str:
        try:
            text = await self._client.generate_chat(payload.get("messages", []))
        except google_exceptions.GoogleAPIError as exc:
            raise FetchError(f"gemini request failed: {exc}") from exc
        return extract_assistant_text(text)


class LocalGenerator:
    """Offline preview used when no remote backend is configured."""

    async def complete(self, payload: Dict[str, Any]) -> str:
        if "question" in payload:
            return local_followup_reply(payload["question"])
        products = [Product(**item) for item in payload.get("products", [])]
        return local_routine(products)


def local_routine(products: List[Product]) -> str:
    """Group product names by category into a numbered plain-text routine."""
    lines = ["Personalized Routine (local preview):"]
    grouped: Dict[str, List[str]] = {}
    for product in products:
        grouped.setdefault(product.category or "misc", []).append(product.name)
    for category, names in grouped.items():
        lines.append(f"\n{category[:1].upper()}{category[1:]}:")
        for position, name in enumerate(names, start=1):
            lines.append(f"  {position}. {name}")
    lines.append("\nTip: For best results, connect a generation endpoint by setting WORKER_URL.")
    return "\n".join(lines)


def local_followup_reply(question: str) -> str:
    return f'About your question: "{question}" — I can help with general advice about the selected products.'


def build_generator(settings: Settings) -> Generator:
    """Pick the backend: worker URL first, then Gemini, then the local preview."""
    if settings.worker_url:
        logger.info("generation backend=worker url=%s", settings.worker_url)
        return WorkerGenerator(settings.worker_url, timeout=settings.worker_timeout)
    if settings.gemini_api_key:
        logger.info("generation backend=gemini model=%s", settings.gemini_model)
        return GeminiGenerator(GeminiClient(settings.gemini_api_key, settings.gemini_model))
    logger.info("generation backend=local")
    return LocalGenerator()
