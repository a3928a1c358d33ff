"""
Language Model Provider Base

Defines the single capability every backend offers:

    text = await provider.generate(prompt, temperature)

Concrete providers implement _generate_sync() with a blocking requests call;
generate() runs it in a worker thread so callers can await it alongside other
requests. HTTP transport failures are mapped to the ProviderError taxonomy
here so each provider only deals with its own request and response shapes.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any

import requests

from medibrief.config import ProviderConfig
from medibrief.errors import (
    MalformedResponseError,
    MissingCredentialError,
    NetworkUnavailableError,
    ProviderError,
    QuotaExceededError,
)
from medibrief.logging_config import debug_log, warning

# Maximum characters of a provider error body kept in messages
MAX_ERROR_BODY_CHARS = 500


def provider_error_message(response: requests.Response) -> str:
    """
    Best human-readable message from a failed provider response.

    Looks for {"error": {"message": ...}}, {"error": "..."} and {"message": ...}
    in a JSON body and falls back to the raw body text.
    """
    raw = (response.text or "").strip()
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        err = payload.get('error')
        if isinstance(err, dict):
            msg = err.get('message')
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
        if isinstance(err, str) and err.strip():
            return err.strip()
        msg = payload.get('message')
        if isinstance(msg, str) and msg.strip():
            return msg.strip()

    return raw[:MAX_ERROR_BODY_CHARS] or f"HTTP {response.status_code}"


def retry_hint(response: requests.Response, default: str) -> str:
    """Retry window from a Retry-After header, or the provider's default hint."""
    retry_after = response.headers.get('Retry-After', '').strip()
    if retry_after.isdigit():
        return f"Please try again in {retry_after} seconds."
    return default


class LanguageModelProvider(ABC):
    """
    Abstract base class for language model backends.

    Attributes:
        name: Short name used in logs and error messages
        config: Read-only ProviderConfig the provider was built from
        requires_credential: True if generate() needs config.api_key
    """

    name: str = "provider"
    requires_credential: bool = False
    quota_hint: str = "Please try again in a few minutes."

    def __init__(self, config: ProviderConfig):
        """
        Initialize the provider.

        A missing credential is logged here and raised on the first
        generate() call.

        Args:
            config: Provider settings resolved at start-up
        """
        self.config = config
        self.api_base = config.endpoint.rstrip('/')
        self.model_name = config.model
        self.timeout = config.timeout_seconds

        if self.requires_credential and not config.api_key:
            warning(f"[{self.name.upper()}] No API key configured; generation will fail until one is set.")

    @property
    def context_window(self) -> int:
        """Context budget in tokens."""
        return self.config.context_window

    async def generate(self, prompt: str, temperature: float | None = None) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Complete prompt text
            temperature: Sampling temperature; defaults to config.temperature

        Returns:
            Generated text, stripped. Empty string if the response had no text.

        Raises:
            ProviderError: MissingCredentialError, QuotaExceededError,
                NetworkUnavailableError, ProviderHTTPError or MalformedResponseError
        """
        if temperature is None:
            temperature = self.config.temperature
        self._check_credentials()

        tag = f"[{self.name.upper()} GENERATE]"
        debug_log(f"{tag} Model: {self.model_name}, temperature: {temperature}, "
                  f"prompt length: {len(prompt)} chars")

        start_time = time.perf_counter()
        text = await asyncio.to_thread(self._generate_sync, prompt, temperature)
        elapsed = time.perf_counter() - start_time

        debug_log(f"{tag} Generation complete in {elapsed:.2f}s, output length: {len(text)} chars")
        return text.strip()

    @abstractmethod
    def _generate_sync(self, prompt: str, temperature: float) -> str:
        """Blocking request/response cycle. Runs in a worker thread."""

    def _check_credentials(self):
        if self.requires_credential and not self.config.api_key:
            raise MissingCredentialError(self._missing_credential_message(), self.name)

    def _missing_credential_message(self) -> str:
        return f"{self.name} API key is missing. Please check your configuration."

    def _connection_error(self) -> ProviderError:
        """Error raised when the endpoint cannot be reached."""
        return NetworkUnavailableError(
            f"Cannot reach {self.name} at {self.api_base}. Please check your network connection.",
            self.name,
        )

    def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str] | None = None) -> requests.Response:
        """POST JSON, mapping transport failures to NetworkUnavailableError."""
        try:
            return requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise NetworkUnavailableError(
                f"{self.name} did not respond within {self.timeout:.0f} seconds. Please try again.",
                self.name,
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise self._connection_error() from e
        except requests.exceptions.RequestException as e:
            raise NetworkUnavailableError(f"Request to {self.name} failed. Please try again.", self.name) from e

    def _quota_error(self, response: requests.Response) -> QuotaExceededError:
        hint = retry_hint(response, self.quota_hint)
        return QuotaExceededError(
            f"Quota exceeded (429) for {self.name}. {hint}",
            self.name,
            retry_hint=hint,
        )

    def _json_body(self, response: requests.Response) -> Any:
        """Decode a 2xx JSON body or raise MalformedResponseError."""
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{self.name} returned a response that is not valid JSON.", self.name
            ) from e

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model_name!r}, endpoint={self.api_base!r})"
