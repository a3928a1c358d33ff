"""
Local Service Provider (Ollama)

Calls a same-network Ollama service through its REST API:
- fixed model and explicit context window (options.num_ctx)
- stream disabled, so one complete response comes back
- connection failures name the remediation (start the service)
"""

from medibrief.ai.base import LanguageModelProvider, provider_error_message
from medibrief.errors import NetworkUnavailableError, ProviderError, ProviderHTTPError
from medibrief.logging_config import debug_log, warning

# Tokens left free for the model's answer
OUTPUT_TOKEN_RESERVE = 300


class LocalServiceProvider(LanguageModelProvider):
    """
    Manages generation through a local Ollama service.

    Needs no credential; the endpoint and model come from ProviderConfig.
    """

    name = "Ollama"

    def _connection_error(self) -> ProviderError:
        return NetworkUnavailableError(
            f"Cannot connect to the local model service at {self.api_base}. "
            "Is Ollama running? Start it with: ollama serve",
            self.name,
        )

    def _generate_sync(self, prompt: str, temperature: float) -> str:
        context_window = self.context_window

        # Rough estimate: 1 token ~ 4 chars
        estimated_tokens = len(prompt) // 4
        if estimated_tokens > context_window - OUTPUT_TOKEN_RESERVE:
            warning(
                f"[OLLAMA] Prompt ({estimated_tokens} estimated tokens) may be truncated. "
                f"Context window is {context_window} tokens."
            )

        payload = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_ctx": context_window,
                "temperature": temperature,
            },
        }

        response = self._post(f"{self.api_base}/api/generate", payload)

        if response.status_code != 200:
            message = provider_error_message(response)
            if response.status_code == 404:
                message = f"{message}. Pull the model with: ollama pull {self.model_name}"
            raise ProviderHTTPError(
                f"Ollama returned status {response.status_code}: {message}",
                status=response.status_code,
                body=message,
                provider=self.name,
            )

        result = self._json_body(response)
        generated_text = result.get('response', '') if isinstance(result, dict) else ''
        tokens_used = result.get('eval_count', 0) if isinstance(result, dict) else 0
        debug_log(f"[OLLAMA] {tokens_used} tokens generated")

        return generated_text if isinstance(generated_text, str) else ''
