"""
Chat Cloud Provider (OpenAI-compatible chat completions)

Works with any /chat/completions endpoint that accepts a bearer key
(OpenAI, Groq, OpenRouter, ...). Each call is a fresh single-turn exchange:
the message list holds only the current prompt.
"""

from medibrief.ai.base import LanguageModelProvider, provider_error_message
from medibrief.errors import ProviderHTTPError
from medibrief.logging_config import debug_log


def completion_text(data) -> str:
    """
    Text of choices[0].message.content.

    Content may be a string or a list of {"type": "text", "text": ...} parts.
    Returns "" if the field is missing.
    """
    if not isinstance(data, dict):
        return ""
    choices = data.get('choices')
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get('message') or {}
    content = message.get('content') if isinstance(message, dict) else None
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [item.get('text') for item in content if isinstance(item, dict)]
        return "\n".join(part for part in parts if isinstance(part, str))
    return ""


class ChatCloudProvider(LanguageModelProvider):
    """Hosted chat-completion client with an empty conversation history."""

    name = "Chat"
    requires_credential = True

    def _missing_credential_message(self) -> str:
        return "Chat API key is missing. Please set OPENAI_API_KEY in your environment or config file."

    def build_messages(self, prompt: str) -> list[dict[str, str]]:
        """Single user turn; no history is carried between calls."""
        return [{"role": "user", "content": prompt}]

    def _generate_sync(self, prompt: str, temperature: float) -> str:
        payload = {
            "model": self.model_name,
            "messages": self.build_messages(prompt),
            "temperature": temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        response = self._post(f"{self.api_base}/chat/completions", payload, headers)

        if response.status_code == 429:
            raise self._quota_error(response)
        if not 200 <= response.status_code < 300:
            message = provider_error_message(response)
            raise ProviderHTTPError(
                f"Chat provider error {response.status_code}: {message}",
                status=response.status_code,
                body=message,
                provider=self.name,
            )

        text = completion_text(self._json_body(response))
        if not text:
            debug_log("[CHAT] Response had no message content")
        return text
