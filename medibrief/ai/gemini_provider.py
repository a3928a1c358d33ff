"""
Keyed Cloud Provider (Google Gemini)

Single-shot call to the Gemini generateContent REST endpoint, authenticated
by a static API key sent in the x-goog-api-key header.
"""

from medibrief.ai.base import MAX_ERROR_BODY_CHARS, LanguageModelProvider
from medibrief.errors import ProviderHTTPError
from medibrief.logging_config import debug_log


class KeyedCloudProvider(LanguageModelProvider):
    """
    Gemini REST client.

    HTTP 429 maps to QuotaExceededError with a retry hint. A response that
    parses but lacks candidates[0].content.parts[0].text yields "" because
    some prompts legitimately produce no content (e.g. safety blocks).
    """

    name = "Gemini"
    requires_credential = True
    quota_hint = "The free tier is temporarily exhausted. Please try again in 5-10 minutes."

    def _missing_credential_message(self) -> str:
        return "Gemini API Key is missing. Please set GEMINI_API_KEY in your environment or config file."

    def _generate_sync(self, prompt: str, temperature: float) -> str:
        url = f"{self.api_base}/models/{self.model_name}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature},
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key,
        }

        response = self._post(url, payload, headers)

        if response.status_code == 429:
            raise self._quota_error(response)
        if not 200 <= response.status_code < 300:
            body = (response.text or "")[:MAX_ERROR_BODY_CHARS]
            raise ProviderHTTPError(
                f"Gemini Error: {response.status_code} {response.reason or ''} - {body}".replace("  ", " "),
                status=response.status_code,
                body=body,
                provider=self.name,
            )

        return self._candidate_text(self._json_body(response))

    def _candidate_text(self, data) -> str:
        """candidates[0].content.parts[0].text, or "" if any level is missing."""
        try:
            text = data['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError):
            finish = None
            if isinstance(data, dict) and data.get('candidates'):
                first = data['candidates'][0]
                finish = first.get('finishReason') if isinstance(first, dict) else None
            debug_log(f"[GEMINI] Response had no text (finishReason={finish})")
            return ""
        return text if isinstance(text, str) else ""
