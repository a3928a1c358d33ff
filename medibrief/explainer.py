"""
Medical Term Explainer

Answers "what does this word on my report mean?" in two or three
patient-friendly sentences. This path is conversational: provider failures
are logged and replaced by a fixed fallback sentence, never shown raw.
"""

from medibrief.ai.base import LanguageModelProvider
from medibrief.config import PipelineConfig
from medibrief.errors import EmptyInputError, ProviderError
from medibrief.logging_config import debug_log, error
from medibrief.prompts import term_prompt

EMPTY_TERM_MESSAGE = "Please ask a medical term."
FALLBACK_MESSAGE = "I cannot explain this term right now. Please try again later or ask your doctor."


class TermExplainer:
    """Explains single medical terms through any LanguageModelProvider."""

    def __init__(self, provider: LanguageModelProvider, config: PipelineConfig | None = None):
        self.provider = provider
        self.temperature = (config or PipelineConfig()).explain_temperature

    async def explain(self, term: str) -> str:
        """
        Explain a medical term.

        Args:
            term: The word or phrase to explain

        Returns:
            The explanation, EMPTY_TERM_MESSAGE for blank input, or
            FALLBACK_MESSAGE if the provider failed or answered nothing
        """
        term = (term or "").strip()
        if not term:
            return EMPTY_TERM_MESSAGE

        spec = term_prompt(term, self.temperature)
        try:
            answer = await self.provider.generate(spec.render(), spec.temperature)
        except ProviderError as e:
            error(f"[EXPLAIN] {type(e).__name__} from {e.provider}: {e.user_message}")
            return FALLBACK_MESSAGE

        answer = answer.strip()
        if not answer:
            debug_log("[EXPLAIN] Provider returned an empty answer")
            return FALLBACK_MESSAGE
        return answer

    @staticmethod
    def require_term(term: str) -> str:
        """
        Strict validation for callers that want an exception instead of
        the friendly prompt.

        Raises:
            EmptyInputError: If term is empty or whitespace only
        """
        term = (term or "").strip()
        if not term:
            raise EmptyInputError(EMPTY_TERM_MESSAGE)
        return term
