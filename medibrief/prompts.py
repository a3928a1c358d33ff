"""
Prompt Templates

Fixed prompt text for the three generation tasks:
- patient summary (single-shot mode)
- strict data extraction (one prompt per chunk)
- term explanation

The no-diagnosis rule lives in these templates. Every prompt is built fresh
per call through PromptSpec; nothing is cached between documents.
"""

from dataclasses import dataclass

NO_MEDICAL_DATA = "No medical data found in this section."

SUMMARY_DISCLAIMER = (
    "This summary is for informational purposes only and is not a diagnosis. "
    "Please consult your doctor."
)

SUMMARY_PREAMBLE = f"""You are a helpful medical assistant. Your job is to summarize a medical report for a PATIENT (non-medical person).
RULES:
1. Language: Simple, clear, and reassuring. Avoid complex jargon.
2. Focus: Explain what the results mean, especially abnormal ones.
3. SAFETY: DO NOT diagnose, DO NOT prescribe, DO NOT say "You have X disease". Use "This may indicate..." or "Commonly associated with...".
4. Structure:
   - **Patient Overview**: Name, Age, Sex (if found), Tests performed.
   - **Key Findings**: List ONLY abnormal results (High/Low). Format: "Test Name: Value (High/Low) - Simple Explanation".
   - **What This Means**: A short paragraph explaining the overall picture.
   - **Next Steps**: Advise consulting a doctor.
5. Disclaimer: End with "{SUMMARY_DISCLAIMER}"
"""

EXTRACTION_PREAMBLE = f"""You are a medical data extraction tool. Read the section of a medical report below and extract ONLY:
- Patient identifiers (name, age, sex, patient ID)
- Test names with their values, units and reference ranges
RULES:
1. IGNORE addresses, phone numbers, emails, page headers, footers and disclaimers.
2. Output a bullet list only. One bullet per item. No introduction, no closing remarks.
3. DO NOT add any diagnosis, interpretation or medical advice.
4. Copy values and units exactly as written.
5. If the section contains no medical data, output exactly: "{NO_MEDICAL_DATA}"
"""

TERM_PROMPT = """Explain the medical term "{term}" in simple, patient-friendly language.
Keep the explanation short (2-3 sentences).
Do NOT provide diagnosis or medical advice.
Just the definition."""


@dataclass(frozen=True)
class PromptSpec:
    """
    A single provider request.

    Attributes:
        task: 'summary', 'extraction' or 'explain'
        preamble: Fixed instructions for the task
        payload: Document text, chunk text or term
        temperature: Sampling temperature for this task
    """
    task: str
    preamble: str
    payload: str
    temperature: float

    def render(self) -> str:
        """Final prompt string sent to the provider."""
        if self.task == 'summary':
            return f"{self.preamble}\n\nDOCUMENT TEXT:\n{self.payload}\n\nPATIENT SUMMARY:"
        if self.task == 'extraction':
            return f"{self.preamble}\n\nREPORT SECTION:\n{self.payload}\n\nEXTRACTED DATA:"
        return self.preamble.format(term=self.payload)


def summary_prompt(text: str, temperature: float) -> PromptSpec:
    """Single-shot patient summary of the full cleaned text."""
    return PromptSpec(task='summary', preamble=SUMMARY_PREAMBLE, payload=text, temperature=temperature)


def extraction_prompt(chunk: str, temperature: float) -> PromptSpec:
    """Strict extraction of one chunk."""
    return PromptSpec(task='extraction', preamble=EXTRACTION_PREAMBLE, payload=chunk, temperature=temperature)


def term_prompt(term: str, temperature: float) -> PromptSpec:
    """Definition of one medical term."""
    return PromptSpec(task='explain', preamble=TERM_PROMPT, payload=term, temperature=temperature)
