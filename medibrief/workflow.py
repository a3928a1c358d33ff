"""
Document Summary Workflow

Dashboard flow for stored reports:

    1. Reuse the saved summary unless regeneration is forced.
    2. Resolve the document to a (time-limited) DocumentReference.
    3. Summarize it.
    4. Save the result if it succeeded.

Store failures are logged per document; a summary that could not be saved
is still returned.

Storage and document lookup are collaborator ports, so the workflow runs
against any backend (a database, an object store, or in-memory fakes in
tests).
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Protocol, runtime_checkable

from medibrief.errors import MediBriefError
from medibrief.extraction import DocumentReference
from medibrief.logging_config import debug_log, error, info
from medibrief.summarization import SummarizationOrchestrator, SummaryResult


@runtime_checkable
class DocumentSource(Protocol):
    """Document lookup: id -> readable location plus declared kind."""

    async def get_reference(self, document_id: str) -> DocumentReference:
        """Raise LookupError (or a MediBriefError) if the document is unknown."""
        ...


@runtime_checkable
class SummaryStore(Protocol):
    """Summary persistence keyed by document id."""

    async def get_summary(self, document_id: str) -> str | None:
        ...

    async def save_summary(self, document_id: str, result: SummaryResult) -> None:
        ...


class DocumentSummaryWorkflow:
    """
    Summarize stored documents, caching results in a SummaryStore.

    Attributes:
        orchestrator: SummarizationOrchestrator doing the actual work
        documents: DocumentSource port
        summaries: SummaryStore port
    """

    def __init__(self, orchestrator: SummarizationOrchestrator,
                 documents: DocumentSource, summaries: SummaryStore):
        self.orchestrator = orchestrator
        self.documents = documents
        self.summaries = summaries

    async def summarize_document(self, document_id: str, force_regenerate: bool = False) -> SummaryResult:
        """
        Summary for one stored document.

        Args:
            document_id: Identifier understood by both ports
            force_regenerate: Ignore a saved summary and summarize again

        Returns:
            SummaryResult; mode "stored" when the saved summary was reused
        """
        if not force_regenerate:
            try:
                stored = await self.summaries.get_summary(document_id)
            except Exception as e:
                # Unreadable store: treat as a cache miss
                error(f"[WORKFLOW] Could not read stored summary for {document_id}: {e!r}")
                stored = None
            if stored:
                debug_log(f"[WORKFLOW] Reusing stored summary for {document_id}")
                return SummaryResult(summary=stored, mode="stored")

        try:
            reference = await self.documents.get_reference(document_id)
        except (LookupError, MediBriefError) as e:
            error(f"[WORKFLOW] Could not resolve document {document_id}: {e!r}")
            return SummaryResult.failure(f"Could not open document {document_id}.")

        result = await self.orchestrator.summarize(reference)

        if result.success:
            try:
                await self.summaries.save_summary(document_id, result)
            except Exception as e:
                error(f"[WORKFLOW] Could not save summary for {document_id}: {e!r}")
            else:
                info(f"[WORKFLOW] Saved summary for {document_id}")
        else:
            info(f"[WORKFLOW] Not saving failed summary for {document_id}: {result.error_message}")

        return result

    async def summarize_many(self, document_ids: Iterable[str],
                             force_regenerate: bool = False) -> dict[str, SummaryResult]:
        """
        Summarize independent documents concurrently.

        Returns:
            Results keyed by document id, in input order
        """
        ids = list(document_ids)
        results = await asyncio.gather(
            *(self.summarize_document(doc_id, force_regenerate) for doc_id in ids)
        )
        return dict(zip(ids, results))
