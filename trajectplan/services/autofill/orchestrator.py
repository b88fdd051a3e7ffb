"""Autofill pipeline orchestrator.

Runs one report section for one subject:
collect documents -> extract text -> chunk -> request completion
-> strip citations -> reconcile by priority -> persist (best-effort).
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from trajectplan.core.config import ExtractionSettings, settings
from trajectplan.core.exceptions import (
    APIClientError,
    CompletionError,
    DatabaseError,
    PersistenceError,
    PipelineError,
    StorageError,
    ValidationError,
)
from trajectplan.core.llm_client import CompletionClient
from trajectplan.models.source_document import ExtractedText, SourceDocument
from trajectplan.schemas.field_schema import FieldSchema
from trajectplan.services.autofill.sections import SectionConfig, SectionRegistry, SourceMode
from trajectplan.services.chunking.text_chunker import chunk_text
from trajectplan.services.citation.citation_stripper import strip_citations_from_fields
from trajectplan.services.extraction.categories import OVERIG
from trajectplan.services.extraction.document_selector import DocumentSelector
from trajectplan.services.extraction.text_extractor import TextExtractionService, annotate_section_headers
from trajectplan.services.reconciliation.field_merger import filled_field_names, merge_fields
from trajectplan.services.storage.path_resolver import resolve_storage_path
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)

NO_SOURCE_DOCUMENTS = "no_source_documents"
NO_READABLE_TEXT = "no_readable_text"


class DocumentStore(Protocol):
    async def list_documents(self, subject_id: Any) -> List[SourceDocument]: ...

    async def get_field_record(self, subject_id: Any) -> Dict[str, Any]: ...

    async def upsert_field_record(self, subject_id: Any, fields: Dict[str, Any]) -> None: ...


class BlobStore(Protocol):
    async def download(self, key: str) -> Optional[bytes]: ...


@dataclass
class RunOptions:
    """Per-invocation options.

    Attributes:
        authoritative_values: Caller-supplied values that win over every other source
        persist: Store the reconciled fields after the run
    """

    authoritative_values: Dict[str, Any] = field(default_factory=dict)
    persist: bool = True


@dataclass
class SectionResult:
    section: str
    fields: Dict[str, Any]
    filled_field_names: List[str]
    sources: List[str] = field(default_factory=list)
    persisted: bool = False
    warnings: List[str] = field(default_factory=list)

    empty = False


@dataclass
class EmptySectionResult:
    """No data for the section: nothing to read, or nothing readable."""

    section: str
    reason: str
    message: str
    warnings: List[str] = field(default_factory=list)

    empty = True


RunResult = Union[SectionResult, EmptySectionResult]


class AutofillOrchestrator:
    """Parameterized pipeline shared by every report section.

    Collaborators are injected so each can be replaced by a test double.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        blob_store: BlobStore,
        completion_client: CompletionClient,
        extractor: Optional[TextExtractionService] = None,
        selector: Optional[DocumentSelector] = None,
        sections: Optional[SectionRegistry] = None,
        extraction_settings: Optional[ExtractionSettings] = None,
        bucket: Optional[str] = None,
    ):
        self.document_store = document_store
        self.blob_store = blob_store
        self.completion_client = completion_client
        self.extractor = extractor or TextExtractionService()
        self.selector = selector or DocumentSelector()
        self.sections = sections or SectionRegistry()
        self.extraction_settings = extraction_settings or settings.extraction
        self.bucket = bucket or settings.storage_bucket

    async def run_section(
        self,
        subject_id: Any,
        section_name: str,
        options: Optional[RunOptions] = None,
    ) -> RunResult:
        """Fill one report section for a subject.

        Args:
            subject_id: Employee (subject) ID
            section_name: Registered section name
            options: Authoritative values and persistence switch

        Returns:
            SectionResult with the reconciled fields, or EmptySectionResult when
            no document matched or none yielded readable text

        Raises:
            SectionNotFoundError: Unknown section name
            CompletionError: Provider error, timeout or nonconforming response
            PipelineError: The document store could not be read
        """
        section = self.sections.get(section_name)
        options = options or RunOptions()
        warnings: List[str] = []
        log_extra = {"subject_id": str(subject_id), "section": section.name}

        # Collecting documents
        try:
            documents = await self.document_store.list_documents(subject_id)
        except DatabaseError as e:
            raise PipelineError(f"Failed to list documents for section '{section.name}'", original_error=e)

        selector = DocumentSelector(section.priority_table) if section.priority_table else self.selector
        selected = selector.select(documents, section.wanted_categories or None)
        if not selected:
            LOGGER.info("No source documents for section", extra=log_extra)
            return EmptySectionResult(
                section=section.name,
                reason=NO_SOURCE_DOCUMENTS,
                message="Geen brondocumenten gevonden voor deze sectie",
            )

        # Extracting
        if section.source_mode == SourceMode.FIRST_AVAILABLE:
            texts = await self._extract_first_available(selected, selector, section, warnings)
        else:
            texts = await self._extract_all(selected, selector, section, warnings)

        if not texts:
            LOGGER.warning(
                f"None of {len(selected)} selected documents yielded readable text",
                extra=log_extra,
            )
            return EmptySectionResult(
                section=section.name,
                reason=NO_READABLE_TEXT,
                message="Documenten gevonden, maar geen leesbare tekst",
                warnings=warnings,
            )

        # Reading the record on file
        record: Dict[str, Any] = {}
        if section.authoritative_fields or section.context_fields:
            try:
                record = await self.document_store.get_field_record(subject_id)
            except DatabaseError as e:
                raise PipelineError(f"Failed to read field record for section '{section.name}'", original_error=e)

        # Chunking and requesting
        prompt = self._build_prompt(section, record)
        if section.source_mode == SourceMode.PER_DOCUMENT:
            per_document = []
            for text in texts:
                per_document.append(
                    await self._generate(section, prompt, self._build_corpus(section, [text]))
                )
            generated = merge_fields(per_document)
        else:
            generated = await self._generate(section, prompt, self._build_corpus(section, texts))

        # Reconciling
        generated = strip_citations_from_fields(generated)
        flags = {
            flag: any(selector.matches_any(text.document, [key]) for text in texts)
            for flag, key in section.source_flags.items()
        }
        on_file = {name: record.get(name) for name in section.authoritative_fields}
        allowed = set(section.field_names)
        caller = {k: v for k, v in options.authoritative_values.items() if k in allowed}

        fields = merge_fields([caller, on_file, flags, generated, section.defaults])
        for flag, names in section.default_unless.items():
            if not fields.get(flag):
                fields.update({name: section.defaults[name] for name in names if name not in caller})
        fields = {k: v for k, v in fields.items() if k in allowed}
        filled = filled_field_names(fields)

        # Persisting
        persisted = False
        if options.persist and fields:
            try:
                await self.document_store.upsert_field_record(subject_id, fields)
                persisted = True
            except (PersistenceError, DatabaseError) as e:
                LOGGER.warning(f"Persisting section fields failed: {e}", extra=log_extra)
                warnings.append("Velden zijn berekend maar konden niet worden opgeslagen")

        LOGGER.info(
            f"Section completed with {len(filled)} filled fields",
            extra={**log_extra, "persisted": persisted, "documents": len(texts)},
        )
        return SectionResult(
            section=section.name,
            fields=fields,
            filled_field_names=filled,
            sources=[str(text.document.id) for text in texts],
            persisted=persisted,
            warnings=warnings,
        )

    async def _download_and_extract(
        self,
        document: SourceDocument,
        selector: DocumentSelector,
        section: SectionConfig,
        warnings: List[str],
    ) -> Optional[ExtractedText]:
        """Fetch and extract one document; every failure becomes a warning and None."""
        key = resolve_storage_path(document.storage_ref, self.bucket)
        if key is None:
            LOGGER.warning(f"Skipping {document}: unresolvable storage reference")
            warnings.append(f"Document {document.id} heeft geen bruikbare opslaglocatie")
            return None

        try:
            data = await self.blob_store.download(key)
        except StorageError as e:
            LOGGER.warning(f"Skipping {document}: download failed: {e}")
            warnings.append(f"Document {document.id} kon niet worden gedownload")
            return None

        if data is None:
            LOGGER.warning(f"Skipping {document}: object not found", extra={"key": key})
            warnings.append(f"Document {document.id} niet gevonden in opslag")
            return None

        text = await asyncio.to_thread(self.extractor.extract, data, section.min_text_length)
        if not text:
            warnings.append(f"Document {document.id} bevat geen leesbare tekst")
            return None

        if section.annotate_headers:
            text = annotate_section_headers(text)
        label = selector.priority_table.label_for(document.normalized_category)
        return ExtractedText(document=document, text=text, label=label)

    async def _extract_all(
        self,
        documents: Sequence[SourceDocument],
        selector: DocumentSelector,
        section: SectionConfig,
        warnings: List[str],
    ) -> List[ExtractedText]:
        # Downloads run concurrently; gather keeps the priority order
        results = await asyncio.gather(*[
            self._download_and_extract(document, selector, section, warnings)
            for document in documents
        ])
        return [result for result in results if result is not None]

    async def _extract_first_available(
        self,
        documents: Sequence[SourceDocument],
        selector: DocumentSelector,
        section: SectionConfig,
        warnings: List[str],
    ) -> List[ExtractedText]:
        """Return the first readable document in priority order.

        Only the most recent document of a known category is tried; documents
        filed as overig or under an unknown label are each tried in turn.
        """
        tried = set()
        for document in documents:
            category = selector.priority_table.classify(document.normalized_category)
            if category is not None and category.key != OVERIG.key:
                if category.key in tried:
                    continue
                tried.add(category.key)

            extracted = await self._download_and_extract(document, selector, section, warnings)
            if extracted is not None:
                return [extracted]
        return []

    def _build_corpus(self, section: SectionConfig, texts: Sequence[ExtractedText]) -> List[str]:
        combined = "\n\n".join(text.as_section() for text in texts)
        limit = section.max_corpus_chars or self.extraction_settings.max_corpus_chars
        if len(combined) > limit:
            LOGGER.debug(f"Truncating corpus from {len(combined)} to {limit} characters")
            combined = combined[:limit]
        return chunk_text(combined, self.extraction_settings.chunk_max_chars)

    @staticmethod
    def _build_prompt(section: SectionConfig, record: Dict[str, Any]) -> str:
        if not section.context_fields:
            return section.prompt
        lines = [
            f"- {name}: {record[name]}" for name in section.context_fields
            if name in record and record[name] not in (None, "")
        ]
        if not lines:
            return section.prompt
        return f"{section.prompt}\n\nBEKENDE GEGEVENS (gebruik deze exacte waarden):\n" + "\n".join(lines)

    async def _complete(
        self, prompt: str, corpus: Union[str, List[str]], schema: Optional[FieldSchema] = None
    ) -> Any:
        """Call the completion client; every provider or conformance failure is a CompletionError."""
        try:
            result = await self.completion_client.complete(prompt, corpus, schema)
        except CompletionError:
            raise
        except APIClientError as e:
            raise CompletionError(f"Completion request failed: {e}", original_error=e)

        if schema is None:
            if not isinstance(result, str) or not result.strip():
                raise CompletionError("Completion returned no text")
            return result.strip()

        try:
            return schema.validate_output(result)
        except ValidationError as e:
            raise CompletionError(f"Completion response does not match '{schema.name}': {e}", original_error=e)

    async def _generate(self, section: SectionConfig, prompt: str, corpus: List[str]) -> Dict[str, Any]:
        if section.generator is not None:
            return await section.generator(self._complete, corpus)
        if section.schema is None:
            return {section.output_field: await self._complete(prompt, corpus)}
        return await self._complete(prompt, corpus, section.schema)
