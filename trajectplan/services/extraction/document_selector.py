"""Choose and order the source documents relevant to a report section."""

from typing import List, Optional, Sequence, Tuple

from trajectplan.models.source_document import SourceDocument
from trajectplan.services.extraction.categories import DEFAULT_PRIORITY_TABLE, PriorityTable
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentSelector:
    """Filters documents by category and orders them by source priority.

    Category matching is substring based and case-insensitive because upload
    labels are entered by hand ("AD-rapportage", "Intakeformulier 2024", ...).
    """

    def __init__(self, priority_table: Optional[PriorityTable] = None):
        self.priority_table = priority_table or DEFAULT_PRIORITY_TABLE

    def _sort_key(self, document: SourceDocument) -> Tuple[int, int, float]:
        rank = self.priority_table.rank(document.normalized_category)
        if document.uploaded_at is None:
            return rank, 1, 0.0
        # Most recent first within the same rank
        return rank, 0, -document.uploaded_at.timestamp()

    def matches_any(self, document: SourceDocument, wanted_categories: Sequence[str]) -> bool:
        """True if the document's label contains a variant of any wanted category."""
        normalized = document.normalized_category
        return any(self.priority_table.get(key).matches(normalized) for key in wanted_categories)

    def select(
        self,
        documents: Sequence[SourceDocument],
        wanted_categories: Optional[Sequence[str]] = None,
    ) -> List[SourceDocument]:
        """Filter to the wanted categories and sort by priority, then recency.

        Args:
            documents: All documents of one subject
            wanted_categories: Category keys to keep; None keeps everything

        Returns:
            The filtered documents, highest priority first. Empty when nothing matches.
        """
        if wanted_categories:
            candidates = [doc for doc in documents if self.matches_any(doc, wanted_categories)]
        else:
            candidates = list(documents)

        selected = sorted(candidates, key=self._sort_key)
        LOGGER.debug(
            f"Selected {len(selected)} of {len(documents)} documents",
            extra={"wanted_categories": list(wanted_categories or [])},
        )
        return selected

    def select_first(
        self,
        documents: Sequence[SourceDocument],
        wanted_categories: Optional[Sequence[str]] = None,
    ) -> Optional[SourceDocument]:
        """The single best document for the wanted categories, or None."""
        selected = self.select(documents, wanted_categories)
        return selected[0] if selected else None
