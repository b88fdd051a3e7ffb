"""Data models for uploaded source documents and their extracted text."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class SourceDocument:
    """One uploaded file as seen by the autofill pipeline.

    Attributes:
        id: Document identifier
        subject_id: Identifier of the employee the document belongs to
        category: Document type label as entered on upload (any spelling)
        storage_ref: Full object URL, bucket-prefixed path or bare bucket key
        uploaded_at: Upload timestamp, used to prefer the most recent document
        name: Original file name, for logging only
    """

    id: Any
    subject_id: Any
    category: Optional[str]
    storage_ref: Optional[str]
    uploaded_at: Optional[datetime] = None
    name: Optional[str] = None

    @property
    def normalized_category(self) -> str:
        """Lowercased, stripped category used for matching."""
        return (self.category or "").strip().lower()

    @classmethod
    def from_record(cls, record: Any) -> "SourceDocument":
        """Build from a ``documents`` table row."""
        return cls(
            id=record.id,
            subject_id=record.employee_id,
            category=record.type,
            storage_ref=record.url,
            uploaded_at=record.uploaded_at,
            name=record.name,
        )

    def __str__(self) -> str:
        return f"SourceDocument(id={self.id}, category={self.category!r})"


@dataclass(frozen=True)
class ExtractedText:
    """Text recovered from one document, tagged for labeling in the corpus."""

    document: SourceDocument
    text: str
    label: str

    def as_section(self) -> str:
        """Render as a labeled block for the combined corpus."""
        return f"== {self.label} ==\n{self.text}"
