"""Test doubles for the autofill pipeline collaborators."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from trajectplan.models.source_document import SourceDocument


def make_document(
    category: Optional[str],
    storage_ref: Optional[str] = None,
    uploaded_at: Optional[datetime] = None,
    subject_id: Any = None,
) -> SourceDocument:
    """Build a SourceDocument with sensible defaults."""
    doc_id = uuid4()
    return SourceDocument(
        id=doc_id,
        subject_id=subject_id or uuid4(),
        category=category,
        storage_ref=storage_ref if storage_ref is not None else f"documents/{doc_id}.pdf",
        uploaded_at=uploaded_at or datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


def storage_key(document: SourceDocument) -> str:
    return f"{document.id}.pdf"


class FakeDocumentStore:
    """In-memory document store."""

    def __init__(self, documents: List[SourceDocument], record: Optional[Dict[str, Any]] = None):
        self.documents = documents
        self.record = dict(record or {})
        self.upserts: List[Dict[str, Any]] = []
        self.fail_upsert: Optional[Exception] = None

    async def list_documents(self, subject_id):
        return list(self.documents)

    async def get_field_record(self, subject_id):
        return dict(self.record)

    async def upsert_field_record(self, subject_id, fields):
        if self.fail_upsert is not None:
            raise self.fail_upsert
        self.upserts.append(dict(fields))
        self.record.update(fields)


class FakeBlobStore:
    """Blob store serving bytes by key; unknown keys are not found."""

    def __init__(self, blobs: Dict[str, bytes]):
        self.blobs = blobs
        self.requested: List[str] = []

    async def download(self, key):
        self.requested.append(key)
        return self.blobs.get(key)
