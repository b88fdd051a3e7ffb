"""Request and response payloads of the autofill endpoints."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

FieldValue = Union[bool, int, str]


class AutofillRequest(BaseModel):
    authoritative_values: Dict[str, Any] = Field(
        default_factory=dict,
        description="Values that take precedence over everything extracted or on file",
    )
    persist: bool = Field(default=True, description="Store the reconciled fields")


class AutofillData(BaseModel):
    section: str
    details: Dict[str, FieldValue] = Field(default_factory=dict)
    autofilled_fields: List[str] = Field(default_factory=list)
    persisted: bool = False
    sources: List[str] = Field(default_factory=list, description="IDs of the documents that were read")
    warnings: List[str] = Field(default_factory=list)
    empty_reason: Optional[str] = Field(
        default=None, description="no_source_documents or no_readable_text when nothing was generated"
    )


class SectionInfo(BaseModel):
    name: str
    description: str
    source_mode: str
    wanted_categories: List[str]
    fields: List[str]
