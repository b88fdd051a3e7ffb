"""Remove citation markers emitted by the completion service from generated text."""

import re
from typing import Any, Dict, Mapping

# [12:3/rapport.pdf] style file citations
_FILE_CITATION = re.compile(r"\[\d+:\d+/[^\]]+\.pdf\]", re.IGNORECASE)
# 【4:13†source】 style source annotations
_SOURCE_ANNOTATION = re.compile(r"【[^】]*】")
# [4:13] or [4:13 source] leftovers
_NUMERIC_CITATION = re.compile(r"\[\d+:\d+[^\]]*\]")
_MULTI_SPACE = re.compile(r" {2,}")


def strip_citations(text: str) -> str:
    """Strip citation markers, collapse repeated spaces and trim.

    Newlines are preserved; paragraph breaks matter to the report renderer.
    """
    if not text:
        return text

    cleaned = _FILE_CITATION.sub("", text)
    cleaned = _SOURCE_ANNOTATION.sub("", cleaned)
    cleaned = _NUMERIC_CITATION.sub("", cleaned)
    cleaned = _MULTI_SPACE.sub(" ", cleaned)
    return cleaned.strip()


def strip_citations_from_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply strip_citations to every string value of a field record."""
    return {
        name: strip_citations(value) if isinstance(value, str) else value
        for name, value in fields.items()
    }
