"""Priority merge of field values coming from several sources."""

from typing import Any, Dict, List, Mapping, Optional, Sequence


def is_filled(value: Any) -> bool:
    """A value counts as filled unless it is None or a blank string.

    False and 0 are real answers and count as filled.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def merge_fields(sources: Sequence[Optional[Mapping[str, Any]]]) -> Dict[str, Any]:
    """Merge field records, keeping the first filled value per field.

    Args:
        sources: Records in descending priority (index 0 wins). None entries
            are ignored.

    Returns:
        A new dict containing every field that is filled in at least one
        source. Fields filled nowhere are omitted, not set to None.
    """
    merged: Dict[str, Any] = {}
    for source in sources:
        if not source:
            continue
        for name, value in source.items():
            if name not in merged and is_filled(value):
                merged[name] = value
    return merged


def filled_field_names(record: Mapping[str, Any]) -> List[str]:
    """Names of the filled fields, in record order."""
    return [name for name, value in record.items() if is_filled(value)]
