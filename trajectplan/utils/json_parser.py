import json
from typing import Any, Dict, Optional

from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```)."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from LLM output.

    Handles markdown code blocks and prose before or after the object.
    Only objects are accepted; arrays and scalars yield None.

    Args:
        text: Raw model output

    Returns:
        The parsed object, or None if no object could be parsed
    """
    if not text:
        return None

    cleaned = strip_code_fences(text)

    try:
        parsed = json.loads(cleaned)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, scanning for an object...")

    # Fall back to the first decodable object in the text
    decoder = json.JSONDecoder()
    idx = cleaned.find("{")
    while idx != -1:
        try:
            obj, _ = decoder.raw_decode(cleaned, idx)
            if isinstance(obj, dict):
                return obj
        except json.JSONDecodeError:
            pass
        idx = cleaned.find("{", idx + 1)

    LOGGER.error("Failed to parse JSON object from model output")
    return None
