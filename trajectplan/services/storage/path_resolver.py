"""Normalize stored document references into bucket-relative storage keys."""

import re
from typing import Optional

DEFAULT_BUCKET = "documents"


def resolve_storage_path(ref: Optional[str], bucket: str = DEFAULT_BUCKET) -> Optional[str]:
    """Convert a stored document reference into a key inside ``bucket``.

    Accepted forms:
        - public or signed object URL, e.g.
          ``https://host/storage/v1/object/public/documents/abc/x.pdf``
        - bucket-prefixed path, e.g. ``documents/abc/x.pdf``
        - bare bucket-relative key, e.g. ``abc/x.pdf``

    Args:
        ref: Stored reference, as found on the document record
        bucket: Storage bucket name

    Returns:
        The bucket-relative key, or None when the reference cannot be resolved.
        Never raises.
    """
    if not ref or not isinstance(ref, str):
        return None

    ref = ref.strip()
    if not ref:
        return None

    match = re.search(rf"/object/(?:public|sign)/{re.escape(bucket)}/([^?#]+)", ref)
    if match:
        return match.group(1)

    prefix = f"{bucket}/"
    if ref.startswith(prefix):
        return ref[len(prefix):] or None

    if "://" not in ref and "object/" not in ref:
        return ref

    return None
