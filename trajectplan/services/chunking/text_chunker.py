"""Split long text into line-aligned chunks for context-limited consumers."""

from typing import List


def chunk_text(text: str, max_len: int) -> List[str]:
    """Greedily pack lines into chunks of at most ``max_len`` characters.

    Lines are never split. A single line longer than ``max_len`` becomes a
    chunk of its own. Chunks are trimmed and empty chunks are dropped, so
    joining the result with newlines reproduces the input up to per-chunk
    leading/trailing whitespace.

    Args:
        text: Text to split
        max_len: Maximum chunk length in characters

    Returns:
        Ordered list of chunks

    Raises:
        ValueError: If max_len is smaller than 1
    """
    if max_len < 1:
        raise ValueError("max_len must be at least 1")
    if not text:
        return []

    chunks: List[str] = []
    current = ""
    has_content = False

    for line in text.split("\n"):
        candidate = f"{current}\n{line}" if has_content else line
        if has_content and len(candidate.strip()) > max_len:
            if current.strip():
                chunks.append(current.strip())
            current = line
        else:
            current = candidate
        has_content = True

    if current.strip():
        chunks.append(current.strip())

    return chunks
