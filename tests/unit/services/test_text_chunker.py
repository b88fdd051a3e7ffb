import pytest

from trajectplan.services.chunking.text_chunker import chunk_text


SAMPLE = "\n".join(f"Regel {i}: werknemer werkt {i} uur per week." for i in range(40))


@pytest.mark.parametrize("max_len", [50, 120, 400, 10_000])
def test_chunks_rejoin_to_original_text(max_len):
    chunks = chunk_text(SAMPLE, max_len)
    assert "\n".join(chunks) == SAMPLE


@pytest.mark.parametrize("max_len", [50, 120, 400])
def test_chunks_respect_bound_when_lines_fit(max_len):
    assert all(len(chunk) <= max_len for chunk in chunk_text(SAMPLE, max_len))


def test_overlong_line_is_kept_whole():
    long_line = "x" * 30
    chunks = chunk_text(f"kort\n{long_line}\nkort", 10)
    assert chunks == ["kort", long_line, "kort"]


def test_chunks_are_trimmed_and_empty_chunks_dropped():
    chunks = chunk_text("  eerste  \n\n\n   \ntweede regel", 8)
    assert chunks == ["eerste", "tweede regel"]
    assert all(chunk == chunk.strip() and chunk for chunk in chunks)


def test_short_text_is_single_chunk():
    assert chunk_text("een\ntwee", 4000) == ["een\ntwee"]


def test_empty_text():
    assert chunk_text("", 100) == []
    assert chunk_text("   \n  ", 100) == []


def test_max_len_must_be_positive():
    with pytest.raises(ValueError):
        chunk_text("tekst", 0)
