import pytest

from trajectplan.services.extraction.text_extractor import (
    TextExtractionService,
    annotate_section_headers,
    extract_labeled_fields,
    scan_printable_runs,
)


def _strategy(name, output, calls):
    def run(data: bytes) -> str:
        calls.append(name)
        return output
    return name, run


def _failing(name, calls):
    def run(data: bytes) -> str:
        calls.append(name)
        raise RuntimeError("parser exploded")
    return name, run


def test_first_strategy_clearing_threshold_wins_and_stops_cascade():
    calls = []
    service = TextExtractionService(
        min_text_length=10,
        strategies=[
            _strategy("short", "te kort", calls),
            _failing("broken", calls),
            _strategy("good", "voldoende lange tekst", calls),
            _strategy("later", "ook een lange tekst", calls),
        ],
    )

    text, name = service.extract_with_strategy(b"data")

    assert (text, name) == ("voldoende lange tekst", "good")
    assert calls == ["short", "broken", "good"]


def test_all_strategies_failing_returns_empty_string():
    calls = []
    service = TextExtractionService(
        min_text_length=10,
        strategies=[_strategy("short", "kort", calls), _failing("broken", calls)],
    )

    assert service.extract(b"data") == ""
    assert service.extract_with_strategy(b"data") == ("", None)


def test_per_call_threshold_override():
    calls = []
    service = TextExtractionService(
        min_text_length=50,
        strategies=[_strategy("only", "twintig tekens tekst", calls)],
    )

    assert service.extract(b"data") == ""
    assert service.extract(b"data", min_text_length=10) == "twintig tekens tekst"


def test_empty_bytes_short_circuit():
    calls = []
    service = TextExtractionService(strategies=[_strategy("only", "x" * 100, calls)])
    assert service.extract(b"") == ""
    assert calls == []


def test_negative_threshold_rejected():
    with pytest.raises(ValueError):
        TextExtractionService(min_text_length=-1)


def test_real_pdf_uses_structured_parse(sample_pdf_content):
    text, name = TextExtractionService(min_text_length=20).extract_with_strategy(sample_pdf_content)

    assert name == "pdf_parse"
    assert "Jan Jansen" in text
    assert "Magazijnmedewerker" in text


def test_corrupted_bytes_yield_nothing(corrupted_content):
    assert TextExtractionService(min_text_length=20).extract(corrupted_content) == ""


def test_non_pdf_text_falls_back_to_utf8_scan():
    data = "Werknemer woont samen met partner en heeft twee kinderen.\x00\x01".encode("utf-8")
    text, name = TextExtractionService(min_text_length=20).extract_with_strategy(data)

    assert name == "utf8_scan"
    assert text.startswith("Werknemer woont samen")


def test_scan_printable_runs_joins_runs_with_spaces():
    decoded = "\x00\x00Eerste leesbare run\x01\x02kort\x03Tweede leesbare run\x04"
    assert scan_printable_runs(decoded, 10) == "Eerste leesbare run Tweede leesbare run"


def test_extract_labeled_fields_collects_matched_snippets():
    decoded = "\x00Naam werknemer: Jan Jansen\r\n\x01Functietitel: Chauffeur\n\x02rest"
    result = extract_labeled_fields(decoded, [r"Naam werknemer:\s*[^\n\r]+", r"Functietitel:\s*[^\n\r]+", r"Leeftijd:\s*\d+"])
    assert result == "Naam werknemer: Jan Jansen\nFunctietitel: Chauffeur"


def test_annotate_section_headers():
    text = "Persoonsgegevens\nJan Jansen\nAdvies: tweede spoor starten"
    annotated = annotate_section_headers(text)

    assert "== PERSOONSGEGEVENS ==" in annotated
    assert "== ADVIES ==\ntweede spoor starten" in annotated
    assert "Jan Jansen" in annotated


def test_annotate_ignores_headings_inside_a_line():
    text = "Het advies van de arbeidsdeskundige volgt."
    assert annotate_section_headers(text) == text


def test_annotate_numbered_intake_headings():
    text = "5. Medische situatie\nFML van 25 april 2025\n7. Arbeidsdeskundige rapport\nFunctie: monteur"
    annotated = annotate_section_headers(text)

    assert "== MEDISCHE SITUATIE ==" in annotated
    assert "== ARBEIDSDESKUNDIGE RAPPORT ==" in annotated
    assert "5." not in annotated
    assert "7." not in annotated
    assert "Functie: monteur" in annotated
