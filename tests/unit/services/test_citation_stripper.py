from trajectplan.services.citation.citation_stripper import strip_citations, strip_citations_from_fields


def test_source_annotation_removed_and_spaces_collapsed():
    assert strip_citations("Value【4:13†source】 with  extra   spaces") == "Value with extra spaces"


def test_file_citation_removed():
    text = "Werknemer is gemotiveerd [12:3/ad_rapport_2025.pdf] om te starten."
    assert strip_citations(text) == "Werknemer is gemotiveerd om te starten."


def test_numeric_citation_removed():
    assert strip_citations("Advies volgt [4:2 bron] hieronder.") == "Advies volgt hieronder."


def test_newlines_are_preserved():
    text = "Eerste alinea.【1:1†a】\n\nTweede  alinea."
    assert strip_citations(text) == "Eerste alinea.\n\nTweede alinea."


def test_leading_and_trailing_whitespace_trimmed():
    assert strip_citations("  tekst  ") == "tekst"


def test_plain_brackets_untouched():
    assert strip_citations("Trede [X] maanden") == "Trede [X] maanden"


def test_empty_text():
    assert strip_citations("") == ""


def test_only_string_fields_are_cleaned():
    fields = {"tekst": "A【1:2†b】  B", "uren": 32, "rijbewijs": True}
    assert strip_citations_from_fields(fields) == {"tekst": "A B", "uren": 32, "rijbewijs": True}
