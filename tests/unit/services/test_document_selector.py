from dataclasses import replace
from datetime import datetime, timezone

from tests.fakes import make_document
from trajectplan.services.extraction.categories import DEFAULT_PRIORITY_TABLE, PriorityTable
from trajectplan.services.extraction.document_selector import DocumentSelector


def _at(day: int) -> datetime:
    return datetime(2025, 3, day, tzinfo=timezone.utc)


def test_select_orders_by_priority_table():
    table = PriorityTable.from_keys(["intake", "assessment", "other"])
    other = make_document("other")
    assessment = make_document("assessment")
    intake = make_document("intake")

    selected = DocumentSelector(table).select([other, assessment, intake])

    assert selected == [intake, assessment, other]


def test_select_filters_wanted_categories():
    table = PriorityTable.from_keys(["intake", "assessment", "other"])
    docs = [make_document("intake"), make_document("assessment"), make_document("other")]

    selected = DocumentSelector(table).select(docs, ["assessment"])

    assert [doc.category for doc in selected] == ["assessment"]


def test_select_matches_spelling_variants_case_insensitively():
    docs = [
        make_document("AD-Rapportage 2024"),
        make_document("Arbeidsdeskundig rapport"),
        make_document("Intakeformulier"),
    ]

    selected = DocumentSelector().select(docs, ["ad_rapport"])

    assert {doc.category for doc in selected} == {"AD-Rapportage 2024", "Arbeidsdeskundig rapport"}


def test_most_recent_first_within_rank_and_missing_timestamps_last():
    old = make_document("intake", uploaded_at=_at(1))
    new = make_document("intake", uploaded_at=_at(20))
    undated = replace(make_document("intake"), uploaded_at=None)

    selected = DocumentSelector().select([old, undated, new])

    assert selected == [new, old, undated]


def test_unknown_categories_sort_last():
    unknown = make_document("loonstrook")
    uncategorized = make_document(None)
    intake = make_document("intake")

    selected = DocumentSelector().select([unknown, uncategorized, intake])

    assert selected[0] is intake
    assert set(selected[1:]) == {unknown, uncategorized}


def test_no_match_returns_empty_list():
    docs = [make_document("intake")]
    selector = DocumentSelector()

    assert selector.select(docs, ["fml_izp"]) == []
    assert selector.select_first(docs, ["fml_izp"]) is None
    assert selector.select([]) == []


def test_select_first_takes_best_document():
    docs = [make_document("overig"), make_document("FML"), make_document("intake")]
    assert DocumentSelector().select_first(docs).category == "intake"


def test_wanted_category_missing_from_table_matches_on_its_name():
    docs = [make_document("Loonstrook januari"), make_document("intake")]
    selected = DocumentSelector().select(docs, ["loonstrook"])
    assert [doc.category for doc in selected] == ["Loonstrook januari"]


def test_reordered_table_changes_rank():
    table = DEFAULT_PRIORITY_TABLE.reordered(["ad_rapport", "fml_izp"])
    assert [c.key for c in table.categories] == ["ad_rapport", "fml_izp", "intake", "overig"]
    assert table.rank("ad rapport") == 0
    assert table.rank("iets anders") == len(table.categories)


def test_label_for():
    assert DEFAULT_PRIORITY_TABLE.label_for("inzetbaarheidsprofiel") == "FML/IZP"
    assert DEFAULT_PRIORITY_TABLE.label_for("loonstrook") == "LOONSTROOK"
    assert DEFAULT_PRIORITY_TABLE.label_for("") == "ONBEKEND"
