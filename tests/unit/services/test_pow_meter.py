import pytest
from unittest.mock import AsyncMock

from trajectplan.core.exceptions import CompletionError
from trajectplan.services.autofill.pow_meter import (
    POW_QUESTIONS,
    QUESTION_SCHEMA,
    QuestionEvaluation,
    build_question_prompt,
    describe_trede,
    determine_trede,
    generate_pow_meter,
)

YES = {"answer": True, "validated": True, "reasoning": "Staat in de intake"}
NO = {"answer": False, "validated": True}
UNSURE = {"answer": False, "validated": False}


def _scripted(*answers) -> AsyncMock:
    return AsyncMock(side_effect=list(answers))


def test_question_no_tredes_follow_the_meter():
    assert [q.no_trede for q in POW_QUESTIONS] == [1, 1, 2, 3, 3, 4, 5]


@pytest.mark.asyncio
async def test_all_questions_yes_gives_trede_6():
    complete = _scripted(*[YES] * 7)

    trede, text = await determine_trede(complete, ["corpus"])

    assert trede == 6
    assert complete.await_count == 7
    assert "volledig werkzaam" in text


@pytest.mark.asyncio
@pytest.mark.parametrize("yes_count, expected", [(0, 1), (1, 1), (2, 2), (3, 3), (4, 3), (5, 4), (6, 5)])
async def test_first_no_stops_at_question_trede(yes_count, expected):
    complete = _scripted(*([YES] * yes_count + [NO]))

    trede, text = await determine_trede(complete, ["corpus"])

    assert trede == expected
    assert complete.await_count == yes_count + 1
    assert text.startswith(f"Werknemer bevindt zich op het moment van de intake in Trede {expected} (")


@pytest.mark.asyncio
async def test_unvalidated_answer_stops_at_trede_1():
    complete = _scripted(YES, YES, YES, {"answer": True, "validated": False})

    trede, text = await determine_trede(complete, ["corpus"])

    assert trede == 1
    assert "de stap naar een hogere trede" in text


@pytest.mark.asyncio
async def test_previous_answers_are_passed_to_later_questions():
    complete = _scripted(YES, UNSURE)

    await determine_trede(complete, ["deel 1", "deel 2"])

    second_prompt, corpus, schema = complete.await_args_list[1].args
    assert "Vraag 1: JA (gevalideerd)" in second_prompt
    assert "VRAAG 2:" in second_prompt
    assert corpus == ["deel 1", "deel 2"]
    assert schema is QUESTION_SCHEMA


@pytest.mark.asyncio
async def test_generate_pow_meter_returns_both_fields():
    result = await generate_pow_meter(_scripted(YES, NO), ["corpus"])

    assert result["pow_meter_trede"] == 1
    assert "de stap naar Trede 2" in result["pow_meter"]


@pytest.mark.asyncio
async def test_completion_errors_propagate():
    complete = AsyncMock(side_effect=CompletionError("Completion returned no text"))

    with pytest.raises(CompletionError):
        await determine_trede(complete, ["corpus"])


def test_describe_trede_names_next_step():
    text = describe_trede(4)

    assert "Trede 4 (Stage/WEP/Re-integratie spoor 1" in text
    assert "de stap naar Trede 5 (Parttime betaald werk" in text


def test_first_prompt_has_no_history():
    prompt = build_question_prompt(POW_QUESTIONS[0], [])
    assert "Eerdere antwoorden" not in prompt

    prompt = build_question_prompt(POW_QUESTIONS[1], [QuestionEvaluation(1, False, False)])
    assert "Vraag 1: NEE (niet gevalideerd)" in prompt
