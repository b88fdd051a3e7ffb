"""PoW-meter ("Perspectief op Werk") trede determination.

Seven yes/no questions are evaluated strictly in order, each as its own
structured completion. An answer the model cannot validate from the documents
stops at Trede 1; a "no" stops at that question's trede; seven validated
"yes" answers give Trede 6.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from trajectplan.schemas.field_schema import FieldSchema, FieldSpec, FieldType
from trajectplan.services.autofill.sections import CompleteFn
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)

POW_METER_FIELDS = ("pow_meter", "pow_meter_trede")


@dataclass(frozen=True)
class Trede:
    number: int
    description: str
    goal: str = ""
    target_hours: str = ""

    @property
    def name(self) -> str:
        return f"Trede {self.number}"


TREDE_INFO: Dict[int, Trede] = {
    1: Trede(
        1,
        "Geïsoleerd (< 2 uur actief binnenshuis) of Deelname aan een activiteit buitenshuis (< 2 uur)",
        "Empowerment, Dagstructuur, Zelfkennis",
        "> 2 uur per week actief (ook bij eigen werkgever) en/of traject on hold",
    ),
    2: Trede(
        2,
        "Deelname aan een activiteit buitenshuis (< 4 uur)",
        "Empowerment, Dagstructuur, Solliciteren, Beroepskeuze",
        "> 4 uur per week actief (ook bij eigen werkgever)",
    ),
    3: Trede(
        3,
        "Activering of spoor 1 (< 10 uur)",
        "Empowerment, Dagstructuur, Solliciteren, Beroepskeuze",
        "> 10 uur per week een activeringsplek (ook eigen werkgever)",
    ),
    4: Trede(
        4,
        "Stage/WEP/Re-integratie spoor 1 (< 20 uur of < 50%)",
        "Solliciteren, Beroepskeuze",
        "> 20 uur per week of 50% van de contracturen",
    ),
    5: Trede(
        5,
        "Parttime betaald werk, detachering, voorziening of eigen werkgever",
        "Solliciteren, Beroepskeuze",
        "> 50% van de contracturen (minimaal 11 uur)",
    ),
    6: Trede(6, "Weer volledig werkzaam binnen of buiten de organisatie"),
}


@dataclass(frozen=True)
class PowQuestion:
    number: int
    text: str
    # Trede assigned when the answer is "no"
    no_trede: int


POW_QUESTIONS: Tuple[PowQuestion, ...] = (
    PowQuestion(1, "Zijn er benutbare mogelijkheden (zie advies/ conclusie BA)?", 1),
    PowQuestion(
        2,
        "Komt men regelmatig het huis uit (2x per week)? Denk aan: geen contact buitenshuis, "
        "behalve functionele contacten zoals een bezoek aan de huisarts of fysiotherapeut",
        1,
    ),
    PowQuestion(
        3,
        "Heeft men minimaal 2x per week activiteiten/ sociale contacten buitenshuis? Denk aan: "
        "wekelijks contact met anderen buitenshuis, zoals het deelnemen aan een koffieochtend "
        "of het volgen van een cursus of taallessen.",
        2,
    ),
    PowQuestion(
        4,
        "Is men gemotiveerd om aan het werk te gaan? Staat men hiervoor open, is het een kwestie "
        "van niet willen of niet kunnen, zijn er factoren waar werknemer gedemotiveerd van raakt?",
        3,
    ),
    PowQuestion(
        5,
        "Kan men op het moment van de intake minimaal 12 uur per week werken? (geen urenbeperking) "
        "Denk aan: deelname aan activiteiten met uitvoering van taken met een lage werkdruk en/of "
        "met weinig eigen verantwoordelijkheid en/of zelfstandigheid.",
        3,
    ),
    PowQuestion(
        6,
        "Kan men zonder opleiding direct aan het werk? Denk aan: onbetaald werk, gericht op werk. "
        "Voert zelfstandig taken uit en/of draagt verantwoordelijkheid en/of opbrengst heeft "
        "economische waarde; en/of volgt een beroepsopleiding richting passend arbeid?",
        4,
    ),
    PowQuestion(
        7,
        "Kan een functie zonder aanpassingen, aanvulling inkomen/uitkering of voorzieningen "
        "(werkplek, taakaanpassing) etc. uitgevoerd worden? Is werknemer voor minimaal 65% "
        "hersteld gemeld in eigen of andere functie in spoor 1 of kan men minimaal 65% "
        "loonwaarde ergens anders in een passende functie genereren?",
        5,
    ),
)

QUESTION_SCHEMA = FieldSchema(
    name="evaluate_pow_question",
    description="Evalueer een vraag van de PoW-meter",
    properties=[
        FieldSpec(name="answer", type=FieldType.BOOLEAN, description="true = JA, false = NEE"),
        FieldSpec(
            name="validated",
            type=FieldType.BOOLEAN,
            description="true = zeker op basis van documenten, false = niet zeker",
        ),
        FieldSpec(name="reasoning", description="Korte uitleg met verwijzing naar de documenttekst"),
    ],
    required=["answer", "validated"],
)


@dataclass(frozen=True)
class QuestionEvaluation:
    question: int
    answer: bool
    validated: bool
    reasoning: str = ""


def build_question_prompt(question: PowQuestion, previous: List[QuestionEvaluation]) -> str:
    history = ""
    if previous:
        lines = [
            f"Vraag {p.question}: {'JA' if p.answer else 'NEE'} "
            f"({'gevalideerd' if p.validated else 'niet gevalideerd'})"
            for p in previous
        ]
        history = "Eerdere antwoorden:\n" + "\n".join(lines) + "\n\n"

    return (
        "Je bent een expert in het analyseren van Nederlandse re-integratiedocumenten voor de "
        "PoW-meter (Perspectief op Werk meter). Werk strikt sequentieel.\n\n"
        f"{history}"
        f"VRAAG {question.number}:\n{question.text}\n\n"
        "INSTRUCTIES:\n"
        "1. Analyseer alleen de aangeleverde documenttekst.\n"
        "2. Beantwoord de vraag met JA (true) of NEE (false).\n"
        "3. Zet validated alleen op true als expliciete informatie in de documenten het antwoord zeker maakt.\n"
        "4. Bij ontbrekende, ambigue of onduidelijke informatie: validated false en answer false."
    )


def describe_trede(trede: int, unvalidated: bool = False) -> str:
    """Dutch report sentence for a trede."""
    info = TREDE_INFO[trede]
    text = (
        f"Werknemer bevindt zich op het moment van de intake in {info.name} "
        f"({info.description}) van de PoW-meter."
    )
    if trede == 6:
        return f"{text} Werknemer is volledig werkzaam binnen of buiten de organisatie."
    if unvalidated:
        return (
            f"{text} De verwachting is dat werknemer binnen nu en [X] maanden "
            "de stap naar een hogere trede zal maken."
        )
    following = TREDE_INFO[trede + 1]
    return (
        f"{text} De verwachting is dat werknemer binnen nu en [X] maanden de stap naar "
        f"{following.name} ({following.description}) zal maken."
    )


async def evaluate_question(
    complete: CompleteFn,
    question: PowQuestion,
    corpus: List[str],
    previous: List[QuestionEvaluation],
) -> QuestionEvaluation:
    result: Dict[str, Any] = await complete(
        build_question_prompt(question, previous), corpus, QUESTION_SCHEMA
    )
    return QuestionEvaluation(
        question=question.number,
        answer=result.get("answer") is True,
        validated=result.get("validated") is True,
        reasoning=result.get("reasoning") or "",
    )


async def determine_trede(complete: CompleteFn, corpus: List[str]) -> Tuple[int, str]:
    """Walk the questions in order and return (trede, report sentence).

    Completion errors propagate; an unanswerable question is not defaulted here.
    """
    previous: List[QuestionEvaluation] = []
    stop: Optional[Tuple[int, bool]] = None

    for question in POW_QUESTIONS:
        evaluation = await evaluate_question(complete, question, corpus, previous)
        previous.append(evaluation)
        LOGGER.debug(
            f"PoW-meter question {question.number} evaluated",
            extra={"answer": evaluation.answer, "validated": evaluation.validated},
        )

        if not evaluation.validated:
            stop = (1, True)
            break
        if not evaluation.answer:
            stop = (question.no_trede, False)
            break

    trede, unvalidated = stop if stop is not None else (6, False)
    LOGGER.info(f"PoW-meter determined: Trede {trede} after {len(previous)} questions")
    return trede, describe_trede(trede, unvalidated=unvalidated)


async def generate_pow_meter(complete: CompleteFn, corpus: List[str]) -> Dict[str, Any]:
    trede, text = await determine_trede(complete, corpus)
    return {"pow_meter": text, "pow_meter_trede": trede}
