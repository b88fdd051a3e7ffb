"""Section registry: what each Trajectplan section reads, asks and stores."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from trajectplan.core.exceptions import SectionNotFoundError
from trajectplan.schemas.field_schema import FieldSchema, FieldSpec, FieldType
from trajectplan.services.extraction.categories import DEFAULT_PRIORITY_TABLE, PriorityTable

# (prompt, corpus, schema) -> validated dict or plain text
CompleteFn = Callable[[str, Any, Optional[FieldSchema]], Awaitable[Any]]
# (complete, corpus chunks) -> generated field values
SectionGenerator = Callable[[CompleteFn, List[str]], Awaitable[Dict[str, Any]]]

NB_DEFAULT_GEEN_AD = (
    "NB: in het kader van de algemene verordening gegevensbescherming (AVG) worden in deze "
    "rapportage geen medische termen en diagnoses vermeld. Voor meer informatie over ons "
    "privacyreglement en het klachtenreglement verwijzen wij u naar onze website."
)

_NO_CITATIONS = "Geen bronvermeldingen of citatiemarkeringen in de output."


class SourceMode(str, Enum):
    """How the selected documents feed the completion."""

    COMBINED = "combined"
    FIRST_AVAILABLE = "first_available"
    PER_DOCUMENT = "per_document"


@dataclass
class SectionConfig:
    """Per-section pipeline parameters.

    Attributes:
        name: Section identifier used in routes and logs
        prompt: System prompt for the completion
        schema: Structured output fields; None requests plain text stored under ``output_field``
        output_field: Field receiving plain-text output
        wanted_categories: Category keys to read; empty reads every document
        source_mode: How the selected documents feed the completion
        priority_table: Section-specific category order; None uses the selector's table
        authoritative_fields: Fields whose on-file values win over generated ones
        context_fields: On-file fields listed in the prompt as known facts
        source_flags: Boolean fields set from whether a category contributed readable text
        defaults: Lowest-priority values for fields left empty
        default_unless: Fields reset to their default whenever the named source flag is False
        min_text_length: Usable-text threshold override for the extraction cascade
        max_corpus_chars: Corpus truncation override
        annotate_headers: Rewrite known report headings to ``== HEADING ==`` markers
        generator: Custom generation replacing the single schema completion
    """

    name: str
    prompt: str = ""
    schema: Optional[FieldSchema] = None
    output_field: Optional[str] = None
    description: str = ""
    wanted_categories: Tuple[str, ...] = ()
    source_mode: SourceMode = SourceMode.COMBINED
    priority_table: Optional[PriorityTable] = None
    authoritative_fields: Tuple[str, ...] = ()
    context_fields: Tuple[str, ...] = ()
    source_flags: Dict[str, str] = field(default_factory=dict)
    defaults: Dict[str, Any] = field(default_factory=dict)
    default_unless: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    min_text_length: Optional[int] = None
    max_corpus_chars: Optional[int] = None
    annotate_headers: bool = False
    generator: Optional[SectionGenerator] = None
    generated_fields: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.schema is None and self.generator is None and not self.output_field:
            raise ValueError(f"Section '{self.name}' needs a schema, an output field or a generator")
        for flag, names in self.default_unless.items():
            if flag not in self.source_flags:
                raise ValueError(f"Section '{self.name}' resets fields on unknown flag '{flag}'")
            missing = [name for name in names if name not in self.defaults]
            if missing:
                raise ValueError(f"Section '{self.name}' has no default for {missing}")

    @property
    def field_names(self) -> List[str]:
        """Every field this section can fill, in a stable order."""
        names: List[str] = []
        if self.schema is not None:
            names.extend(self.schema.field_names)
        if self.output_field:
            names.append(self.output_field)
        names.extend(self.generated_fields)
        names.extend(self.source_flags)
        names.extend(self.defaults)
        # Preserve first occurrence
        return list(dict.fromkeys(names))


def _text_schema(name: str, field_name: str, description: str = "") -> FieldSchema:
    """Schema with one required narrative string field."""
    return FieldSchema(
        name=name,
        description=description,
        properties=[FieldSpec(name=field_name, type=FieldType.STRING)],
        required=[field_name],
    )


EMPLOYEE_INFO_SCHEMA = FieldSchema(
    name="extract_employee_fields",
    description="Extract structured employee profile fields",
    properties=[
        FieldSpec(name="current_job"),
        FieldSpec(name="work_experience"),
        FieldSpec(
            name="education_level",
            enum=["Praktijkonderwijs", "VMBO", "HAVO", "VWO", "MBO", "HBO", "WO"],
        ),
        FieldSpec(name="drivers_license", type=FieldType.BOOLEAN),
        FieldSpec(name="has_transport", type=FieldType.BOOLEAN),
        FieldSpec(name="dutch_speaking", type=FieldType.BOOLEAN),
        FieldSpec(name="dutch_writing", type=FieldType.BOOLEAN),
        FieldSpec(name="dutch_reading", type=FieldType.BOOLEAN),
        FieldSpec(name="has_computer", type=FieldType.BOOLEAN),
        FieldSpec(name="computer_skills", type=FieldType.INTEGER, minimum=1, maximum=5),
        FieldSpec(name="contract_hours", type=FieldType.INTEGER, minimum=0),
        FieldSpec(name="other_employers"),
    ],
    required=["current_job", "education_level"],
)

TP_DATES_SCHEMA = FieldSchema(
    name="extract_tp_fields",
    description="Extract structured TP document fields",
    properties=[
        FieldSpec(name="intake_date", format="date"),
        FieldSpec(name="tp_start_date", format="date"),
        FieldSpec(name="tp_end_date", format="date"),
        FieldSpec(name="tp_creation_date", format="date"),
        FieldSpec(name="ad_report_date", format="date"),
        FieldSpec(name="fml_izp_lab_date", format="date"),
        FieldSpec(name="first_sick_day", format="date"),
        FieldSpec(name="registration_date", format="date"),
        FieldSpec(name="occupational_doctor_name"),
        FieldSpec(name="occupational_doctor_org"),
        FieldSpec(name="tp_lead_time", type=FieldType.INTEGER, minimum=0,
                  description="Doorlooptijd in weken"),
    ],
)

INLEIDING_SCHEMA = FieldSchema(
    name="build_inleiding",
    description="Bouw de inleiding en het AD-subblok",
    properties=[
        FieldSpec(name="inleiding"),
        FieldSpec(name="inleiding_sub"),
    ],
    required=["inleiding"],
)

EMPLOYEE_INFO_PROMPT = """
Je bent een assistent gespecialiseerd in het analyseren van Nederlandse AD-rapportages.
Gebruik alleen tekst uit de rapporten zelf en maak nooit aannames.

Haal alleen de volgende gegevens uit het rapport:
- Beroep of functie van de werknemer
- Relevante werkervaring
- Opleidingsniveau (precies een van: Praktijkonderwijs, VMBO, HAVO, VWO, MBO, HBO, WO)
- Rijbewijs (ja/nee) en vervoer beschikbaar
- Computervaardigheden op een schaal van 1 (geen) tot 5 (expert)
- Contracturen en andere werkgevers indien vermeld
- Taalvaardigheid Nederlands (spreken/schrijven/lezen)
- Heeft de werknemer een computer thuis?

Elk veld moet gebaseerd zijn op expliciete informatie uit het document.
""".strip()

TP_DATES_PROMPT = """
Je bent een assistent die Nederlandse documenten analyseert voor het invullen van een trajectplan.
Gebruik alleen tekst uit het document en geef enkel gegevens die expliciet vermeld staan.

Herken velden ook aan synoniemen, bijvoorbeeld:
- "eerste verzuimdag" of "eerste ziektedag" -> first_sick_day
- "datum rapportage" -> ad_report_date
- "IZP" of "inzetbaarheidsprofiel" -> fml_izp_lab_date

Datums in ISO-formaat (JJJJ-MM-DD). tp_lead_time is de doorlooptijd in weken.
""".strip()

INLEIDING_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf de "Inleiding" van het trajectplan:
- 4 tot 7 korte alinea's, zakelijk en AVG-proof (geen diagnoses).
- Neem een alinea "Functieomschrijving:" op.
- Gebruik primair de AD-tekst; is er geen AD-rapport, gebruik dan de intake.
Velden:
- inleiding: de hoofdtekst.
- inleiding_sub: alleen als er een AD-rapport is, een blok dat begint met
  "In het Arbeidsdeskundige rapport ..." met naam, datum en samenvatting van het advies.
  Laat leeg als er geen AD-rapport is.
{_NO_CITATIONS}
""".strip()

BELEMMERINGEN_PROMPT = f"""
Bouw de sectie "Praktische belemmeringen" als korte puntsgewijze opsomming (3 tot 8 punten), AVG-proof.
Neem alleen niet-medische, praktische knelpunten uit de intake op, zoals vervoer en rijbewijs, taalniveau,
zorgtaken, werktijden, hulpmiddelen, digitale vaardigheden en reistijd. Geen diagnoses, geen aannames.
{_NO_CITATIONS}
""".strip()

PROGNOSE_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf uitsluitend de sectie "prognose_bedrijfsarts".

Regels:
- Datums voluit in het Nederlands, bijvoorbeeld "23 oktober 2025", nooit numeriek.
- Eerste regel, zonder aanhalingstekens: "Op [datum] geeft bedrijfsarts [naam] in de terugkoppeling het volgende aan:"
- Daarna een geciteerd blok met de labels **Reintegratieadvies:** en **Prognose:**.
- De tekst onder beide labels wordt letterlijk uit het brondocument overgenomen, niet geparafraseerd.
{_NO_CITATIONS}
""".strip()

ADVIES_AD_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf uitsluitend de sectie "advies_ad_passende_arbeid".

Structuur:
**In het arbeidsdeskundigrapport opgesteld door [naam] op [datum] staat het volgende advies over passende arbeid:**

*[Hoofdadvies over het 2e spoor en passende arbeid, in cursief]*

Passend werk sluit aan bij de bekwaamheden (zie persoonsprofiel) en belastbaarheid (zie FML) van werknemer.
Enkele voorbeelden van passend werk:

• [Voorbeeld 1]
• [Voorbeeld 2]
• [Voorbeeld 3]

Alleen feitelijke informatie uit de documenten, geen subjectieve bewoordingen.
{_NO_CITATIONS}
""".strip()

SOCIALE_ACHTERGROND_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf uitsluitend de tekst van de sectie
"Sociale achtergrond" als 1 tot 3 alinea's, gescheiden door een lege regel.
- Alleen wat expliciet in de documenten staat: woonsituatie, ondersteuning, sociale activiteiten,
  praktische zaken zoals taal, rijbewijs, vervoer en uren.
- Schrijf "Werknemer", nooit "De werknemer".
- Noem nooit exacte leeftijden van kinderen of familieleden; gebruik "minderjarige" of "meerderjarige".
- Geen medische informatie over de werknemer of over anderen.
{_NO_CITATIONS}
""".strip()

VISIE_WERKNEMER_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf uitsluitend de tekst van de sectie
"Visie werknemer" als 1 tot 2 alinea's, gescheiden door een lege regel.
Benoem houding, motivatie en wensen, wat wel en niet lukt binnen de huidige belastbaarheid en de
bereidheid ten aanzien van het 2e spoor (onderzoeken, scholing, trajectdoel).
Geen medische details of diagnoses, zakelijk en AVG-proof.
{_NO_CITATIONS}
""".strip()

PERSOONLIJK_PROFIEL_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf de sectie "persoonlijk_profiel" als een
doorlopende alinea met:
1. Leeftijd, geslacht, datum in dienst, organisatie en functietitel
2. Loopbaan: taken en rollen, zonder beschrijving van de functie-inhoud
3. Hoogst afgeronde opleiding
4. Mobiliteit: rijbewijs, eigen auto of openbaar vervoer
5. Taalbeheersing Nederlands en Engels
6. Computervaardigheden, in een aparte zin
Nooit subjectieve of waarderende bewoordingen.
{_NO_CITATIONS}
""".strip()

ZOEKPROFIEL_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf de sectie "zoekprofiel" in twee alinea's,
gescheiden door een lege regel.
Alinea 1: kwalificaties en ervaring. Gebruik het opleidingsniveau en de functietitels uit de bekende
gegevens letterlijk en verwijs naar de FML met datum (voluit, bijvoorbeeld "23 oktober 2025").
Alinea 2: gewenste werkomstandigheden uit de FML en documenten, zoals fysieke belasting, werktempo,
teamomgeving, bereikbaarheid en opbouw van uren.
Is het opleidingsniveau onbekend, schrijf dan "functies passend bij opleiding en ervaring".
Verhaalvorm, geen opsommingen.
{_NO_CITATIONS}
""".strip()

VISIE_PLAATSBAARHEID_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Schrijf de sectie "visie_plaatsbaarheid".
Focus op EXTERNE functiemogelijkheden op de algemene arbeidsmarkt, niet op interne functies.

Structuur:
Naast de functies die de arbeidsdeskundige mogelijk als passend beschouwt denkt de loopbaan adviseur ook aan:

☑ [Functietitel]: [voorwaarde of reden waarom geschikt]
(4 tot 5 functies)
☑ En soortgelijk.

Baseer de suggesties op opleiding, ervaring en vaardigheden en houd rekening met de FML-beperkingen.
{_NO_CITATIONS}
""".strip()

VISIE_LOOPBAANADVISEUR_PROMPT = f"""
Je bent een NL re-integratie-rapportage assistent. Lees alle aangeleverde documenten en schrijf
uitsluitend de sectie "visie_loopbaanadviseur".
Gebruik uit het intakeformulier de secties "Medische situatie" (primaire bron voor de FML-beperkingen)
en "7. Arbeidsdeskundige rapport" (functiecontext).

Structuur:
**Werknemer heeft conform de FML van [datum] opgesteld door bedrijfsarts [naam bedrijfsarts] werkend onder
supervisie van bedrijfsarts [naam supervisor] beperkingen in de volgende rubrieken:**

• Persoonlijk functioneren
• Sociaal functioneren
• Aanpassing aan fysieke omgevingseisen
• Dynamische handelingen
• Statische houdingen
• Werktijden

Regels:
- Eerste zin tussen **dubbele sterretjes**.
- Datum voluit, bijvoorbeeld "25 april 2025", nooit numeriek. Gebruik de FML-datum uit de bekende gegevens.
- Neem de namen van bedrijfsarts en supervisor uit de bekende gegevens of de documenten; alleen als ze
  nergens staan de placeholders [naam bedrijfsarts] en [naam supervisor].
- Alleen rubrieken met daadwerkelijke beperkingen, met • als opsommingsteken.
{_NO_CITATIONS}
""".strip()

_AD_FIRST_TABLE = DEFAULT_PRIORITY_TABLE.reordered(["ad_rapport", "intake"])
_POW_METER_TABLE = DEFAULT_PRIORITY_TABLE.reordered(["ad_rapport", "fml_izp", "intake"])


def _build_default_sections() -> Dict[str, SectionConfig]:
    # Imported here so the generator module can depend on this one
    from trajectplan.services.autofill.pow_meter import POW_METER_FIELDS, generate_pow_meter

    sections = [
        SectionConfig(
            name="employee_info",
            description="Werknemersprofiel uit alle documenten",
            prompt=EMPLOYEE_INFO_PROMPT,
            schema=EMPLOYEE_INFO_SCHEMA,
            annotate_headers=True,
        ),
        SectionConfig(
            name="tp_dates",
            description="Trajectdatums en bedrijfsarts, per document in volgorde van prioriteit",
            prompt=TP_DATES_PROMPT,
            schema=TP_DATES_SCHEMA,
            source_mode=SourceMode.PER_DOCUMENT,
            authoritative_fields=("intake_date", "registration_date", "first_sick_day"),
        ),
        SectionConfig(
            name="inleiding",
            description="Inleiding op basis van AD-rapport, anders intake",
            prompt=INLEIDING_PROMPT,
            schema=INLEIDING_SCHEMA,
            wanted_categories=("ad_rapport", "intake"),
            priority_table=_AD_FIRST_TABLE,
            context_fields=("intake_date", "ad_report_date", "client_name"),
            source_flags={"has_ad_report": "ad_rapport"},
            defaults={"inleiding_sub": NB_DEFAULT_GEEN_AD},
            default_unless={"has_ad_report": ("inleiding_sub",)},
            min_text_length=50,
            max_corpus_chars=40000,
        ),
        SectionConfig(
            name="praktische_belemmeringen",
            description="Praktische belemmeringen uit het intakeformulier",
            prompt=BELEMMERINGEN_PROMPT,
            schema=_text_schema("build_praktische_belemmeringen", "praktische_belemmeringen"),
            wanted_categories=("intake",),
            source_mode=SourceMode.FIRST_AVAILABLE,
            min_text_length=50,
            max_corpus_chars=22000,
        ),
        SectionConfig(
            name="prognose_bedrijfsarts",
            description="Prognose bedrijfsarts uit FML/IZP, anders AD-rapport",
            prompt=PROGNOSE_PROMPT,
            schema=_text_schema("build_prognose_bedrijfsarts", "prognose_bedrijfsarts"),
            wanted_categories=("fml_izp", "ad_rapport"),
            source_mode=SourceMode.FIRST_AVAILABLE,
            priority_table=DEFAULT_PRIORITY_TABLE.reordered(["fml_izp", "ad_rapport"]),
            min_text_length=50,
        ),
        SectionConfig(
            name="advies_ad_passende_arbeid",
            description="Advies passende arbeid uit AD-rapport en FML/IZP",
            prompt=ADVIES_AD_PROMPT,
            schema=_text_schema("build_advies_ad_passende_arbeid", "advies_ad_passende_arbeid"),
            wanted_categories=("ad_rapport", "fml_izp"),
            priority_table=_AD_FIRST_TABLE,
        ),
        SectionConfig(
            name="sociale_achtergrond",
            description="Sociale achtergrond",
            prompt=SOCIALE_ACHTERGROND_PROMPT,
            output_field="sociale_achtergrond",
        ),
        SectionConfig(
            name="visie_werknemer",
            description="Visie van de werknemer",
            prompt=VISIE_WERKNEMER_PROMPT,
            output_field="visie_werknemer",
        ),
        SectionConfig(
            name="persoonlijk_profiel",
            description="Persoonlijk profiel in verhaalvorm",
            prompt=PERSOONLIJK_PROFIEL_PROMPT,
            schema=_text_schema("build_persoonlijk_profiel", "persoonlijk_profiel"),
            context_fields=("current_job", "education_level", "drivers_license", "has_transport"),
        ),
        SectionConfig(
            name="zoekprofiel",
            description="Zoekprofiel op basis van FML en bekende werknemersgegevens",
            prompt=ZOEKPROFIEL_PROMPT,
            schema=_text_schema("build_zoekprofiel", "zoekprofiel"),
            wanted_categories=("fml_izp", "ad_rapport", "intake"),
            context_fields=("education_level", "education_name", "current_job", "work_experience", "gender"),
        ),
        SectionConfig(
            name="visie_plaatsbaarheid",
            description="Externe functiesuggesties",
            prompt=VISIE_PLAATSBAARHEID_PROMPT,
            schema=_text_schema("build_visie_plaatsbaarheid", "visie_plaatsbaarheid"),
            priority_table=_AD_FIRST_TABLE,
        ),
        SectionConfig(
            name="visie_loopbaanadviseur",
            description="Visie loopbaanadviseur op de FML-beperkingen",
            prompt=VISIE_LOOPBAANADVISEUR_PROMPT,
            schema=_text_schema("build_visie_loopbaanadviseur", "visie_loopbaanadviseur"),
            context_fields=("occupational_doctor_org", "fml_izp_lab_date"),
            annotate_headers=True,
        ),
        SectionConfig(
            name="pow_meter",
            description="PoW-meter trede via opeenvolgende vragen",
            source_mode=SourceMode.FIRST_AVAILABLE,
            priority_table=_POW_METER_TABLE,
            generator=generate_pow_meter,
            generated_fields=POW_METER_FIELDS,
            min_text_length=50,
            max_corpus_chars=22000,
        ),
    ]
    return {section.name: section for section in sections}


class SectionRegistry:
    """Lookup of section configurations by name."""

    def __init__(self, sections: Optional[Dict[str, SectionConfig]] = None):
        self._sections: Dict[str, SectionConfig] = (
            dict(sections) if sections is not None else _build_default_sections()
        )

    def get(self, name: str) -> SectionConfig:
        """Return the named section.

        Raises:
            SectionNotFoundError: If no section has that name
        """
        section = self._sections.get(name)
        if section is None:
            raise SectionNotFoundError(name)
        return section

    def __iter__(self):
        return iter(self._sections.values())
