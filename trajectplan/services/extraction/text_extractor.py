"""Best-effort text extraction from uploaded document bytes.

Uploaded documents are mostly PDFs, but many are scans, exports from
form tools or otherwise malformed. Extraction therefore runs a cascade of
strategies, each a fallback for the previous one:

1. Structured parse with pdfplumber (highest fidelity)
2. UTF-8 decode and scan for runs of printable characters
3. Latin-1 decode and the same scan, for content UTF-8 decoding mangles
4. Labeled ``label: value`` pattern extraction, a minimal skeleton when no
   prose is recoverable at all

The first strategy whose output reaches the minimum usable length wins.
A strategy that raises is treated as having produced nothing.
"""

import re
from io import BytesIO
from typing import Callable, List, Optional, Sequence, Tuple

import pdfplumber

from trajectplan.core.config import settings
from trajectplan.utils.logging import get_logger

LOGGER = get_logger(__name__)

ExtractionStrategy = Callable[[bytes], str]

# Field labels used on the intake forms and assessment reports
DEFAULT_LABEL_PATTERNS: Tuple[str, ...] = (
    r"Naam werknemer:\s*[^\n\r]+",
    r"Gespreksdatum:\s*[^\n\r]+",
    r"Leeftijd werknemer:\s*\d+",
    r"Geslacht werknemer:\s*[^\n\r]+",
    r"Functietitel:\s*[^\n\r]+",
    r"Werkgever/organisatie:\s*[^\n\r]+",
    r"Urenomvang functie[^:\n\r]*:\s*\d+",
    r"Naam[^:\n\r]*:\s*[^\n\r]+",
    r"Datum[^:\n\r]*:\s*[^\n\r]+",
    r"Organisatie[^:\n\r]*:\s*[^\n\r]+",
    r"Advies[^:\n\r]*:\s*[^\n\r]+",
    r"Functieomschrijving[^:\n\r]*:\s*[^\n\r]+",
)

REPORT_HEADINGS: Tuple[str, ...] = (
    "Persoonsgegevens",
    "Voorgeschiedenis",
    "Opleiding",
    "Werkervaring",
    "Huidige situatie",
    "Medische situatie",
    "Arbeidsdeskundige rapport",
    "Inzetmogelijkheden",
    "Capaciteiten",
    "Beperkingen",
    "Conclusie",
    "Advies",
)


def parse_pdf_text(data: bytes) -> str:
    """Extract the logical text stream of a PDF, page by page."""
    with pdfplumber.open(BytesIO(data)) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n".join(page for page in pages if page.strip())


def scan_printable_runs(decoded: str, run_length: int) -> str:
    """Join runs of printable characters at least ``run_length`` long."""
    pattern = re.compile(r"[A-Za-z0-9\s\-.,:;()]{%d,}" % run_length)
    runs = (match.strip() for match in pattern.findall(decoded))
    return " ".join(run for run in runs if run)


def extract_labeled_fields(decoded: str, patterns: Sequence[str]) -> str:
    """Collect the ``label: value`` snippets matched by ``patterns``."""
    snippets: List[str] = []
    for pattern in patterns:
        match = re.search(pattern, decoded, re.IGNORECASE)
        if match:
            snippet = match.group(0).strip()
            if snippet not in snippets:
                snippets.append(snippet)
    return "\n".join(snippets)


def annotate_section_headers(text: str, headings: Sequence[str] = REPORT_HEADINGS) -> str:
    """Rewrite known report headings at line start into ``== HEADING ==`` markers."""
    output = text
    for heading in headings:
        pattern = re.compile(rf"^[ \t]*(?:\d+\.[ \t]*)?({re.escape(heading)})\b[ \t]*:?[ \t]*", re.IGNORECASE | re.MULTILINE)
        output = pattern.sub(f"\n== {heading.upper()} ==\n", output)
    return output.strip()


class TextExtractionService:
    """Runs the extraction cascade over raw document bytes."""

    def __init__(
        self,
        min_text_length: Optional[int] = None,
        run_length: Optional[int] = None,
        label_patterns: Optional[Sequence[str]] = None,
        strategies: Optional[Sequence[Tuple[str, ExtractionStrategy]]] = None,
    ):
        """Initialize the extraction service.

        Args:
            min_text_length: Minimum stripped length for a strategy's output to be
                accepted. Must be positive.
            run_length: Minimum length of a printable run in the raw scans
            label_patterns: Regular expressions for the labeled-field fallback
            strategies: Ordered (name, callable) pairs replacing the default cascade
        """
        self.min_text_length = min_text_length or settings.extraction.min_text_length
        if self.min_text_length < 1:
            raise ValueError("min_text_length must be at least 1")
        self.run_length = run_length or settings.extraction.run_length
        self.label_patterns = tuple(label_patterns or DEFAULT_LABEL_PATTERNS)
        self.strategies: List[Tuple[str, ExtractionStrategy]] = list(strategies or [
            ("pdf_parse", parse_pdf_text),
            ("utf8_scan", self._scan_utf8),
            ("latin1_scan", self._scan_latin1),
            ("labeled_fields", self._extract_labels),
        ])

    def _scan_utf8(self, data: bytes) -> str:
        return scan_printable_runs(data.decode("utf-8", errors="replace"), self.run_length)

    def _scan_latin1(self, data: bytes) -> str:
        return scan_printable_runs(data.decode("latin-1"), self.run_length)

    def _extract_labels(self, data: bytes) -> str:
        return extract_labeled_fields(data.decode("utf-8", errors="replace"), self.label_patterns)

    def extract_with_strategy(
        self, data: bytes, min_text_length: Optional[int] = None
    ) -> Tuple[str, Optional[str]]:
        """Run the cascade and report which strategy produced the text.

        Args:
            data: Raw document bytes
            min_text_length: Per-call override of the usable-length threshold

        Returns:
            Tuple of (text, strategy name). Text is "" and the name None when
            no strategy produced usable text.
        """
        threshold = max(1, min_text_length or self.min_text_length)
        if not data:
            return "", None

        for name, strategy in self.strategies:
            try:
                text = (strategy(data) or "").strip()
            except Exception as e:
                LOGGER.debug(
                    f"Extraction strategy {name} failed: {e}",
                    extra={"strategy": name, "size_bytes": len(data)},
                )
                continue

            if len(text) >= threshold:
                LOGGER.info(
                    f"Extracted {len(text)} characters with {name}",
                    extra={"strategy": name, "text_length": len(text)},
                )
                return text, name

            LOGGER.debug(
                f"Extraction strategy {name} produced too little text",
                extra={"strategy": name, "text_length": len(text), "threshold": threshold},
            )

        LOGGER.warning(
            "All extraction strategies failed",
            extra={"size_bytes": len(data), "threshold": threshold},
        )
        return "", None

    def extract(self, data: bytes, min_text_length: Optional[int] = None) -> str:
        """Extract best-effort plain text. Never raises; returns "" on total failure."""
        text, _ = self.extract_with_strategy(data, min_text_length)
        return text
