"""Document categories, their spelling variants and their source priority."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class DocumentCategory:
    """A canonical document category.

    Attributes:
        key: Canonical identifier, e.g. "ad_rapport"
        label: Header used when the category's text is combined into a corpus
        variants: Lowercase substrings that identify the category in free-form labels
    """

    key: str
    label: str
    variants: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, normalized_category: str) -> bool:
        """True if the normalized label contains any variant."""
        return bool(normalized_category) and any(
            variant in normalized_category for variant in self.variants
        )


INTAKE = DocumentCategory(
    key="intake",
    label="INTAKEFORMULIER",
    variants=("intakeformulier", "intake-formulier", "intake"),
)
AD_RAPPORT = DocumentCategory(
    key="ad_rapport",
    label="AD RAPPORT",
    variants=(
        "ad_rapport", "ad-rapport", "adrapport", "ad rapport",
        "ad_rapportage", "ad-rapportage", "arbeidsdeskund",
    ),
)
FML_IZP = DocumentCategory(
    key="fml_izp",
    label="FML/IZP",
    variants=(
        "fml", "functiemogelijkhedenlijst",
        "izp", "inzetbaarheidsprofiel",
        "lab", "lijst arbeidsmogelijkheden", "arbeidsmogelijkheden en beperkingen",
    ),
)
OVERIG = DocumentCategory(
    key="overig",
    label="OVERIG",
    variants=("overig", "other"),
)


class PriorityTable:
    """Ordered categories; position in the table is the rank (0 = highest priority).

    Labels matching no category in the table rank after every known category.
    """

    def __init__(self, categories: Sequence[DocumentCategory]):
        self.categories: List[DocumentCategory] = list(categories)
        self._by_key: Dict[str, DocumentCategory] = {c.key: c for c in self.categories}

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> "PriorityTable":
        """Build a table of bare categories that match on their own key."""
        return cls([DocumentCategory(key=k, label=k.upper(), variants=(k.lower(),)) for k in keys])

    def reordered(self, keys: Sequence[str]) -> "PriorityTable":
        """Return a table with ``keys`` first, in that order, then the remaining categories."""
        head = [self.get(key) for key in keys]
        tail = [c for c in self.categories if c.key not in keys]
        return PriorityTable(head + tail)

    def get(self, key: str) -> DocumentCategory:
        """Look up a category, falling back to a category matching on the key itself."""
        category = self._by_key.get(key)
        if category is None:
            category = DocumentCategory(key=key, label=key.upper(), variants=(key.lower(),))
        return category

    def classify(self, normalized_category: str) -> Optional[DocumentCategory]:
        """First category in priority order whose variants match the label."""
        for category in self.categories:
            if category.matches(normalized_category):
                return category
        return None

    def rank(self, normalized_category: str) -> int:
        """Rank of a label; unknown labels sort last."""
        for index, category in enumerate(self.categories):
            if category.matches(normalized_category):
                return index
        return len(self.categories)

    def label_for(self, normalized_category: str) -> str:
        """Corpus header for a label, falling back to the uppercased label itself."""
        category = self.classify(normalized_category)
        if category is not None:
            return category.label
        return normalized_category.upper() or "ONBEKEND"


DEFAULT_PRIORITY_TABLE = PriorityTable([INTAKE, AD_RAPPORT, FML_IZP, OVERIG])
