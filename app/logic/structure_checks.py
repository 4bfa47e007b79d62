"""
============================================================================
GZ Compliance Engine v1.0
Structure Checks - Document Completeness Rules for BA Approval
============================================================================

Reliability Level: L5 High
Input Constraints: WorkshopSession (or raw mapping, or None)
Side Effects: None (pure functions)

CRITICAL BLOCKERS
-----------------
1. Required Sections Complete - all 9 modules finished with enough content

WARNINGS
--------
2. Sources Documented  - at least 5 citations
3. Document Structure  - title, table of contents, executive summary

Citation patterns are an immutable tuple of compiled regexes. Matching
uses finditer() on every call so no match state survives between calls.

============================================================================
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple
import logging
import re

from app.logic.compliance_models import (
    IssueCategory,
    IssueSeverity,
    RULE_DOCUMENT_STRUCTURE,
    RULE_REQUIRED_SECTIONS_COMPLETE,
    RULE_SOURCES_DOCUMENTED,
    ValidationIssue,
)
from app.schemas.workshop_session import (
    MODULE_FINANZPLANUNG,
    MODULE_INTAKE,
    MODULE_KPI,
    MODULE_MARKETING,
    MODULE_MARKT_WETTBEWERB,
    MODULE_MEILENSTEINE,
    MODULE_SWOT,
    MODULE_UNTERNEHMEN,
    MODULE_GESCHAEFTSMODELL,
    MODULE_ZUSAMMENFASSUNG,
    WorkshopSession,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class RequiredModule:
    """A module the BA expects in every business plan."""
    id: str
    title: str
    min_words: int


REQUIRED_MODULES: Tuple[RequiredModule, ...] = (
    RequiredModule(MODULE_INTAKE, "Intake & Assessment", 50),
    RequiredModule(MODULE_GESCHAEFTSMODELL, "Geschäftsmodell", 500),
    RequiredModule(MODULE_UNTERNEHMEN, "Unternehmen", 400),
    RequiredModule(MODULE_MARKT_WETTBEWERB, "Markt und Wettbewerb", 300),
    RequiredModule(MODULE_MARKETING, "Marketingkonzept", 400),
    RequiredModule(MODULE_FINANZPLANUNG, "Finanzplanung", 100),
    RequiredModule(MODULE_SWOT, "SWOT-Analyse", 400),
    RequiredModule(MODULE_MEILENSTEINE, "Meilensteinplanung", 50),
    RequiredModule(MODULE_KPI, "Erfolgskennzahlen", 200),
)

CITATION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"https?://[^\s]+", re.IGNORECASE),          # URLs
    re.compile(r"www\.[^\s]+", re.IGNORECASE),              # www. domains
    re.compile(r"\[\d+\]"),                                 # [1] reference style
    re.compile(r"\(\d{4}\)"),                               # (2023) year citations
    re.compile(r"Quelle:\s*[^\n]+", re.IGNORECASE),         # "Quelle: ..." prefix
    re.compile(r"Studie.*?von.*?\d{4}", re.IGNORECASE),     # "Studie ... von ... 2023"
    re.compile(r"Statistisches\s+Bundesamt", re.IGNORECASE),
    re.compile(r"IHK.*?\d{4}", re.IGNORECASE),
    re.compile(r"Bundesverband.*?\d{4}", re.IGNORECASE),
    re.compile(r"Marktforschung.*?\d{4}", re.IGNORECASE),
)

MINIMUM_SOURCES = 5
TABLE_OF_CONTENTS_MIN_MODULES = 5
EXECUTIVE_SUMMARY_INTAKE_WORDS = 200

ELEMENT_TITLE_PAGE = "Titelseite fehlt"
ELEMENT_TABLE_OF_CONTENTS = "Inhaltsverzeichnis empfohlen"
ELEMENT_EXECUTIVE_SUMMARY = "Executive Summary empfohlen"


# =============================================================================
# TEXT UTILITIES
# =============================================================================

def count_words(text: Optional[str]) -> int:
    """Count whitespace-separated words."""
    if not text:
        return 0
    return len(text.split())


def extract_text(data: Any) -> str:
    """
    Recursively collect every string inside nested mappings and sequences.

    Non-string leaves (numbers, booleans, None) contribute nothing.
    """
    if isinstance(data, str):
        return data + " "
    if isinstance(data, Mapping):
        return " ".join(extract_text(value) for value in data.values())
    if isinstance(data, (list, tuple)):
        return " ".join(extract_text(value) for value in data)
    return ""


def extract_citations(text: str) -> List[str]:
    """
    Find citation-like fragments, deduplicated by raw text.

    Order is first-seen: pattern by pattern, then position in the text.
    """
    if not text:
        return []
    found: Dict[str, None] = {}
    for pattern in CITATION_PATTERNS:
        for match in pattern.finditer(text):
            found.setdefault(match.group(0), None)
    return list(found)


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class StructureSnapshot:
    """
    Read-only projection of the session used by the structure checks.

    module_word_counts only holds modules that carry data.
    """
    completed_modules: Tuple[str, ...] = ()
    module_word_counts: Mapping[str, int] = field(default_factory=dict)
    citation_count: int = 0
    footnotes: Tuple[str, ...] = ()
    has_title_page: bool = False
    has_table_of_contents: bool = False
    has_executive_summary: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "completed_modules", tuple(self.completed_modules))
        object.__setattr__(self, "footnotes", tuple(self.footnotes))
        object.__setattr__(
            self,
            "module_word_counts",
            MappingProxyType({k: max(0, int(v)) for k, v in dict(self.module_word_counts).items()}),
        )

    def word_count(self, module_id: str) -> int:
        return self.module_word_counts.get(module_id, 0)


EMPTY_STRUCTURE_SNAPSHOT = StructureSnapshot()


def extract_structure_snapshot(session: Any) -> StructureSnapshot:
    """
    Project a workshop session into a StructureSnapshot.

    Reliability Level: L5 High
    Input Constraints: WorkshopSession, raw mapping or None
    Side Effects: None

    A module counts as completed when its status is "completed" or it
    carries data. Never raises on missing data.
    """
    parsed = WorkshopSession.coerce(session)
    if parsed is None:
        return EMPTY_STRUCTURE_SNAPSHOT

    completed = [
        module_id
        for module_id, progress in parsed.modules.items()
        if progress.is_completed or progress.has_data
    ]

    word_counts: Dict[str, int] = {}
    text_parts: List[str] = []
    for module_id, progress in parsed.modules_with_data().items():
        text = extract_text(progress.data)
        word_counts[module_id] = count_words(text)
        text_parts.append(text)

    footnotes = extract_citations(" ".join(text_parts))

    return StructureSnapshot(
        completed_modules=completed,
        module_word_counts=word_counts,
        citation_count=len(footnotes),
        footnotes=footnotes,
        has_title_page=bool(parsed.business_name and parsed.business_name.strip()),
        has_table_of_contents=len(completed) >= TABLE_OF_CONTENTS_MIN_MODULES,
        has_executive_summary=(
            MODULE_ZUSAMMENFASSUNG in completed
            or word_counts.get(MODULE_INTAKE, 0) > EXECUTIVE_SUMMARY_INTAKE_WORDS
        ),
    )


# =============================================================================
# CHECKS
# =============================================================================

def check_required_sections_complete(snapshot: StructureSnapshot) -> Optional[ValidationIssue]:
    """
    BLOCKER: all 9 required modules complete with sufficient content.

    A module that is not completed lands in the missing list; a completed
    module below its word threshold lands in the too-short list.
    """
    missing: List[RequiredModule] = []
    too_short: List[Tuple[RequiredModule, int]] = []
    completed = set(snapshot.completed_modules)

    for required in REQUIRED_MODULES:
        words = snapshot.word_count(required.id)
        if required.id not in completed:
            missing.append(required)
        elif words < required.min_words:
            too_short.append((required, words))

    if not missing and not too_short:
        return None

    lines = ["KRITISCHER FEHLER: Pflichtabschnitte fehlen oder zu kurz!", ""]
    if missing:
        lines.append("FEHLENDE ABSCHNITTE:")
        lines.extend(f"• {module.title} ({module.id})" for module in missing)
        lines.append("")
    if too_short:
        lines.append("ZU KURZE ABSCHNITTE:")
        lines.extend(
            f"• {module.title}: {words} Wörter (min. {module.min_words})"
            for module, words in too_short
        )
        lines.append("")
    lines.extend([
        "Die BA erwartet vollständige Businesspläne mit substantiellem Inhalt.",
        "Jeder Abschnitt muss durchdacht und ausführlich sein.",
        "",
        "LÖSUNG:",
        "Vervollständigen Sie alle fehlenden Module und erweitern Sie zu kurze Abschnitte.",
        "Ein typischer BA-Businessplan hat 20-30 Seiten Text.",
        "",
        "Export ist BLOCKIERT bis alle Pflichtabschnitte vollständig sind.",
    ])

    if missing:
        affected = missing[0].id
    else:
        affected = too_short[0][0].id

    return ValidationIssue(
        id=RULE_REQUIRED_SECTIONS_COMPLETE,
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.STRUCTURE,
        title="Pflichtabschnitte unvollständig",
        message="\n".join(lines),
        affected_section=affected,
        suggested_fix=f"Vervollständigen Sie {len(missing) + len(too_short)} Abschnitte",
        documentation_link="/docs/ba-requirements#required-sections",
        detected_values={
            "missingModules": [module.id for module in missing],
            "tooShortModules": [module.id for module, _ in too_short],
            "totalRequired": len(REQUIRED_MODULES),
            "completed": len(REQUIRED_MODULES) - len(missing) - len(too_short),
        },
    )


def check_sources_documented(snapshot: StructureSnapshot) -> Optional[ValidationIssue]:
    """WARNING: market data should be backed by at least 5 sources."""
    current = snapshot.citation_count
    if current >= MINIMUM_SOURCES:
        return None

    needed = MINIMUM_SOURCES - current
    message = (
        "WARNUNG: Zu wenig Quellenangaben gefunden!\n"
        "\n"
        f"Aktuelle Quellen: {current}\n"
        f"Empfohlen: mindestens {MINIMUM_SOURCES}\n"
        f"Fehlend: {needed}\n"
        "\n"
        "Die BA prüft, ob Ihre Marktdaten und Annahmen fundiert sind.\n"
        "\"Schätzungen\" ohne Herkunft werden kritisch bewertet.\n"
        "\n"
        "EMPFOHLENE QUELLEN:\n"
        "• Statistisches Bundesamt\n"
        "• IHK-Studien und Branchenreports\n"
        "• Branchenverbände\n"
        "• Marktforschungsinstitute\n"
        "\n"
        "FORMAT:\n"
        "Fügen Sie URLs direkt im Text ein oder nutzen Sie Fußnoten:\n"
        "\"Laut Statistischem Bundesamt (destatis.de) beträgt...\"\n"
        "\n"
        "NICHT BLOCKIEREND - Sie können exportieren, aber Quellen stärken\n"
        "Ihren Plan erheblich."
    )

    return ValidationIssue(
        id=RULE_SOURCES_DOCUMENTED,
        severity=IssueSeverity.WARNING,
        category=IssueCategory.STRUCTURE,
        title="Zu wenig Quellenangaben",
        message=message,
        affected_section=MODULE_MARKT_WETTBEWERB,
        suggested_fix=f"Fügen Sie {needed} weitere Quellenangaben hinzu",
        documentation_link="/docs/ba-requirements#sources-documented",
        detected_values={
            "currentSources": current,
            "minimumRequired": MINIMUM_SOURCES,
            "shortfall": needed,
            "foundCitations": list(snapshot.footnotes[:3]),
        },
    )


def check_document_structure(snapshot: StructureSnapshot) -> Optional[ValidationIssue]:
    """WARNING (informational): title page, table of contents, executive summary."""
    missing: List[str] = []
    if not snapshot.has_title_page:
        missing.append(ELEMENT_TITLE_PAGE)
    if not snapshot.has_table_of_contents:
        missing.append(ELEMENT_TABLE_OF_CONTENTS)
    if not snapshot.has_executive_summary:
        missing.append(ELEMENT_EXECUTIVE_SUMMARY)

    if not missing:
        return None

    message = (
        "TIPP: Dokumentstruktur verbesserbar\n"
        "\n"
        "FEHLENDE ELEMENTE:\n"
        + "\n".join(f"• {element}" for element in missing)
        + "\n\n"
        "Ein vollständiger Businessplan enthält typischerweise:\n"
        "• Titelseite mit Firmennamen und Kontaktdaten\n"
        "• Inhaltsverzeichnis für bessere Navigation\n"
        "• Executive Summary (Zusammenfassung) am Anfang\n"
        "\n"
        "NICHT BLOCKIEREND - reine Empfehlung für besseren Eindruck."
    )

    return ValidationIssue(
        id=RULE_DOCUMENT_STRUCTURE,
        severity=IssueSeverity.WARNING,
        category=IssueCategory.STRUCTURE,
        title="Dokumentstruktur verbesserbar",
        message=message,
        affected_section=MODULE_ZUSAMMENFASSUNG,
        suggested_fix="Fügen Sie professionelle Dokumentelemente hinzu",
        documentation_link="/docs/document-structure-tips",
        detected_values={
            "missingElements": missing,
            "hasTitlePage": snapshot.has_title_page,
            "hasTableOfContents": snapshot.has_table_of_contents,
            "hasExecutiveSummary": snapshot.has_executive_summary,
        },
    )


# =============================================================================
# RULE SET
# =============================================================================

def run_structure_checks(snapshot: StructureSnapshot) -> List[ValidationIssue]:
    candidates = (
        check_required_sections_complete(snapshot),
        check_sources_documented(snapshot),
        check_document_structure(snapshot),
    )
    return [issue for issue in candidates if issue is not None]


def validate_structure_compliance(session: Any) -> List[ValidationIssue]:
    """Extract the structure snapshot and run the structure rule set."""
    snapshot = extract_structure_snapshot(session)
    issues = run_structure_checks(snapshot)
    logger.debug(
        "[STRUCT-CHECKS] Structure rule set evaluated | issues=%d | completed=%d | citations=%d",
        len(issues), len(snapshot.completed_modules), snapshot.citation_count
    )
    return issues
