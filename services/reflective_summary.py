"""
============================================================================
GZ Compliance Engine - Reflective Summary Format
============================================================================

Reliability Level: L4 Standard
Input Constraints: Summary items are single-line strings
Side Effects: None

The coaching conversation periodically mirrors back what it understood,
in three bullet sections (facts, emotions, strengths) followed by a
confirmation question. This module renders that text and parses it back.

Empty sections render as fixed placeholder bullets and parse back to empty
lists, so format(parse(text)) reproduces text.

============================================================================
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_CONFIRMATION_QUESTION = "Stimmt das so? Fehlt etwas Wichtiges?"

SUMMARY_INTRO = "Lass mich kurz zusammenfassen, was ich bisher verstanden habe:"

HEADER_FACTS = "**Fakten:**"
HEADER_EMOTIONAL = "**Was ich an Emotionen wahrgenommen habe:**"
HEADER_STRENGTHS = "**Stärken, die ich erkannt habe:**"

PLACEHOLDER_FACTS = "Noch keine konkreten Fakten geteilt"
PLACEHOLDER_EMOTIONAL = "Keine deutlichen emotionalen Signale wahrgenommen"
PLACEHOLDER_STRENGTHS = "Stärken werden im Laufe des Gesprächs sichtbar werden"

BULLET = "- "

# header -> (field name, placeholder)
_SECTIONS: Dict[str, Tuple[str, str]] = {
    HEADER_FACTS: ("facts", PLACEHOLDER_FACTS),
    HEADER_EMOTIONAL: ("emotional", PLACEHOLDER_EMOTIONAL),
    HEADER_STRENGTHS: ("strengths", PLACEHOLDER_STRENGTHS),
}


# =============================================================================
# Data Class
# =============================================================================

@dataclass(frozen=True)
class ReflectiveSummary:
    """What the coach understood so far."""
    facts: Tuple[str, ...] = ()
    emotional: Tuple[str, ...] = ()
    strengths: Tuple[str, ...] = ()
    confirmation_question: str = DEFAULT_CONFIRMATION_QUESTION

    def __post_init__(self) -> None:
        object.__setattr__(self, "facts", tuple(self.facts))
        object.__setattr__(self, "emotional", tuple(self.emotional))
        object.__setattr__(self, "strengths", tuple(self.strengths))


# =============================================================================
# Formatting
# =============================================================================

def _section(items: Iterable[str], placeholder: str) -> str:
    lines = [f"{BULLET}{item}" for item in items]
    if not lines:
        lines = [f"{BULLET}{placeholder}"]
    return "\n".join(lines)


def format_summary_as_text(summary: ReflectiveSummary) -> str:
    """Render a summary as the chat text shown to the founder."""
    return "\n".join([
        SUMMARY_INTRO,
        "",
        HEADER_FACTS,
        _section(summary.facts, PLACEHOLDER_FACTS),
        "",
        HEADER_EMOTIONAL,
        _section(summary.emotional, PLACEHOLDER_EMOTIONAL),
        "",
        HEADER_STRENGTHS,
        _section(summary.strengths, PLACEHOLDER_STRENGTHS),
        "",
        summary.confirmation_question or DEFAULT_CONFIRMATION_QUESTION,
    ])


# =============================================================================
# Parsing
# =============================================================================

def parse_into_summary(text: Optional[str]) -> ReflectiveSummary:
    """
    Parse summary text back into a ReflectiveSummary.

    Placeholder bullets become empty lists. Everything after the strengths
    section is the confirmation question; when missing, the default
    question is used.
    """
    if not text:
        return ReflectiveSummary()

    collected: Dict[str, List[str]] = {"facts": [], "emotional": [], "strengths": []}
    current: Optional[Tuple[str, str]] = None
    strengths_done = False
    question_lines: List[str] = []

    for line in text.split("\n"):
        if strengths_done:
            question_lines.append(line)
            continue

        if line in _SECTIONS:
            current = _SECTIONS[line]
            continue

        if current is None:
            continue

        field_name, placeholder = current
        if line.startswith(BULLET):
            item = line[len(BULLET):]
            if item != placeholder:
                collected[field_name].append(item)
        elif not line.strip():
            if field_name == "strengths":
                strengths_done = True
            current = None

    question = "\n".join(question_lines).strip("\n")
    if not question.strip():
        question = DEFAULT_CONFIRMATION_QUESTION

    summary = ReflectiveSummary(
        facts=tuple(collected["facts"]),
        emotional=tuple(collected["emotional"]),
        strengths=tuple(collected["strengths"]),
        confirmation_question=question,
    )
    logger.debug(
        "[SUMMARY] Parsed reflective summary | facts=%d | emotional=%d | strengths=%d",
        len(summary.facts), len(summary.emotional), len(summary.strengths)
    )
    return summary
