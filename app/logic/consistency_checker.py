"""
============================================================================
GZ Compliance Engine v1.0
Cross-Module Consistency Checker - Detect Contradictions Between Modules
============================================================================

Reliability Level: L5 High
Input Constraints: WorkshopSession (or raw mapping)
Side Effects: None (pure functions)

CHECKS
------
1. Target audience  - Geschäftsidee vs Marketing (keyword Jaccard similarity)
2. Pricing          - USP price mentions vs revenue streams
3. Capacity         - team hours vs hours implied by revenue targets
4. Timeline         - first customer date vs break-even month
5. Costs            - salaries / outsourcing vs planned cost items

Every check runs only when the modules it compares carry data. Partial
data skips the check silently. Each check yields at most one
Inconsistency.

HEURISTICS
----------
Price matching ("closest value") and cost matching ("name contains
keyword") can pair unrelated figures. The tolerances live in
ConsistencyThresholds so their aggressiveness stays tunable.

============================================================================
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging
import re

from app.logic.compliance_models import to_json_safe
from app.logic.decimal_math import (
    DEFAULT_DECIMAL_MATH,
    DecimalMath,
    ONE,
    ZERO,
)
from app.schemas.workshop_session import (
    MODULE_FINANZPLANUNG,
    MODULE_GESCHAEFTSIDEE,
    MODULE_MARKETING,
    MODULE_MEILENSTEINE,
    MODULE_ORGANISATION,
    WorkshopSession,
    dig,
    dig_list,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class InconsistencyType(str, Enum):
    TARGET_AUDIENCE = "target_audience"
    PRICING = "pricing"
    CAPACITY = "capacity"
    TIMELINE = "timeline"
    COSTS = "costs"


class InconsistencySeverity(str, Enum):
    """
    Severity of a cross-module inconsistency.

    Attributes:
        CRITICAL: Mathematically impossible plan (e.g. > 100% utilization)
        HIGH: Undermines credibility of the plan
        MEDIUM: Noticeable discrepancy, should be reviewed
        LOW: Cosmetic
    """
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SEVERITY_ORDER: Mapping[InconsistencySeverity, int] = MappingProxyType({
    InconsistencySeverity.CRITICAL: 0,
    InconsistencySeverity.HIGH: 1,
    InconsistencySeverity.MEDIUM: 2,
    InconsistencySeverity.LOW: 3,
})

SEVERITY_DEDUCTIONS: Mapping[InconsistencySeverity, int] = MappingProxyType({
    InconsistencySeverity.CRITICAL: 25,
    InconsistencySeverity.HIGH: 15,
    InconsistencySeverity.MEDIUM: 8,
    InconsistencySeverity.LOW: 3,
})

MAX_HIGH_ISSUES_FOR_EXPORT = 2
TARGET_AUDIENCE_MIN_SIMILARITY = Decimal("0.5")


# =============================================================================
# LOOKUP TABLES
# =============================================================================

TARGET_AUDIENCE_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "age": ("jung", "alt", "teen", "senior", "erwachsen", "kindern"),
    "income": ("gutverdiener", "einkommensstark", "budget", "premium", "luxus"),
    "profession": ("unternehmer", "manager", "entwickler", "berater", "student"),
    "business": ("startup", "mittelstand", "konzern", "kleinbetrieb", "freiberufler"),
    "location": ("lokal", "regional", "deutschland", "europa", "international", "berlin", "münchen"),
    "behavior": ("digital", "traditional", "innovativ", "konservativ", "early adopter"),
})

WORKING_TIME_HOURS: Mapping[str, int] = MappingProxyType({
    "fulltime": 40,
    "parttime_30": 30,
    "parttime_20": 20,
    "parttime_10": 10,
    "project_based": 20,
    "on_demand": 15,
})
DEFAULT_WORKING_TIME_HOURS = 20

OUTSOURCING_COST_KEYWORDS: Tuple[str, ...] = ("outsourcing", "extern", "dienstleister")

ROLE_FOUNDER = "founder"
COST_CATEGORY_PERSONNEL = "personal"
DECISION_OUTSOURCE = "outsource"
HOURLY_UNIT_MARKER = "stund"

WEEKS_PER_YEAR = 52
DAYS_PER_MONTH = 30
SECONDS_PER_DAY = 86400

EUR_PATTERN = re.compile(r"(\d+(?:\.\d{3})*(?:,\d{2})?)\s*€")


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class ConsistencyThresholds:
    """
    Tolerances of the consistency heuristics.

    Reliability Level: L5 High
    Input Constraints: Ratios as Decimal in (0, 1]; slack in days
    Side Effects: None
    """
    price_variation: Decimal = Decimal("0.2")
    capacity_utilization: Decimal = Decimal("0.85")
    timeline_slack_days: int = 30
    cost_completeness: Decimal = Decimal("0.8")
    price_match_window: Decimal = Decimal("0.5")
    assumed_hourly_rate: Decimal = Decimal("80")


DEFAULT_THRESHOLDS = ConsistencyThresholds()


@dataclass(frozen=True)
class Inconsistency:
    """A contradiction between two authoring modules."""
    id: str
    type: InconsistencyType
    severity: InconsistencySeverity
    modules: Tuple[str, ...]
    description: str
    impact: str
    detected_values: Mapping[str, Any] = field(default_factory=dict)
    suggestions: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "modules", tuple(self.modules))
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(self, "detected_values", MappingProxyType(dict(self.detected_values or {})))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "modules": list(self.modules),
            "description": self.description,
            "impact": self.impact,
            "detectedValues": to_json_safe(dict(self.detected_values)),
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class ConsistencyCheckResult:
    """Advisory readiness derived from the detected inconsistencies."""
    inconsistencies: Tuple[Inconsistency, ...]
    overall_score: int
    critical_issues: int
    ready_for_export: bool

    def __post_init__(self) -> None:
        object.__setattr__(self, "inconsistencies", tuple(self.inconsistencies))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inconsistencies": [i.to_dict() for i in self.inconsistencies],
            "overallScore": self.overall_score,
            "criticalIssues": self.critical_issues,
            "readyForExport": self.ready_for_export,
        }


@dataclass(frozen=True)
class PricingMention:
    value: Decimal
    context: str


@dataclass(frozen=True)
class RevenueStreamPrice:
    service: str
    price: Decimal
    unit: str = ""


# =============================================================================
# HELPERS
# =============================================================================

def extract_target_audience_keywords(text: Optional[str]) -> List[str]:
    """
    Return the dictionary keywords contained in a free-text audience description.

    Case-insensitive substring match, deduplicated, in dictionary order.
    """
    if not text:
        return []
    lowered = text.lower()
    found: Dict[str, None] = {}
    for keywords in TARGET_AUDIENCE_KEYWORDS.values():
        for keyword in keywords:
            if keyword in lowered:
                found.setdefault(keyword, None)
    return list(found)


def calculate_keyword_similarity(
    first: Iterable[str],
    second: Iterable[str],
    math: Optional[DecimalMath] = None,
) -> Decimal:
    """
    Jaccard similarity |A ∩ B| / |A ∪ B|.

    1 when both sets are empty, 0 when exactly one is empty.
    """
    math = math or DEFAULT_DECIMAL_MATH
    set_a = set(first)
    set_b = set(second)

    if not set_a and not set_b:
        return ONE
    if not set_a or not set_b:
        return ZERO

    return math.safe_divide(len(set_a & set_b), len(set_a | set_b))


def extract_pricing_mentions(
    text: Optional[str],
    math: Optional[DecimalMath] = None,
) -> List[PricingMention]:
    """Find euro amounts ("1.500,00 €", "89 €") in free text."""
    math = math or DEFAULT_DECIMAL_MATH
    if not text:
        return []

    mentions: List[PricingMention] = []
    for match in EUR_PATTERN.finditer(text):
        value = math.to_decimal(math.parse_german_number(match.group(1)))
        if value > ZERO:
            mentions.append(PricingMention(value=value, context=match.group(0)))
    return mentions


def find_matching_revenue_stream(
    mention: PricingMention,
    streams: Sequence[RevenueStreamPrice],
    window: Decimal = DEFAULT_THRESHOLDS.price_match_window,
    math: Optional[DecimalMath] = None,
) -> Optional[RevenueStreamPrice]:
    """
    Return the stream whose price is closest to the mention.

    The match is only accepted when the absolute difference is below
    window × mention value; otherwise None.
    """
    math = math or DEFAULT_DECIMAL_MATH
    closest: Optional[RevenueStreamPrice] = None
    smallest: Optional[Decimal] = None

    for stream in streams:
        difference = math.absolute(math.subtract(stream.price, mention.value))
        if smallest is None or difference < smallest:
            smallest = difference
            closest = stream

    if closest is not None and smallest < math.multiply(mention.value, window):
        return closest
    return None


def calculate_team_capacity(
    team_members: Sequence[Any],
    capacity: Optional[Mapping[str, Any]],
    math: Optional[DecimalMath] = None,
) -> Decimal:
    """
    Weekly team hours.

    Starts from the declared capacity (hoursPerWeek) and adds every
    non-founder member by working-time category. Unknown categories count
    as 20 hours.
    """
    math = math or DEFAULT_DECIMAL_MATH
    total = math.to_decimal(dig(capacity, "hoursPerWeek"))

    for member in team_members:
        if not isinstance(member, Mapping):
            continue
        working_time = member.get("workingTime")
        if not working_time or member.get("role") == ROLE_FOUNDER:
            continue
        total = math.add(total, WORKING_TIME_HOURS.get(working_time, DEFAULT_WORKING_TIME_HOURS))

    return total


def calculate_required_hours(
    umsatzplanung: Optional[Mapping[str, Any]],
    assumed_hourly_rate: Decimal = DEFAULT_THRESHOLDS.assumed_hourly_rate,
    math: Optional[DecimalMath] = None,
) -> Decimal:
    """
    Annual hours implied by the revenue streams.

    Hourly streams (unit contains "stund") contribute their planned
    year-1 quantities directly. Other streams contribute
    price × year-2 quantity ÷ assumed hourly rate.
    """
    math = math or DEFAULT_DECIMAL_MATH
    total = ZERO

    for stream in dig_list(umsatzplanung, "umsatzstroeme"):
        if not isinstance(stream, Mapping):
            continue
        unit = stream.get("einheit")
        if isinstance(unit, str) and HOURLY_UNIT_MARKER in unit.lower():
            total = math.add(total, math.sum(dig_list(stream, "mengeJahr1")))
        else:
            revenue = math.multiply(stream.get("preis"), stream.get("mengeJahr2"))
            total = math.add(total, math.safe_divide(revenue, assumed_hourly_rate))

    return total


def _parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _format_german_date(value: datetime) -> str:
    return f"{value.day}.{value.month}.{value.year}"


# =============================================================================
# CHECKER
# =============================================================================

class CrossModuleConsistencyChecker:
    """
    Cross-checks facts entered in different authoring modules.

    Reliability Level: L5 High
    Input Constraints: Module payloads as plain mappings
    Side Effects: None
    """

    def __init__(
        self,
        thresholds: Optional[ConsistencyThresholds] = None,
        math: Optional[DecimalMath] = None,
    ) -> None:
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self.math = math or DEFAULT_DECIMAL_MATH

    # -------------------------------------------------------------------------
    # Check 1: Target audience
    # -------------------------------------------------------------------------

    def check_target_audience_alignment(
        self,
        geschaeftsidee: Mapping[str, Any],
        marketing: Mapping[str, Any],
    ) -> Optional[Inconsistency]:
        idea_target = dig(geschaeftsidee, "targetAudience", "primaryGroup")
        marketing_target = dig(marketing, "strategie", "targetAudienceReach")

        if not isinstance(idea_target, str) or not isinstance(marketing_target, str):
            return None
        if not idea_target or not marketing_target:
            return None

        similarity = calculate_keyword_similarity(
            extract_target_audience_keywords(idea_target),
            extract_target_audience_keywords(marketing_target),
            self.math,
        )
        if similarity >= TARGET_AUDIENCE_MIN_SIMILARITY:
            return None

        return Inconsistency(
            id="target_audience_mismatch",
            type=InconsistencyType.TARGET_AUDIENCE,
            severity=InconsistencySeverity.HIGH,
            modules=(MODULE_GESCHAEFTSIDEE, MODULE_MARKETING),
            description=(
                f"Zielgruppe in Geschäftsidee (\"{idea_target}\") unterscheidet sich deutlich "
                f"von Marketing-Zielgruppe (\"{marketing_target}\")."
            ),
            impact=(
                "Inkonsistente Zielgruppenansprache schwächt die Glaubwürdigkeit des "
                "Businessplans und verwirrt potentielle Investoren."
            ),
            detected_values={
                "geschaeftsidee_target": idea_target,
                "marketing_target": marketing_target,
                "similarity_score": similarity,
            },
            suggestions=(
                "Angleichung der Zielgruppenbeschreibung in beiden Modulen",
                "Verfeinerung der Marketing-Strategie basierend auf der ursprünglichen Geschäftsidee",
                "Überprüfung, ob sich die Zielgruppe während der Ausarbeitung entwickelt hat",
            ),
        )

    # -------------------------------------------------------------------------
    # Check 2: Pricing
    # -------------------------------------------------------------------------

    def _revenue_stream_prices(self, finanzplanung: Mapping[str, Any]) -> List[RevenueStreamPrice]:
        prices = []
        for stream in dig_list(finanzplanung, "umsatzplanung", "umsatzstroeme"):
            if not isinstance(stream, Mapping):
                continue
            prices.append(RevenueStreamPrice(
                service=str(stream.get("name") or ""),
                price=self.math.to_decimal(stream.get("preis")),
                unit=str(stream.get("einheit") or ""),
            ))
        return prices

    def check_pricing_consistency(
        self,
        geschaeftsidee: Mapping[str, Any],
        finanzplanung: Mapping[str, Any],
    ) -> Optional[Inconsistency]:
        """Reports the first USP price mention that deviates from its matched stream."""
        usp_text = dig(geschaeftsidee, "usp", "proposition")
        streams = self._revenue_stream_prices(finanzplanung)

        if not isinstance(usp_text, str) or not usp_text or not streams:
            return None

        for mention in extract_pricing_mentions(usp_text, self.math):
            stream = find_matching_revenue_stream(
                mention, streams, self.thresholds.price_match_window, self.math
            )
            if stream is None:
                continue

            difference = self.math.absolute(self.math.subtract(stream.price, mention.value))
            ratio = self.math.safe_divide(difference, mention.value)
            if ratio <= self.thresholds.price_variation:
                continue

            return Inconsistency(
                id=f"pricing_mismatch_{stream.service}",
                type=InconsistencyType.PRICING,
                severity=InconsistencySeverity.MEDIUM,
                modules=(MODULE_GESCHAEFTSIDEE, MODULE_FINANZPLANUNG),
                description=(
                    f"Preis für \"{stream.service}\" in USP ({self.math.format_currency(mention.value)}) "
                    f"weicht stark von Finanzplanung ({self.math.format_currency(stream.price)}) ab "
                    f"(Abweichung {self.math.format_percentage(self.math.multiply(ratio, 100))})."
                ),
                impact="Preisinkonsistenzen können Zweifel an der Sorgfalt der Planung aufkommen lassen.",
                detected_values={
                    "usp_price": mention.value,
                    "financial_price": stream.price,
                    "difference_percent": self.math.percent(ratio),
                },
                suggestions=(
                    "Aktualisierung der USP-Beschreibung basierend auf finaler Preisgestaltung",
                    "Überprüfung der Kalkulation in der Finanzplanung",
                    "Präzisierung der Preispositionierung im Wertversprechen",
                ),
            )
        return None

    # -------------------------------------------------------------------------
    # Check 3: Capacity
    # -------------------------------------------------------------------------

    def check_personnel_capacity(
        self,
        organisation: Mapping[str, Any],
        finanzplanung: Mapping[str, Any],
    ) -> Optional[Inconsistency]:
        team_members = dig(organisation, "teamStruktur", "teamMembers")
        capacity = dig(organisation, "kapazitaeten", "currentCapacity")
        umsatzplanung = dig(finanzplanung, "umsatzplanung")

        if not isinstance(team_members, (list, tuple)):
            return None
        if not isinstance(capacity, Mapping) or not isinstance(umsatzplanung, Mapping):
            return None

        weekly_hours = calculate_team_capacity(team_members, capacity, self.math)
        annual_hours = self.math.multiply(weekly_hours, WEEKS_PER_YEAR)
        required_hours = calculate_required_hours(
            umsatzplanung, self.thresholds.assumed_hourly_rate, self.math
        )

        if required_hours <= ZERO or annual_hours <= ZERO:
            return None

        utilization = self.math.safe_divide(required_hours, annual_hours)
        if utilization <= self.thresholds.capacity_utilization:
            return None

        impossible = utilization > ONE
        utilization_percent = self.math.percent(utilization)
        required_rounded = self.math.round_to_int(required_hours)
        annual_rounded = self.math.round_to_int(annual_hours)

        return Inconsistency(
            id="capacity_overload",
            type=InconsistencyType.CAPACITY,
            severity=InconsistencySeverity.CRITICAL if impossible else InconsistencySeverity.HIGH,
            modules=(MODULE_ORGANISATION, MODULE_FINANZPLANUNG),
            description=(
                f"Umsatzziele erfordern {utilization_percent}% Kapazitätsauslastung des Teams "
                f"({required_rounded} von {annual_rounded} Stunden/Jahr)."
            ),
            impact=(
                "Mathematisch unmöglich - mehr Stunden erforderlich als verfügbar."
                if impossible
                else "Unrealistisch hohe Auslastung gefährdet Qualität und Work-Life-Balance."
            ),
            detected_values={
                "total_team_hours": annual_rounded,
                "required_hours": required_rounded,
                "utilization_percent": utilization_percent,
                "max_sustainable_percent": self.math.percent(self.thresholds.capacity_utilization),
            },
            suggestions=(
                "Reduzierung der Umsatzziele auf realistisches Niveau",
                "Erweiterung des Teams um zusätzliche Kapazitäten",
                "Erhöhung der Preise zur Kompensation geringerer Stunden",
                "Automatisierung/Effizienzsteigerung zur Produktivitätssteigerung",
            ),
        )

    # -------------------------------------------------------------------------
    # Check 4: Timeline
    # -------------------------------------------------------------------------

    def check_timeline_alignment(
        self,
        meilensteine: Mapping[str, Any],
        finanzplanung: Mapping[str, Any],
    ) -> Optional[Inconsistency]:
        break_even_raw = dig(finanzplanung, "rentabilitaet", "breakEvenMonat")
        first_customer_raw = dig(meilensteine, "gruendung", "firstCustomerTarget")
        launch_raw = dig(meilensteine, "vorbereitung", "launchDate")

        break_even_month = self.math.to_decimal(break_even_raw)
        first_customer = _parse_date(first_customer_raw)
        launch = _parse_date(launch_raw)

        if break_even_month <= ZERO or first_customer is None or launch is None:
            return None

        delta = first_customer - launch
        gap_days = self.math.add(
            delta.days, self.math.safe_divide(delta.seconds, SECONDS_PER_DAY)
        )
        break_even_gap_days = self.math.multiply(break_even_month, DAYS_PER_MONTH)

        if gap_days <= self.math.add(break_even_gap_days, self.thresholds.timeline_slack_days):
            return None

        return Inconsistency(
            id="timeline_revenue_gap",
            type=InconsistencyType.TIMELINE,
            severity=InconsistencySeverity.MEDIUM,
            modules=(MODULE_MEILENSTEINE, MODULE_FINANZPLANUNG),
            description=(
                f"Erster Kunde geplant für {_format_german_date(first_customer)}, aber Break-Even "
                f"nach {break_even_month} Monaten ab Launch ({_format_german_date(launch)}) "
                "erfordert frühere Umsätze."
            ),
            impact=(
                "Zeitliche Lücke zwischen ersten Umsätzen und Break-Even-Anforderungen "
                "gefährdet die Liquiditätsplanung."
            ),
            detected_values={
                "launch_date": launch_raw if isinstance(launch_raw, str) else launch.isoformat(),
                "first_customer_date": (
                    first_customer_raw if isinstance(first_customer_raw, str) else first_customer.isoformat()
                ),
                "break_even_month": break_even_month,
                "gap_days": self.math.round_to_int(self.math.subtract(gap_days, break_even_gap_days)),
            },
            suggestions=(
                "Beschleunigung der Kundenakquise vor dem Launch",
                "Anpassung der Break-Even-Kalkulation an realistische Kundengewinnungszeit",
                "Zusätzliche Marketing-Aktivitäten in der Vorbereitungsphase",
            ),
        )

    # -------------------------------------------------------------------------
    # Check 5: Costs
    # -------------------------------------------------------------------------

    def check_organisation_costs(
        self,
        organisation: Mapping[str, Any],
        finanzplanung: Mapping[str, Any],
    ) -> Optional[Inconsistency]:
        team_members = dig(organisation, "teamStruktur", "teamMembers")
        kapitalbedarf = dig(finanzplanung, "kapitalbedarf")
        kostenplanung = dig(finanzplanung, "kostenplanung")

        if not isinstance(team_members, (list, tuple)):
            return None
        if not isinstance(kapitalbedarf, Mapping) or not isinstance(kostenplanung, Mapping):
            return None

        math = self.math
        completeness = self.thresholds.cost_completeness
        missing_costs: List[str] = []

        salaries = [
            math.to_decimal(member.get("salary"))
            for member in team_members
            if isinstance(member, Mapping)
            and member.get("role") != ROLE_FOUNDER
            and math.to_decimal(member.get("salary")) > ZERO
        ]
        fixed_costs = [c for c in dig_list(kostenplanung, "fixkosten") if isinstance(c, Mapping)]
        variable_costs = [c for c in dig_list(kostenplanung, "variableKosten") if isinstance(c, Mapping)]

        if salaries:
            total_salaries = math.sum(salaries)
            personnel_costs = math.sum(
                cost.get("betragMonatlich")
                for cost in fixed_costs
                if cost.get("kategorie") == COST_CATEGORY_PERSONNEL
            )
            coverage = math.safe_divide(personnel_costs, total_salaries)
            if coverage < completeness:
                missing_costs.append(
                    f"Personalkosten unterrepräsentiert: Geplant {math.format_currency(personnel_costs)}/Monat, "
                    f"aber {math.format_currency(total_salaries)}/Monat in Organisation definiert"
                )

        outsourced = [
            math.to_decimal(decision.get("estimatedCost"))
            for decision in dig_list(organisation, "outsourcing")
            if isinstance(decision, Mapping)
            and decision.get("decision") == DECISION_OUTSOURCE
            and math.to_decimal(decision.get("estimatedCost")) > ZERO
        ]

        if outsourced:
            total_outsourcing = math.sum(outsourced)
            planned_outsourcing = math.sum(
                cost.get("betragMonatlich")
                for cost in fixed_costs + variable_costs
                if any(keyword in str(cost.get("name") or "").lower() for keyword in OUTSOURCING_COST_KEYWORDS)
            )
            if planned_outsourcing < math.multiply(total_outsourcing, completeness):
                missing_costs.append(
                    f"Outsourcing-Kosten fehlen: {math.format_currency(total_outsourcing)}/Monat geplant, "
                    f"aber nur {math.format_currency(planned_outsourcing)}/Monat budgetiert"
                )

        if not missing_costs:
            return None

        return Inconsistency(
            id="missing_organisation_costs",
            type=InconsistencyType.COSTS,
            severity=InconsistencySeverity.HIGH,
            modules=(MODULE_ORGANISATION, MODULE_FINANZPLANUNG),
            description="Kosten aus der Organisationsplanung sind nicht vollständig in der Finanzplanung erfasst.",
            impact=(
                "Unvollständige Kostenerfassung führt zu unrealistischen Gewinnprognosen "
                "und Liquiditätsproblemen."
            ),
            detected_values={"missing_cost_details": missing_costs},
            suggestions=(
                "Ergänzung der fehlenden Kostenpositionen in der Finanzplanung",
                "Überprüfung aller Organisationskosten auf Vollständigkeit",
                "Abstimmung zwischen Team-Planung und Budget-Planung",
            ),
        )

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def detect(self, session: Any) -> List[Inconsistency]:
        """
        Run every check whose modules carry data.

        Result is stable-sorted by severity (critical first); ties keep the
        check order.
        """
        parsed = WorkshopSession.coerce(session)
        if parsed is None:
            return []

        idea = parsed.module_data(MODULE_GESCHAEFTSIDEE)
        marketing = parsed.module_data(MODULE_MARKETING)
        finance = parsed.module_data(MODULE_FINANZPLANUNG)
        organisation = parsed.module_data(MODULE_ORGANISATION)
        milestones = parsed.module_data(MODULE_MEILENSTEINE)

        found: List[Optional[Inconsistency]] = []
        if idea is not None and marketing is not None:
            found.append(self.check_target_audience_alignment(idea, marketing))
        if idea is not None and finance is not None:
            found.append(self.check_pricing_consistency(idea, finance))
        if organisation is not None and finance is not None:
            found.append(self.check_personnel_capacity(organisation, finance))
        if milestones is not None and finance is not None:
            found.append(self.check_timeline_alignment(milestones, finance))
        if organisation is not None and finance is not None:
            found.append(self.check_organisation_costs(organisation, finance))

        inconsistencies = [i for i in found if i is not None]
        inconsistencies.sort(key=lambda i: SEVERITY_ORDER[i.severity])

        logger.debug(
            "[CONSISTENCY] Cross-module checks evaluated | session_id=%s | inconsistencies=%d",
            parsed.id, len(inconsistencies)
        )
        return inconsistencies


# =============================================================================
# MODULE-LEVEL API
# =============================================================================

def detect_inconsistencies(
    session: Any,
    thresholds: Optional[ConsistencyThresholds] = None,
    math: Optional[DecimalMath] = None,
) -> List[Inconsistency]:
    return CrossModuleConsistencyChecker(thresholds, math).detect(session)


def assess_overall_consistency(inconsistencies: Sequence[Inconsistency]) -> ConsistencyCheckResult:
    """
    Score = max(0, 100 - 25·critical - 15·high - 8·medium - 3·low).

    Ready for export when there is no critical issue and at most two high
    issues.
    """
    counts = {severity: 0 for severity in InconsistencySeverity}
    for inconsistency in inconsistencies:
        counts[inconsistency.severity] += 1

    score = 100 - sum(SEVERITY_DEDUCTIONS[s] * n for s, n in counts.items())

    return ConsistencyCheckResult(
        inconsistencies=tuple(inconsistencies),
        overall_score=max(0, score),
        critical_issues=counts[InconsistencySeverity.CRITICAL],
        ready_for_export=(
            counts[InconsistencySeverity.CRITICAL] == 0
            and counts[InconsistencySeverity.HIGH] <= MAX_HIGH_ISSUES_FOR_EXPORT
        ),
    )


def get_correction_prompt(inconsistency: Inconsistency) -> str:
    """German coaching prompt asking the founder to resolve an inconsistency."""
    modules = list(inconsistency.modules) + ["", ""]
    description = inconsistency.description

    prompts = {
        InconsistencyType.TARGET_AUDIENCE: (
            f"Ich sehe eine Unstimmigkeit bei deiner Zielgruppe. In {modules[0]} beschreibst du sie "
            f"anders als in {modules[1]}. Lass uns das klären: {description}"
        ),
        InconsistencyType.PRICING: (
            f"Deine Preisgestaltung ist nicht konsistent zwischen den Modulen. {description} "
            "Welche Preise sind richtig, und sollten wir die anderen anpassen?"
        ),
        InconsistencyType.CAPACITY: (
            f"Es gibt einen Widerspruch zwischen deinen Kapazitäten und Umsatzzielen. {description} "
            "Wie können wir das realistisch auflösen?"
        ),
        InconsistencyType.TIMELINE: (
            f"Die Zeitpläne zwischen Meilensteinen und Finanzplanung passen nicht zusammen. {description} "
            "Welcher Zeitplan ist realistischer?"
        ),
        InconsistencyType.COSTS: (
            f"In der Kostenplanung fehlen Posten, die du in der Organisation erwähnt hast. {description} "
            "Sollten wir diese Kosten ergänzen?"
        ),
    }

    prompt = prompts[inconsistency.type]
    if inconsistency.suggestions:
        prompt += f" Mögliche Lösungen: {' oder '.join(inconsistency.suggestions[:2])}."
    return prompt
