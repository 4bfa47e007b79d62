"""
============================================================================
GZ Compliance Engine v1.0
Financial Checks - BA Compliance Rules over the 36-Month Financial Plan
============================================================================

Reliability Level: L6 Critical
Input Constraints: Raw gz-finanzplanung payload (may be absent or partial)
Side Effects: None (pure functions)

CRITICAL BLOCKERS
-----------------
1. Month 6 Self-Sufficiency - the #1 rejection cause (30-50% fail here)
2. Liquidity Non-Negative   - negative liquidity means insolvency
3. Financial Tables Complete - BA requires the full 36-month plan

WARNINGS
--------
4. Break-Even Reasonable - BA is skeptical beyond month 18
5. GZ Funding Included   - subsidy should appear in the liquidity plan

ZERO-FLOAT MANDATE
------------------
All currency arithmetic goes through DecimalMath. detected_values carry the
exact Decimal amounts, never floats.

============================================================================
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence, Tuple
import logging

from app.logic.compliance_models import (
    IssueCategory,
    IssueSeverity,
    RULE_BREAK_EVEN_REASONABLE,
    RULE_FINANCIAL_TABLES_COMPLETE,
    RULE_GZ_FUNDING_INCLUDED,
    RULE_LIQUIDITY_NON_NEGATIVE,
    RULE_MONTH6_SELF_SUFFICIENCY,
    ValidationIssue,
)
from app.logic.decimal_math import (
    DEFAULT_DECIMAL_MATH,
    DecimalMath,
    ZERO,
    format_duration,
    format_month,
)
from app.schemas.workshop_session import MODULE_FINANZPLANUNG, dig, dig_list

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

PLANNING_HORIZON_MONTHS = 36
SELF_SUFFICIENCY_MONTH = 6
BREAK_EVEN_MAX_MONTH = 18
GZ_MIN_FUNDED_MONTHS = 6
MAX_LISTED_NEGATIVE_MONTHS = 5

# GZ phases: 300 EUR/month for 6 months (phase 1) and 9 months (phase 2)
GZ_MONTHLY_AMOUNT = Decimal("300")
GZ_PHASE1_MONTHS = 6
GZ_PHASE2_MONTHS = 9

# Heuristic: inflow above 110% of the opening balance signals extra income
GZ_INFLOW_HEURISTIC_FACTOR = Decimal("1.1")

TABLE_KAPITALBEDARF = "Kapitalbedarfsplanung"
TABLE_UMSATZ = "Umsatz- und Rentabilitätsplanung"
TABLE_LEBENSHALTUNG = "Lebenshaltungskosten"
TABLE_LIQUIDITAET = "Liquiditätsplanung"


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class LiquidityMonth:
    """
    One month of the liquidity plan. All amounts are Decimal.

    padded marks months the extractor appended to reach the planning horizon;
    they carry no user input and are never reported as findings.
    """
    month: int
    endbestand: Decimal
    anfangsbestand: Decimal = ZERO
    inflow: Decimal = ZERO
    outflow: Decimal = ZERO
    padded: bool = False


@dataclass(frozen=True)
class FinancialSnapshot:
    """
    Read-only projection of the financial plan used by the checks.

    Reliability Level: L6 Critical
    Input Constraints: All monetary values must be Decimal
    Side Effects: None (immutable)

    The extractor always produces series with exactly 36 entries or none.
    break_even_month is computed once by the extractor and cached here.
    """
    month6_profit: Decimal = ZERO
    privatentnahme: Decimal = ZERO
    liquidity_months: Tuple[LiquidityMonth, ...] = ()
    monthly_profits: Tuple[Decimal, ...] = ()
    break_even_month: Optional[int] = None
    has_kapitalbedarf_table: bool = False
    has_umsatz_table: bool = False
    has_lebenshaltungskosten_table: bool = False
    has_liquiditaet_table: bool = False
    gz_funding_months: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "liquidity_months", tuple(self.liquidity_months))
        object.__setattr__(self, "monthly_profits", tuple(self.monthly_profits))
        object.__setattr__(self, "gz_funding_months", tuple(self.gz_funding_months))

        for name in ("liquidity_months", "monthly_profits"):
            length = len(getattr(self, name))
            if length not in (0, PLANNING_HORIZON_MONTHS):
                raise ValueError(
                    f"{name} must hold 0 or {PLANNING_HORIZON_MONTHS} entries, got {length}"
                )


EMPTY_FINANCIAL_SNAPSHOT = FinancialSnapshot()


# =============================================================================
# EXTRACTION
# =============================================================================

def find_break_even_month(monthly_profits: Sequence[Decimal]) -> Optional[int]:
    """
    Return the 1-indexed month of the first profit >= 0, or None.

    Linear scan over the series in order.
    """
    for index, profit in enumerate(monthly_profits):
        if profit >= ZERO:
            return index + 1
    return None


def _build_profit_series(payload: Mapping[str, Any], math: DecimalMath) -> Tuple[Decimal, ...]:
    umsatzplanung = payload.get("umsatzplanung")
    if not isinstance(umsatzplanung, Mapping):
        return ()

    year1_revenue = dig_list(umsatzplanung, "umsatzJahr1")
    monthly_fixed_costs = math.to_decimal(dig(payload, "kostenplanung", "fixkostenSummeMonatlich"))

    profits: List[Decimal] = []
    for index in range(12):
        revenue = year1_revenue[index] if index < len(year1_revenue) else 0
        profits.append(math.subtract(revenue, monthly_fixed_costs))

    for revenue_key, cost_key in (("umsatzJahr2", "gesamtkostenJahr2"), ("umsatzJahr3", "gesamtkostenJahr3")):
        annual_revenue = math.to_decimal(umsatzplanung.get(revenue_key))
        annual_costs = math.to_decimal(dig(payload, "kostenplanung", cost_key))
        monthly_profit = math.divide(math.subtract(annual_revenue, annual_costs), 12)
        profits.extend([monthly_profit] * 12)

    return tuple(profits)


def _build_liquidity_series(
    raw_months: List[Any],
    math: DecimalMath,
) -> Tuple[LiquidityMonth, ...]:
    """
    Normalize the liquidity table to exactly 36 months (or none).

    Longer tables are truncated. Shorter tables are continued by carrying the
    last ending balance forward with zero flows, flagged as padded.
    """
    if not raw_months:
        return ()

    months: List[LiquidityMonth] = []
    for index, raw in enumerate(raw_months[:PLANNING_HORIZON_MONTHS]):
        entry = raw if isinstance(raw, Mapping) else {}
        inflow = entry.get("einzahlungenGesamt", entry.get("einzahlungen"))
        outflow = entry.get("auszahlungenGesamt", entry.get("auszahlungen"))
        months.append(LiquidityMonth(
            month=index + 1,
            endbestand=math.to_decimal(entry.get("endbestand")),
            anfangsbestand=math.to_decimal(entry.get("anfangsbestand")),
            inflow=math.to_decimal(inflow),
            outflow=math.to_decimal(outflow),
        ))

    last_balance = months[-1].endbestand
    while len(months) < PLANNING_HORIZON_MONTHS:
        months.append(LiquidityMonth(
            month=len(months) + 1,
            endbestand=last_balance,
            anfangsbestand=last_balance,
            padded=True,
        ))

    return tuple(months)


def _find_gz_funding_months(
    raw_months: List[Any],
    liquidity: Tuple[LiquidityMonth, ...],
    math: DecimalMath,
) -> Tuple[int, ...]:
    source = raw_months[:PLANNING_HORIZON_MONTHS]
    explicit = any(isinstance(m, Mapping) and "einzahlungenSonstige" in m for m in source)

    funded: List[int] = []
    for index, raw in enumerate(source):
        if explicit:
            other_inflow = math.to_decimal(raw.get("einzahlungenSonstige")) if isinstance(raw, Mapping) else ZERO
            if other_inflow > ZERO:
                funded.append(index + 1)
        else:
            month = liquidity[index]
            if month.inflow > math.multiply(month.anfangsbestand, GZ_INFLOW_HEURISTIC_FACTOR):
                funded.append(index + 1)
    return tuple(funded)


def _resolve_month6_profit(
    payload: Mapping[str, Any],
    monthly_profits: Tuple[Decimal, ...],
    math: DecimalMath,
) -> Decimal:
    explicit = dig(payload, "rentabilitaet", "monat6Ergebnis")
    if explicit is not None:
        return math.to_decimal(explicit)
    if len(monthly_profits) >= SELF_SUFFICIENCY_MONTH:
        return monthly_profits[SELF_SUFFICIENCY_MONTH - 1]
    annual = dig(payload, "rentabilitaet", "jahr1", "jahresueberschuss")
    if annual is not None:
        return math.divide(math.to_decimal(annual), 12)
    return ZERO


def extract_financial_snapshot(
    finanzplanung: Optional[Mapping[str, Any]],
    math: Optional[DecimalMath] = None,
) -> FinancialSnapshot:
    """
    Project a raw gz-finanzplanung payload into a FinancialSnapshot.

    Reliability Level: L6 Critical
    Input Constraints: None (absent or malformed data yields empty values)
    Side Effects: None

    Never raises on missing data.
    """
    math = math or DEFAULT_DECIMAL_MATH

    if not isinstance(finanzplanung, Mapping) or not finanzplanung:
        return EMPTY_FINANCIAL_SNAPSHOT

    monthly_profits = _build_profit_series(finanzplanung, math)
    raw_months = dig_list(finanzplanung, "liquiditaet", "monate")
    liquidity = _build_liquidity_series(raw_months, math)

    privatentnahme_raw = dig(finanzplanung, "privatentnahme", "monatlichePrivatentnahme")

    return FinancialSnapshot(
        month6_profit=_resolve_month6_profit(finanzplanung, monthly_profits, math),
        privatentnahme=math.to_decimal(privatentnahme_raw),
        liquidity_months=liquidity,
        monthly_profits=monthly_profits,
        break_even_month=find_break_even_month(monthly_profits),
        has_kapitalbedarf_table=bool(dig(finanzplanung, "kapitalbedarf", "gesamtkapitalbedarf")),
        has_umsatz_table=bool(dig(finanzplanung, "umsatzplanung", "umsatzJahr1Summe")),
        has_lebenshaltungskosten_table=bool(privatentnahme_raw),
        has_liquiditaet_table=bool(raw_months),
        gz_funding_months=_find_gz_funding_months(raw_months, liquidity, math),
    )


# =============================================================================
# CHECKS
# =============================================================================

def check_month6_self_sufficiency(
    snapshot: FinancialSnapshot,
    math: Optional[DecimalMath] = None,
) -> Optional[ValidationIssue]:
    """
    BLOCKER: month-6 profit must cover the monthly private draw.

    Reliability Level: L6 Critical
    Side Effects: None

    detected_values["shortfall"] equals privatentnahme - month6_profit exactly.
    """
    math = math or DEFAULT_DECIMAL_MATH
    profit = snapshot.month6_profit
    required = snapshot.privatentnahme

    if profit >= required:
        return None

    shortfall = math.subtract(required, profit)
    shortfall_text = math.format_currency(shortfall)

    message = (
        "KRITISCHER FEHLER: Selbstragfähigkeit nicht erreicht!\n"
        "\n"
        f"{format_month(SELF_SUFFICIENCY_MONTH)} Gewinn: {math.format_currency(profit)}\n"
        f"Benötigter Mindestgewinn: {math.format_currency(required)}\n"
        f"Fehlbetrag: {shortfall_text}\n"
        "\n"
        "Die BA prüft, ob Sie ab Monat 6 von Ihrem Geschäft leben können.\n"
        f"Ihr Plan zeigt aktuell, dass Sie {shortfall_text} zu wenig verdienen.\n"
        "\n"
        "LÖSUNGEN:\n"
        "1. Umsatz erhöhen (mehr Kunden in Monaten 1-6 gewinnen)\n"
        "2. Kosten senken (günstigere Alternativen in Betriebsausgaben)\n"
        "3. Privatentnahme reduzieren (Lebenshaltungskosten prüfen)\n"
        "\n"
        "Export ist BLOCKIERT bis dieser Fehler behoben ist."
    )

    return ValidationIssue(
        id=RULE_MONTH6_SELF_SUFFICIENCY,
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.FINANCIAL,
        title="Selbstragfähigkeit nicht erreicht",
        message=message,
        affected_section=MODULE_FINANZPLANUNG,
        suggested_fix=f"Erhöhen Sie Ihren Gewinn in Monat 6 um {shortfall_text}",
        documentation_link="/docs/ba-requirements#month-6-self-sufficiency",
        detected_values={
            "month6Profit": profit,
            "requiredProfit": required,
            "shortfall": shortfall,
        },
    )


def check_liquidity_non_negative(
    snapshot: FinancialSnapshot,
    math: Optional[DecimalMath] = None,
) -> Optional[ValidationIssue]:
    """
    BLOCKER: every entered monthly ending balance must be >= 0.

    Padded months are skipped so a short table is judged on its own months.

    Reports the first negative month, the worst (most negative) month and up
    to five negative months explicitly.
    """
    math = math or DEFAULT_DECIMAL_MATH
    negative_months = [
        m for m in snapshot.liquidity_months
        if not m.padded and m.endbestand < ZERO
    ]

    if not negative_months:
        return None

    first_negative = negative_months[0]
    worst = first_negative
    for month in negative_months[1:]:
        if month.endbestand < worst.endbestand:
            worst = month

    lines = [
        "KRITISCHER FEHLER: Liquidität wird negativ!",
        "",
        f"{format_month(first_negative.month)}: {math.format_currency(first_negative.endbestand)}",
        "",
        "Ihrem Unternehmen geht das Geld aus. Die BA wird diesen Plan ablehnen.",
        "",
        "BETROFFENE MONATE:",
    ]
    for month in negative_months[:MAX_LISTED_NEGATIVE_MONTHS]:
        lines.append(f"{format_month(month.month)}: {math.format_currency(month.endbestand)}")
    if len(negative_months) > MAX_LISTED_NEGATIVE_MONTHS:
        lines.append(f"... und {len(negative_months) - MAX_LISTED_NEGATIVE_MONTHS} weitere Monate")
    lines.extend([
        "",
        f"SCHLIMMSTER MONAT: {format_month(worst.month)} mit {math.format_currency(worst.endbestand)}",
        "",
        "LÖSUNGEN:",
        "1. Eigenkapital erhöhen (mehr Startkapital einbringen)",
        "2. Startinvestitionen verzögern (später kaufen)",
        "3. Privatentnahme senken (weniger entnehmen)",
        "4. Darlehen aufnehmen (als Finanzierung eintragen)",
        "",
        "Export ist BLOCKIERT bis Liquidität in allen Monaten >= 0 € ist.",
    ])

    return ValidationIssue(
        id=RULE_LIQUIDITY_NON_NEGATIVE,
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.FINANCIAL,
        title="Liquidität wird negativ",
        message="\n".join(lines),
        affected_section=MODULE_FINANZPLANUNG,
        suggested_fix=(
            f"Erhöhen Sie die Liquidität um mindestens "
            f"{math.format_currency(math.absolute(worst.endbestand))} in {format_month(worst.month)}"
        ),
        documentation_link="/docs/ba-requirements#liquidity-non-negative",
        detected_values={
            "negativeMonthsCount": len(negative_months),
            "firstNegativeMonth": first_negative.month,
            "worstMonth": worst.month,
            "worstAmount": worst.endbestand,
            "negativeMonths": [m.month for m in negative_months],
        },
    )


def check_financial_tables_complete(snapshot: FinancialSnapshot) -> Optional[ValidationIssue]:
    """BLOCKER: all four financial sub-tables must be present."""
    missing: List[str] = []
    if not snapshot.has_kapitalbedarf_table:
        missing.append(TABLE_KAPITALBEDARF)
    if not snapshot.has_umsatz_table:
        missing.append(TABLE_UMSATZ)
    if not snapshot.has_lebenshaltungskosten_table:
        missing.append(TABLE_LEBENSHALTUNG)
    if not snapshot.has_liquiditaet_table:
        missing.append(TABLE_LIQUIDITAET)

    if not missing:
        return None

    message = (
        "KRITISCHER FEHLER: Finanzplanung unvollständig!\n"
        "\n"
        "FEHLENDE TABELLEN:\n"
        + "\n".join(f"• {table}" for table in missing)
        + "\n\n"
        "Die BA benötigt vollständige Finanztabellen über 3 Jahre (36 Monate).\n"
        "Ohne diese Daten wird Ihr Antrag nicht bearbeitet.\n"
        "\n"
        "LÖSUNG:\n"
        "Füllen Sie das Modul Finanzplanung vollständig aus.\n"
        "Alle 4 Finanzplanungstabellen müssen komplett sein.\n"
        "\n"
        "Export ist BLOCKIERT bis alle Tabellen vollständig sind."
    )

    return ValidationIssue(
        id=RULE_FINANCIAL_TABLES_COMPLETE,
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.FINANCIAL,
        title="Finanzplanung unvollständig",
        message=message,
        affected_section=MODULE_FINANZPLANUNG,
        suggested_fix="Vervollständigen Sie alle fehlenden Finanzplanungstabellen",
        documentation_link="/docs/ba-requirements#financial-tables-complete",
        detected_values={
            "missingTables": missing,
            "hasKapitalbedarf": snapshot.has_kapitalbedarf_table,
            "hasUmsatz": snapshot.has_umsatz_table,
            "hasLebenshaltung": snapshot.has_lebenshaltungskosten_table,
            "hasLiquiditaet": snapshot.has_liquiditaet_table,
        },
    )


def check_break_even_reasonable(snapshot: FinancialSnapshot) -> Optional[ValidationIssue]:
    """WARNING: break-even should be reached by month 18."""
    break_even = snapshot.break_even_month

    if break_even is None:
        message = (
            "WARNUNG: Break-Even nicht erreicht!\n"
            "\n"
            f"Ihr Plan zeigt in {PLANNING_HORIZON_MONTHS} Monaten keinen Gewinn. "
            "Die BA wird kritische Fragen stellen:\n"
            "\n"
            "KRITISCHE FRAGEN DER BA:\n"
            "• Ist das Geschäftsmodell überhaupt tragfähig?\n"
            "• Warum dauert Profitabilität so lange?\n"
            "• Haben Sie realistische Umsatzprognosen?\n"
            "• Sind die Kosten vollständig erfasst?\n"
            "\n"
            "EMPFEHLUNG:\n"
            "Überarbeiten Sie Ihre Umsatz- oder Kostenplanung, damit Sie spätestens\n"
            f"in {format_month(BREAK_EVEN_MAX_MONTH)} profitabel werden.\n"
            "\n"
            "NICHT BLOCKIEREND - Sie können exportieren, aber bereiten Sie sich auf\n"
            "Nachfragen der BA vor."
        )
        return ValidationIssue(
            id=RULE_BREAK_EVEN_REASONABLE,
            severity=IssueSeverity.WARNING,
            category=IssueCategory.FINANCIAL,
            title="Break-Even nicht erreicht",
            message=message,
            affected_section=MODULE_FINANZPLANUNG,
            suggested_fix="Überarbeiten Sie Umsatz oder Kosten für schnellere Profitabilität",
            documentation_link="/docs/ba-requirements#break-even-reasonable",
            detected_values={
                "breakEvenMonth": None,
                "monthsAnalyzed": PLANNING_HORIZON_MONTHS,
            },
        )

    if break_even <= BREAK_EVEN_MAX_MONTH:
        return None

    duration = format_duration(break_even)
    message = (
        f"WARNUNG: Break-Even erst in {format_month(break_even)}!\n"
        "\n"
        "Die BA erwartet typischerweise Profitabilität innerhalb 12-18 Monaten.\n"
        f"Ihr Plan zeigt {duration}.\n"
        "\n"
        "DIE BA KÖNNTE FRAGEN:\n"
        f"• Warum dauert es {duration}?\n"
        "• Ist das Geschäftsmodell schneller skalierbar?\n"
        "• Haben Sie konservative Prognosen verwendet?\n"
        "• Gibt es Möglichkeiten zur Beschleunigung?\n"
        "\n"
        "EMPFEHLUNG:\n"
        f"Bereiten Sie eine fundierte Begründung vor, warum {duration}\n"
        "realistisch und angemessen ist.\n"
        "\n"
        "NICHT BLOCKIEREND - Sie können exportieren, sollten aber eine\n"
        "Erklärung für die BA vorbereiten."
    )

    return ValidationIssue(
        id=RULE_BREAK_EVEN_REASONABLE,
        severity=IssueSeverity.WARNING,
        category=IssueCategory.FINANCIAL,
        title=f"Break-Even erst in {format_month(break_even)}",
        message=message,
        affected_section=MODULE_FINANZPLANUNG,
        suggested_fix="Verkürzen Sie Break-Even auf max. 18 Monate oder bereiten Sie eine Begründung vor",
        documentation_link="/docs/ba-requirements#break-even-reasonable",
        detected_values={
            "breakEvenMonth": break_even,
            "recommendedMax": BREAK_EVEN_MAX_MONTH,
            "exceedsBy": break_even - BREAK_EVEN_MAX_MONTH,
        },
    )


def check_gz_funding_included(
    snapshot: FinancialSnapshot,
    math: Optional[DecimalMath] = None,
) -> Optional[ValidationIssue]:
    """WARNING: the GZ subsidy should show up in at least 6 months."""
    math = math or DEFAULT_DECIMAL_MATH
    funded_count = len(snapshot.gz_funding_months)

    if funded_count >= GZ_MIN_FUNDED_MONTHS:
        return None

    monthly = math.format_currency(GZ_MONTHLY_AMOUNT)
    phase1_total = math.format_currency(math.multiply(GZ_MONTHLY_AMOUNT, GZ_PHASE1_MONTHS))
    phase2_total = math.format_currency(math.multiply(GZ_MONTHLY_AMOUNT, GZ_PHASE2_MONTHS))

    message = (
        "WARNUNG: Gründungszuschuss nicht in Finanzplanung sichtbar!\n"
        "\n"
        "Sie beantragen GZ, sollten ihn aber auch in der Liquiditätsplanung zeigen:\n"
        "\n"
        "GRÜNDUNGSZUSCHUSS PHASEN:\n"
        f"• Phase 1 (Monate 1-6): ALG I + {monthly}/Monat\n"
        f"• Phase 2 (Monate 7-15): {monthly}/Monat (bei Erfolg)\n"
        "\n"
        "LÖSUNG:\n"
        "Tragen Sie GZ als \"sonstige Einzahlungen\" in die Liquiditätsplanung ein:\n"
        f"• {monthly} × {GZ_PHASE1_MONTHS} Monate = {phase1_total} (Phase 1)\n"
        f"• {monthly} × {GZ_PHASE2_MONTHS} Monate = {phase2_total} (Phase 2)\n"
        "\n"
        "NICHT BLOCKIEREND - aber empfohlen für glaubwürdigere Finanzplanung."
    )

    return ValidationIssue(
        id=RULE_GZ_FUNDING_INCLUDED,
        severity=IssueSeverity.WARNING,
        category=IssueCategory.FINANCIAL,
        title="Gründungszuschuss nicht in Finanzplanung",
        message=message,
        affected_section=MODULE_FINANZPLANUNG,
        suggested_fix="Tragen Sie GZ-Förderung in Liquiditätsplanung ein",
        documentation_link="/docs/ba-requirements#gz-funding-included",
        detected_values={
            "gzMonthsFound": funded_count,
            "minimumMonths": GZ_MIN_FUNDED_MONTHS,
            "recommendedMonths": GZ_PHASE1_MONTHS + GZ_PHASE2_MONTHS,
            "phase1Amount": GZ_MONTHLY_AMOUNT,
            "phase2Amount": GZ_MONTHLY_AMOUNT,
        },
    )


# =============================================================================
# RULE SET
# =============================================================================

def run_financial_checks(
    snapshot: FinancialSnapshot,
    math: Optional[DecimalMath] = None,
) -> List[ValidationIssue]:
    """Run all five financial checks against a snapshot (blockers first)."""
    candidates = (
        check_month6_self_sufficiency(snapshot, math),
        check_liquidity_non_negative(snapshot, math),
        check_financial_tables_complete(snapshot),
        check_break_even_reasonable(snapshot),
        check_gz_funding_included(snapshot, math),
    )
    return [issue for issue in candidates if issue is not None]


def validate_financial_compliance(
    finanzplanung: Optional[Mapping[str, Any]],
    math: Optional[DecimalMath] = None,
) -> List[ValidationIssue]:
    """
    Extract the financial snapshot and run the financial rule set.

    Reliability Level: L6 Critical
    Side Effects: Debug logging only
    """
    snapshot = extract_financial_snapshot(finanzplanung, math)
    issues = run_financial_checks(snapshot, math)
    logger.debug(
        "[FIN-CHECKS] Financial rule set evaluated | issues=%d | break_even_month=%s",
        len(issues), snapshot.break_even_month
    )
    return issues
