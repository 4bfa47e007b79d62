"""
============================================================================
GZ Compliance Engine v1.0
Test Builders - Workshop Session Payloads
============================================================================

Builds complete, compliant workshop sessions as plain dicts. Tests start
from a passing session and break exactly the part they exercise.

============================================================================
"""

import copy
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.logic.financial_checks import (
    PLANNING_HORIZON_MONTHS,
    FinancialSnapshot,
    LiquidityMonth,
)
from app.schemas.workshop_session import (
    MODULE_FINANZPLANUNG,
    MODULE_GESCHAEFTSIDEE,
    MODULE_GESCHAEFTSMODELL,
    MODULE_INTAKE,
    MODULE_KPI,
    MODULE_MARKETING,
    MODULE_MARKT_WETTBEWERB,
    MODULE_MEILENSTEINE,
    MODULE_ORGANISATION,
    MODULE_SWOT,
    MODULE_UNTERNEHMEN,
    MODULE_ZUSAMMENFASSUNG,
)


def words(count: int, word: str = "Inhalt") -> str:
    return " ".join([word] * count)


SOURCES_TEXT = (
    "Marktdaten laut https://www.destatis.de/gruendungen "
    "und https://www.ihk.de/branchenreport sowie "
    "https://www.bitkom.org/marktzahlen und "
    "https://www.kfw.de/gruendungsmonitor und "
    "https://www.bundesbank.de/statistik"
)


def build_liquidity_months(
    endbestaende: Optional[List[Any]] = None,
    gz_months: int = 15,
) -> List[Dict[str, Any]]:
    """36 months of positive liquidity with the GZ subsidy in the first months."""
    if endbestaende is None:
        endbestaende = [str(10000 + 500 * i) for i in range(PLANNING_HORIZON_MONTHS)]
    months = []
    for index, endbestand in enumerate(endbestaende):
        months.append({
            "monat": index + 1,
            "anfangsbestand": "10000",
            "einzahlungenGesamt": "6300",
            "auszahlungenGesamt": "5800",
            "einzahlungenSonstige": "300" if index < gz_months else "0",
            "endbestand": endbestand,
        })
    return months


def build_finanzplanung() -> Dict[str, Any]:
    """Financial module payload that passes every financial rule."""
    return {
        "notizen": words(120, "Planung"),
        "kapitalbedarf": {"gesamtkapitalbedarf": "15000"},
        "privatentnahme": {"monatlichePrivatentnahme": "2000"},
        "umsatzplanung": {
            "umsatzJahr1": ["6000"] * 12,
            "umsatzJahr1Summe": "72000",
            "umsatzJahr2": "90000",
            "umsatzJahr3": "110000",
            "umsatzstroeme": [
                {
                    "name": "Beratung",
                    "preis": "90",
                    "einheit": "Stunde",
                    "mengeJahr1": [40] * 12,
                    "mengeJahr2": 600,
                },
            ],
        },
        "kostenplanung": {
            "fixkostenSummeMonatlich": "2500",
            "gesamtkostenJahr2": "40000",
            "gesamtkostenJahr3": "45000",
            "fixkosten": [
                {"name": "Miete", "kategorie": "raum", "betragMonatlich": "800"},
            ],
            "variableKosten": [],
        },
        "rentabilitaet": {"breakEvenMonat": 1},
        "liquiditaet": {"monate": build_liquidity_months()},
    }


def build_session(**overrides: Any) -> Dict[str, Any]:
    """
    A complete, compliant workshop session.

    Keyword overrides replace top-level keys (e.g. businessName=None).
    """
    session: Dict[str, Any] = {
        "id": "ws-test-001",
        "businessName": "Muster Beratung GmbH",
        "modules": {
            MODULE_INTAKE: {"status": "completed", "data": {"text": words(80)}},
            MODULE_GESCHAEFTSIDEE: {
                "status": "completed",
                "data": {
                    "targetAudience": {"primaryGroup": "Startup Unternehmer in Berlin"},
                    "usp": {"proposition": "Beratung zum Stundensatz von 90 €"},
                },
            },
            MODULE_GESCHAEFTSMODELL: {"status": "completed", "data": {"text": words(520)}},
            MODULE_UNTERNEHMEN: {"status": "completed", "data": {"text": words(420)}},
            MODULE_MARKT_WETTBEWERB: {
                "status": "completed",
                "data": {"text": words(320), "quellen": SOURCES_TEXT},
            },
            MODULE_MARKETING: {
                "status": "completed",
                "data": {
                    "text": words(420),
                    "strategie": {"targetAudienceReach": "Startup Unternehmer in Berlin"},
                },
            },
            MODULE_FINANZPLANUNG: {"status": "completed", "data": build_finanzplanung()},
            MODULE_SWOT: {"status": "completed", "data": {"text": words(420)}},
            MODULE_MEILENSTEINE: {"status": "completed", "data": {"text": words(60)}},
            MODULE_KPI: {"status": "completed", "data": {"text": words(220)}},
            MODULE_ZUSAMMENFASSUNG: {"status": "completed"},
        },
    }
    session.update(overrides)
    return session


def with_module_data(session: Dict[str, Any], module_id: str, data: Any) -> Dict[str, Any]:
    """Return a deep copy of session with one module's data replaced."""
    updated = copy.deepcopy(session)
    updated["modules"][module_id] = {"status": "completed", "data": data}
    return updated


def without_module(session: Dict[str, Any], module_id: str) -> Dict[str, Any]:
    updated = copy.deepcopy(session)
    updated["modules"].pop(module_id, None)
    return updated


def liquidity_snapshot(endbestaende: List[Any]) -> FinancialSnapshot:
    """Snapshot holding only a 36-month liquidity series."""
    return FinancialSnapshot(
        liquidity_months=tuple(
            LiquidityMonth(month=index + 1, endbestand=Decimal(str(value)))
            for index, value in enumerate(endbestaende)
        ),
    )


def complete_snapshot(**overrides: Any) -> FinancialSnapshot:
    """Snapshot that passes all five financial checks."""
    values: Dict[str, Any] = {
        "month6_profit": Decimal("3500"),
        "privatentnahme": Decimal("2000"),
        "liquidity_months": tuple(
            LiquidityMonth(month=m, endbestand=Decimal("5000"))
            for m in range(1, PLANNING_HORIZON_MONTHS + 1)
        ),
        "monthly_profits": tuple([Decimal("3500")] * PLANNING_HORIZON_MONTHS),
        "break_even_month": 1,
        "has_kapitalbedarf_table": True,
        "has_umsatz_table": True,
        "has_lebenshaltungskosten_table": True,
        "has_liquiditaet_table": True,
        "gz_funding_months": tuple(range(1, 16)),
    }
    values.update(overrides)
    return FinancialSnapshot(**values)
