"""
Unit Tests for the Cross-Module Consistency Checker

Reliability Level: L5 High

Tests:
- Keyword extraction and Jaccard similarity
- Price mention parsing and closest-stream matching
- Capacity, timeline and cost heuristics
- Severity ordering, scoring and export readiness
"""

import pytest
import os
from decimal import Decimal

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.consistency_checker import (
    ConsistencyThresholds,
    CrossModuleConsistencyChecker,
    Inconsistency,
    InconsistencySeverity,
    InconsistencyType,
    PricingMention,
    RevenueStreamPrice,
    assess_overall_consistency,
    calculate_keyword_similarity,
    calculate_required_hours,
    calculate_team_capacity,
    detect_inconsistencies,
    extract_pricing_mentions,
    extract_target_audience_keywords,
    find_matching_revenue_stream,
    get_correction_prompt,
)
from app.schemas.workshop_session import (
    MODULE_FINANZPLANUNG,
    MODULE_GESCHAEFTSIDEE,
    MODULE_MARKETING,
    MODULE_MEILENSTEINE,
    MODULE_ORGANISATION,
)
from tests.builders import build_finanzplanung, build_session, with_module_data


@pytest.fixture
def checker() -> CrossModuleConsistencyChecker:
    return CrossModuleConsistencyChecker()


def _inconsistency(severity: InconsistencySeverity) -> Inconsistency:
    return Inconsistency(
        id=f"test_{severity.value}",
        type=InconsistencyType.COSTS,
        severity=severity,
        modules=(MODULE_ORGANISATION,),
        description="Test",
        impact="Test",
    )


# =============================================================================
# Helpers
# =============================================================================

class TestKeywords:

    def test_extract_keywords_is_case_insensitive_and_deduplicated(self) -> None:
        keywords = extract_target_audience_keywords("Junge STARTUP Gründer, startup-nah, in Berlin")
        assert keywords == ["jung", "startup", "berlin"]

    def test_no_text_no_keywords(self) -> None:
        assert extract_target_audience_keywords(None) == []
        assert extract_target_audience_keywords("") == []

    def test_similarity_edge_cases(self) -> None:
        assert calculate_keyword_similarity([], []) == Decimal("1")
        assert calculate_keyword_similarity(["startup"], []) == Decimal("0")
        assert calculate_keyword_similarity([], ["startup"]) == Decimal("0")

    def test_similarity_is_jaccard(self) -> None:
        similarity = calculate_keyword_similarity(["startup", "berlin"], ["startup", "senior", "lokal"])
        assert similarity == Decimal("0.25")


class TestPricing:

    def test_extract_pricing_mentions(self) -> None:
        mentions = extract_pricing_mentions("Pakete ab 1.500,00 € oder 89 € pro Stunde, 0 € Setup")
        assert [m.value for m in mentions] == [Decimal("1500.00"), Decimal("89")]

    def test_absurd_price_mentions_are_ignored(self) -> None:
        assert extract_pricing_mentions("Nur 100000000000000000000 €") == []

    def test_out_of_range_stream_price_does_not_raise(self) -> None:
        session = with_module_data(build_session(), MODULE_FINANZPLANUNG, {
            **build_finanzplanung(),
            "umsatzplanung": {"umsatzstroeme": [
                {"name": "Beratung", "preis": "1e999999999", "einheit": "Paket", "mengeJahr2": 5},
            ]},
        })

        inconsistencies = detect_inconsistencies(session)

        assert InconsistencyType.PRICING not in [i.type for i in inconsistencies]

    def test_closest_stream_within_window(self) -> None:
        streams = [
            RevenueStreamPrice(service="Workshop", price=Decimal("1200")),
            RevenueStreamPrice(service="Beratung", price=Decimal("95")),
        ]
        match = find_matching_revenue_stream(PricingMention(Decimal("89"), "89 €"), streams)
        assert match.service == "Beratung"

    def test_no_stream_within_window(self) -> None:
        streams = [RevenueStreamPrice(service="Workshop", price=Decimal("1200"))]
        assert find_matching_revenue_stream(PricingMention(Decimal("89"), "89 €"), streams) is None

    def test_pricing_mismatch_detected(self, checker: CrossModuleConsistencyChecker) -> None:
        idea = {"usp": {"proposition": "Beratung für nur 100 €"}}
        finance = {"umsatzplanung": {"umsatzstroeme": [{"name": "Beratung", "preis": "140"}]}}

        inconsistency = checker.check_pricing_consistency(idea, finance)

        assert inconsistency.type == InconsistencyType.PRICING
        assert inconsistency.severity == InconsistencySeverity.MEDIUM
        assert inconsistency.id == "pricing_mismatch_Beratung"
        assert inconsistency.detected_values["difference_percent"] == 40
        assert "(Abweichung 40,0%)" in inconsistency.description

    def test_pricing_within_tolerance(self, checker: CrossModuleConsistencyChecker) -> None:
        idea = {"usp": {"proposition": "Beratung für nur 100 €"}}
        finance = {"umsatzplanung": {"umsatzstroeme": [{"name": "Beratung", "preis": "120"}]}}

        assert checker.check_pricing_consistency(idea, finance) is None

    def test_only_first_mismatch_is_reported(self, checker: CrossModuleConsistencyChecker) -> None:
        idea = {"usp": {"proposition": "Basis 100 € und Premium 1.000 €"}}
        finance = {"umsatzplanung": {"umsatzstroeme": [
            {"name": "Basis", "preis": "140"},
            {"name": "Premium", "preis": "1400"},
        ]}}

        inconsistency = checker.check_pricing_consistency(idea, finance)
        assert inconsistency.id == "pricing_mismatch_Basis"

    def test_tolerance_is_configurable(self) -> None:
        lenient = CrossModuleConsistencyChecker(ConsistencyThresholds(price_variation=Decimal("0.5")))
        idea = {"usp": {"proposition": "Beratung für nur 100 €"}}
        finance = {"umsatzplanung": {"umsatzstroeme": [{"name": "Beratung", "preis": "140"}]}}

        assert lenient.check_pricing_consistency(idea, finance) is None


class TestCapacity:

    def test_founders_are_not_counted_twice(self) -> None:
        members = [
            {"role": "founder", "workingTime": "fulltime"},
            {"role": "employee", "workingTime": "parttime_20"},
            {"role": "freelancer", "workingTime": "unbekannt"},
        ]
        assert calculate_team_capacity(members, {"hoursPerWeek": 40}) == Decimal("80")

    def test_required_hours(self) -> None:
        umsatzplanung = {"umsatzstroeme": [
            {"einheit": "Stunde", "mengeJahr1": [100] * 12},
            {"einheit": "Paket", "preis": "400", "mengeJahr2": 20},
        ]}
        # 1200 hourly + 400 * 20 / 80
        assert calculate_required_hours(umsatzplanung) == Decimal("1300")

    def test_high_utilization_is_high_severity(self, checker: CrossModuleConsistencyChecker) -> None:
        organisation = {
            "teamStruktur": {"teamMembers": [{"role": "founder", "workingTime": "fulltime"}]},
            "kapazitaeten": {"currentCapacity": {"hoursPerWeek": 40}},
        }
        finance = {"umsatzplanung": {"umsatzstroeme": [
            {"einheit": "Stunden", "mengeJahr1": [160] * 12},
        ]}}
        # 1920 / 2080 = 92%
        inconsistency = checker.check_personnel_capacity(organisation, finance)

        assert inconsistency.severity == InconsistencySeverity.HIGH
        assert inconsistency.detected_values["utilization_percent"] == 92
        assert inconsistency.detected_values["max_sustainable_percent"] == 85

    def test_sustainable_utilization_passes(self, checker: CrossModuleConsistencyChecker) -> None:
        organisation = {
            "teamStruktur": {"teamMembers": []},
            "kapazitaeten": {"currentCapacity": {"hoursPerWeek": 40}},
        }
        finance = {"umsatzplanung": {"umsatzstroeme": [
            {"einheit": "Stunde", "mengeJahr1": [100] * 12},
        ]}}
        assert checker.check_personnel_capacity(organisation, finance) is None


class TestTimeline:

    def test_late_first_customer_is_flagged(self, checker: CrossModuleConsistencyChecker) -> None:
        milestones = {
            "vorbereitung": {"launchDate": "2025-01-01"},
            "gruendung": {"firstCustomerTarget": "2025-06-01"},
        }
        finance = {"rentabilitaet": {"breakEvenMonat": 3}}

        inconsistency = checker.check_timeline_alignment(milestones, finance)

        assert inconsistency.type == InconsistencyType.TIMELINE
        assert inconsistency.severity == InconsistencySeverity.MEDIUM
        # 151 days - 90 days
        assert inconsistency.detected_values["gap_days"] == 61
        assert "1.6.2025" in inconsistency.description

    def test_within_slack_passes(self, checker: CrossModuleConsistencyChecker) -> None:
        milestones = {
            "vorbereitung": {"launchDate": "2025-01-01"},
            "gruendung": {"firstCustomerTarget": "2025-04-15"},
        }
        finance = {"rentabilitaet": {"breakEvenMonat": 3}}

        assert checker.check_timeline_alignment(milestones, finance) is None

    def test_unparseable_dates_skip(self, checker: CrossModuleConsistencyChecker) -> None:
        milestones = {
            "vorbereitung": {"launchDate": "bald"},
            "gruendung": {"firstCustomerTarget": "2025-04-15"},
        }
        assert checker.check_timeline_alignment(milestones, {"rentabilitaet": {"breakEvenMonat": 3}}) is None


class TestCosts:

    def test_missing_personnel_and_outsourcing_costs(self, checker: CrossModuleConsistencyChecker) -> None:
        organisation = {
            "teamStruktur": {"teamMembers": [
                {"role": "founder", "salary": "5000"},
                {"role": "employee", "salary": "3000"},
            ]},
            "outsourcing": [{"decision": "outsource", "estimatedCost": "1000"}],
        }
        finance = {
            "kapitalbedarf": {"gesamtkapitalbedarf": "10000"},
            "kostenplanung": {
                "fixkosten": [{"name": "Gehalt", "kategorie": "personal", "betragMonatlich": "1000"}],
                "variableKosten": [{"name": "Externer Dienstleister", "betragMonatlich": "200"}],
            },
        }

        inconsistency = checker.check_organisation_costs(organisation, finance)

        assert inconsistency.type == InconsistencyType.COSTS
        assert inconsistency.severity == InconsistencySeverity.HIGH
        details = inconsistency.detected_values["missing_cost_details"]
        assert len(details) == 2
        assert "1.000,00 €" in details[0]
        assert "3.000,00 €" in details[0]

    def test_covered_costs_pass(self, checker: CrossModuleConsistencyChecker) -> None:
        organisation = {
            "teamStruktur": {"teamMembers": [{"role": "employee", "salary": "3000"}]},
        }
        finance = {
            "kapitalbedarf": {},
            "kostenplanung": {
                "fixkosten": [{"name": "Gehalt", "kategorie": "personal", "betragMonatlich": "2500"}],
            },
        }
        assert checker.check_organisation_costs(organisation, finance) is None


# =============================================================================
# Aggregation
# =============================================================================

class TestDetect:

    def test_consistent_session_has_no_inconsistencies(self) -> None:
        assert detect_inconsistencies(build_session()) == []

    def test_unusable_session(self) -> None:
        assert detect_inconsistencies(None) == []
        assert detect_inconsistencies("kaputt") == []

    def test_target_audience_mismatch(self) -> None:
        session = with_module_data(build_session(), MODULE_MARKETING, {
            "strategie": {"targetAudienceReach": "Senioren im ländlichen Raum, traditional"},
        })
        found = detect_inconsistencies(session)

        assert [i.type for i in found] == [InconsistencyType.TARGET_AUDIENCE]
        assert found[0].severity == InconsistencySeverity.HIGH
        assert found[0].detected_values["similarity_score"] == Decimal("0")

    def test_partial_data_skips_checks(self) -> None:
        session = with_module_data(build_session(), MODULE_GESCHAEFTSIDEE, {"notiz": "ohne Zielgruppe"})
        assert detect_inconsistencies(session) == []

    def test_sorted_by_severity(self) -> None:
        session = with_module_data(build_session(), MODULE_MARKETING, {
            "strategie": {"targetAudienceReach": "Senioren"},
        })
        session = with_module_data(session, MODULE_ORGANISATION, {
            "teamStruktur": {"teamMembers": [{"role": "founder", "workingTime": "fulltime"}]},
            "kapazitaeten": {"currentCapacity": {"hoursPerWeek": 5}},
        })
        session = with_module_data(session, MODULE_MEILENSTEINE, {
            "vorbereitung": {"launchDate": "2025-01-01"},
            "gruendung": {"firstCustomerTarget": "2025-12-01"},
        })

        severities = [i.severity for i in detect_inconsistencies(session)]

        assert severities == sorted(severities, key=lambda s: ["critical", "high", "medium", "low"].index(s.value))
        assert severities[0] == InconsistencySeverity.CRITICAL


class TestAssessOverallConsistency:

    def test_no_inconsistencies(self) -> None:
        result = assess_overall_consistency([])
        assert result.overall_score == 100
        assert result.ready_for_export

    def test_deductions(self) -> None:
        result = assess_overall_consistency([
            _inconsistency(InconsistencySeverity.HIGH),
            _inconsistency(InconsistencySeverity.MEDIUM),
            _inconsistency(InconsistencySeverity.LOW),
        ])
        assert result.overall_score == 100 - 15 - 8 - 3
        assert result.ready_for_export

    def test_critical_blocks_readiness(self) -> None:
        result = assess_overall_consistency([_inconsistency(InconsistencySeverity.CRITICAL)])
        assert result.critical_issues == 1
        assert not result.ready_for_export

    def test_three_high_issues_block_readiness(self) -> None:
        result = assess_overall_consistency([_inconsistency(InconsistencySeverity.HIGH)] * 3)
        assert not result.ready_for_export

    def test_score_floor_is_zero(self) -> None:
        result = assess_overall_consistency([_inconsistency(InconsistencySeverity.CRITICAL)] * 5)
        assert result.overall_score == 0

    def test_to_dict_uses_camel_case(self) -> None:
        payload = assess_overall_consistency([]).to_dict()
        assert set(payload) == {"inconsistencies", "overallScore", "criticalIssues", "readyForExport"}


class TestCorrectionPrompt:

    @pytest.mark.parametrize("inconsistency_type", list(InconsistencyType))
    def test_prompt_contains_description(self, inconsistency_type: InconsistencyType) -> None:
        inconsistency = Inconsistency(
            id="x",
            type=inconsistency_type,
            severity=InconsistencySeverity.MEDIUM,
            modules=(MODULE_GESCHAEFTSIDEE, MODULE_MARKETING),
            description="Beschreibung der Abweichung",
            impact="Wirkung",
        )
        assert "Beschreibung der Abweichung" in get_correction_prompt(inconsistency)
