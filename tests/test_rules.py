"""
Tests for rule sets: check builders, loader validation and the registry.
"""

import json
import pytest
from datetime import date

from docverify.errors import RuleSetError, UnknownDocumentType
from docverify.rules import load_registry, load_rule_file, rule_set_from_dict
from docverify.rules.checks import (
    coverage_check,
    date_order_check,
    expiry_check,
    first_of,
    keywords_absent,
    min_of,
    not_future_check,
    parse_date,
    pattern_check,
    presence_check,
    recency_check,
    weighted_presence,
)

TODAY = date(2025, 6, 1)

BUILTIN_TYPES = [
    "AADHAAR", "BANK_CHEQUE", "BIO_NOC", "BOARD_RES", "FIRE_NOC", "GMP", "GST", "INCORP", "LEASE", "MOA",
    "PAN", "PASSPORT", "POLLUTION_NOC", "PRODUCT_DOSSIER", "PROMOTER_KYC", "TECH_CERT", "UTILITY",
]


class TestParseDate:
    def test_iso_string(self):
        assert parse_date("2025-01-31") == date(2025, 1, 31)

    def test_iso_datetime_string(self):
        assert parse_date("2025-01-31T10:00:00Z") == date(2025, 1, 31)

    def test_unparseable(self):
        assert parse_date("31/01/2025") is None
        assert parse_date("") is None
        assert parse_date(20250131) is None


class TestCheckBuilders:
    def test_pattern(self):
        check = pattern_check("pan", r"[A-Z]{5}[0-9]{4}[A-Z]")
        assert check({"pan": "ABCDE1234F"}, TODAY) == 1.0
        assert check({"pan": "ABCDE1234"}, TODAY) == 0.0
        assert check({}, TODAY) == 0.0

    def test_pattern_canonical_and_missing_score(self):
        check = pattern_check("gstin", r"[0-9]{2}[A-Z]{5}", canonical=True, missing=0.5)
        assert check({"gstin": "29 abcde"}, TODAY) == 1.0
        assert check({"gstin": ""}, TODAY) == 0.5

    def test_presence_all_and_any(self):
        check = presence_check(all_of=["name"], any_of=["id_hash", "dob"], partial=0.6)
        assert check({"name": "Ravi", "dob": "1985-04-12"}, TODAY) == 1.0
        assert check({"name": "Ravi"}, TODAY) == 0.6
        assert check({"dob": "1985-04-12"}, TODAY) == 0.0

    def test_presence_grouped_alternative(self):
        check = presence_check(any_of=["account_no_masked", ["ifsc", "bank_name"]], otherwise=0.5)
        assert check({"ifsc": "HDFC0001234", "bank_name": "HDFC"}, TODAY) == 1.0
        assert check({"ifsc": "HDFC0001234"}, TODAY) == 0.5

    def test_first_of_and_min_of(self):
        full = pattern_check("aadhaar", r"[0-9]{12}")
        last4 = pattern_check("aadhaar_last4", r"[0-9]{4}", score=0.7)
        assert first_of([full, last4])({"aadhaar_last4": "9012"}, TODAY) == 0.7
        assert first_of([full, last4])({}, TODAY) == 0.0
        assert min_of([full, last4])({"aadhaar": "123456789012", "aadhaar_last4": "9012"}, TODAY) == 0.7

    def test_expiry(self):
        check = expiry_check("valid_upto")
        assert check({"valid_upto": "2025-06-01"}, TODAY) == 1.0
        assert check({"valid_upto": "2025-05-31"}, TODAY) == 0.0
        assert check({}, TODAY) == 0.5
        assert check({"valid_upto": "soon"}, TODAY) == 0.0

    def test_not_future(self):
        check = not_future_check("resolution_date", future=0.2, missing=0.0)
        assert check({"resolution_date": "2025-01-01"}, TODAY) == 1.0
        assert check({"resolution_date": "2026-01-01"}, TODAY) == 0.2
        assert check({}, TODAY) == 0.0

    def test_date_order_and_staleness(self):
        check = date_order_check("start_date", "end_date", stale_after_days=365)
        assert check({"start_date": "2024-01-01", "end_date": "2026-01-01"}, TODAY) == 1.0
        assert check({"start_date": "2026-01-01", "end_date": "2024-01-01"}, TODAY) == 0.0
        assert check({"start_date": "2020-01-01", "end_date": "2022-01-01"}, TODAY) == 0.4
        assert check({"start_date": "2024-01-01"}, TODAY) == 0.0

    def test_recency_bands(self):
        check = recency_check("billing_date", bands=[[90, 1.0], [180, 0.6]])
        assert check({"billing_date": "2025-05-01"}, TODAY) == 1.0
        assert check({"billing_date": "2025-01-15"}, TODAY) == 0.6
        assert check({"billing_date": "2024-01-01"}, TODAY) == 0.0
        assert check({}, TODAY) == 0.5

    def test_coverage(self):
        check = coverage_check(
            "equipment_list", "scheme_name", {"General GMP": ["weighing balance", "QC lab", "autoclave"]}
        )
        extracted = {"scheme_name": "general gmp", "equipment_list": ["Digital Weighing Balance", "Autoclave 50L"]}
        assert check(extracted, TODAY) == pytest.approx(2 / 3)
        assert check({"scheme_name": "Other"}, TODAY) == 0.5

    def test_keywords_absent(self):
        check = keywords_absent("label_key_claims", ["miracle", "cure"])
        assert check({"label_key_claims": ["Supports digestion"]}, TODAY) == 1.0
        assert check({"label_key_claims": ["A MIRACLE tonic"]}, TODAY) == 0.0
        assert check({"label_key_claims": "cures everything"}, TODAY) == 0.0
        assert check({}, TODAY) == 1.0

    def test_weighted_presence(self):
        check = weighted_presence({"entity_type": 0.3, "directors": 0.4, "signatory": 0.2, "objects": 0.1})
        full = {"entity_type": "LLP", "directors": [{"name": "A"}], "signatory": {"name": "A"}, "objects": "Trade"}
        assert check(full, TODAY) == 1.0
        assert check({"entity_type": "LLP", "directors": []}, TODAY) == 0.3
        assert check({"directors": [{"name": "A"}], "objects": " "}, TODAY) == 0.4
        with pytest.raises(ValueError):
            weighted_presence({"entity_type": -0.1})


class TestRuleSetFromDict:
    @pytest.fixture
    def minimal(self):
        return {
            "document_type": "library_card",
            "identifier_field": "card_no",
            "fuzzy_fields": [{"claim_field": "name", "record_field": "canonical_name", "weight": 1.0}],
            "checks": [{"name": "card_format", "kind": "pattern", "field": "card_no", "regex": r"[0-9]{6}"}],
        }

    def test_builds_rule_set(self, minimal):
        rule_set = rule_set_from_dict(minimal)
        assert rule_set.document_type == "LIBRARY_CARD"
        assert rule_set.search_types == ("LIBRARY_CARD",)
        assert rule_set.digest_fields == ("id_hash",)
        assert rule_set.fuzzy_threshold == 0.65
        assert rule_set.evaluate_checks({"card_no": "123456"}, TODAY) == {"card_format": 1.0}

    def test_missing_document_type(self, minimal):
        del minimal["document_type"]
        with pytest.raises(RuleSetError):
            rule_set_from_dict(minimal)

    def test_weights_must_sum_to_one(self, minimal):
        minimal["fuzzy_fields"].append({"claim_field": "address", "record_field": "address", "weight": 0.5})
        with pytest.raises(RuleSetError, match="sum to 1"):
            rule_set_from_dict(minimal)

    def test_unknown_record_field(self, minimal):
        minimal["fuzzy_fields"][0]["record_field"] = "password"
        with pytest.raises(RuleSetError, match="unknown record field"):
            rule_set_from_dict(minimal)

    def test_undeclared_attribute(self, minimal):
        minimal["response_fields"] = ["attr:branch"]
        with pytest.raises(RuleSetError, match="attribute_keys"):
            rule_set_from_dict(minimal)
        minimal["attribute_keys"] = ["branch"]
        assert rule_set_from_dict(minimal).response_fields == ("attr:branch",)

    def test_unknown_check_kind(self, minimal):
        minimal["checks"][0]["kind"] = "astrology"
        with pytest.raises(RuleSetError, match="unknown check kind"):
            rule_set_from_dict(minimal)

    def test_unexpected_check_argument(self, minimal):
        minimal["checks"][0]["flags"] = "i"
        with pytest.raises(RuleSetError, match="unexpected arguments"):
            rule_set_from_dict(minimal)

    def test_bad_regex(self, minimal):
        minimal["checks"][0]["regex"] = "[0-9"
        with pytest.raises(RuleSetError):
            rule_set_from_dict(minimal)

    def test_check_names_unique_and_not_reserved(self, minimal):
        minimal["checks"].append(dict(minimal["checks"][0]))
        with pytest.raises(RuleSetError, match="duplicate"):
            rule_set_from_dict(minimal)
        minimal["checks"] = [dict(minimal["checks"][0], name="format_check")]
        with pytest.raises(RuleSetError, match="shadow"):
            rule_set_from_dict(minimal)

    def test_composite_needs_checks(self, minimal):
        minimal["checks"] = [{"name": "either", "kind": "first_of", "checks": []}]
        with pytest.raises(RuleSetError, match="non-empty"):
            rule_set_from_dict(minimal)

    def test_threshold_and_limit_ranges(self, minimal):
        with pytest.raises(RuleSetError):
            rule_set_from_dict(dict(minimal, fuzzy_threshold=1.5))
        with pytest.raises(RuleSetError):
            rule_set_from_dict(dict(minimal, candidate_limit=0))

    def test_malformed_entry(self, minimal):
        minimal["fuzzy_fields"] = [{"claim_field": "name"}]
        with pytest.raises(RuleSetError, match="Malformed"):
            rule_set_from_dict(minimal)

    def test_check_scores_are_clamped(self, minimal):
        minimal["checks"][0]["score"] = 3.0
        rule_set = rule_set_from_dict(minimal)
        assert rule_set.evaluate_checks({"card_no": "123456"}, TODAY)["card_format"] == 1.0


class TestRegistry:
    def test_builtin_catalogue(self):
        registry = load_registry()
        assert registry.document_types == BUILTIN_TYPES
        assert len(registry) == len(BUILTIN_TYPES)

    def test_lookup_is_case_insensitive(self):
        registry = load_registry()
        assert "pan" in registry
        assert registry.get(" pan ").document_type == "PAN"

    def test_unknown_type(self):
        with pytest.raises(UnknownDocumentType):
            load_registry().get("LIBRARY_CARD")

    def test_rule_file_overrides_and_extends(self, tmp_path):
        rules_file = tmp_path / "rules.json"
        rules_file.write_text(json.dumps({
            "rule_sets": [
                {"document_type": "PAN", "identifier_field": "pan", "fuzzy_threshold": 0.9},
                {"document_type": "LIBRARY_CARD", "identifier_field": "card_no"},
            ]
        }))

        registry = load_registry(rules_file)

        assert registry.get("PAN").fuzzy_threshold == 0.9
        assert registry.get("PAN").checks == ()
        assert "LIBRARY_CARD" in registry
        assert len(registry) == len(BUILTIN_TYPES) + 1

    def test_rule_file_must_be_a_list(self, tmp_path):
        rules_file = tmp_path / "rules.json"
        rules_file.write_text(json.dumps({"PAN": {}}))
        with pytest.raises(RuleSetError):
            load_rule_file(rules_file)

    def test_unreadable_rule_file(self, tmp_path):
        with pytest.raises(RuleSetError, match="Cannot read"):
            load_rule_file(tmp_path / "missing.json")

    def test_builtin_weights_and_thresholds(self):
        registry = load_registry()
        lease = registry.get("LEASE")
        assert [(f.claim_field, f.weight) for f in lease.fuzzy_fields] == [
            ("premises_address", 0.6), ("lessor_name", 0.4)
        ]
        assert lease.candidate_limit == 200
        assert registry.get("PROMOTER_KYC").allow_make_authoritative
        assert registry.get("PASSPORT").search_types == ("PASSPORT", "PROMOTER_KYC")

    def test_noc_types_share_one_rule_body(self):
        registry = load_registry()
        fire, pollution, bio = (registry.get(t) for t in ("FIRE_NOC", "POLLUTION_NOC", "BIO_NOC"))

        assert "NOC" not in registry
        assert fire.required_fields == ("authority_name",)
        assert fire.fuzzy_fields == pollution.fuzzy_fields == bio.fuzzy_fields
        assert [c.name for c in bio.checks] == ["certificate_format", "certificate_validity"]

    def test_moa_matches_on_document_digest(self):
        moa = load_registry().get("MOA")
        assert moa.digest_fields == ("document_hash", "id_hash")
        assert moa.fuzzy_fields == ()
        assert [c.name for c in moa.checks] == ["moa_fields"]
