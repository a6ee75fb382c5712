"""
Built-in rule sets for the supported document types.

Declared as data and loaded through rule_set_from_dict(), exactly like a
deployment's JSON rule file. Entries in DOCVERIFY_RULES_FILE replace these
per document type.
"""

_NAME_DOB_BOOST = {"claim_field": "dob", "record_field": "date_of_birth_or_issue", "amount": 0.25, "kind": "date"}

BUILTIN_RULE_SETS = [
    {
        "document_type": "PAN",
        "identifier_field": "pan",
        "fuzzy_fields": [{"claim_field": "name", "record_field": "canonical_name", "weight": 1.0}],
        "candidate_filters": [{"claim_field": "dob", "record_field": "date_of_birth_or_issue", "mode": "equals"}],
        "fuzzy_threshold": 0.65,
        "checks": [
            {"name": "pan_format", "kind": "pattern", "field": "pan", "regex": r"[A-Z]{5}[0-9]{4}[A-Z]"},
        ],
        "response_fields": ["canonical_name"],
    },
    {
        "document_type": "AADHAAR",
        "identifier_field": "aadhaar",
        "fuzzy_fields": [{"claim_field": "name", "record_field": "canonical_name", "weight": 1.0}],
        "candidate_filters": [
            {"claim_field": "dob", "record_field": "date_of_birth_or_issue", "mode": "equals"},
            {"claim_field": "aadhaar_last4", "record_field": "id_masked", "mode": "suffix"},
        ],
        "fuzzy_threshold": 0.65,
        "checks": [
            {
                "name": "aadhaar_format",
                "kind": "first_of",
                "checks": [
                    {"kind": "pattern", "field": "aadhaar", "regex": r"[0-9]{12}"},
                    {"kind": "pattern", "field": "aadhaar_last4", "regex": r"[0-9]{4}", "score": 0.7},
                ],
            },
        ],
        "attribute_keys": ["pincode"],
        "response_fields": ["attr:pincode"],
    },
    {
        "document_type": "GST",
        "identifier_field": "gstin",
        "fuzzy_fields": [{"claim_field": "legal_name", "record_field": "canonical_name", "weight": 1.0}],
        "candidate_filters": [
            {"claim_field": "registration_date", "record_field": "date_of_birth_or_issue", "mode": "equals"},
        ],
        "fuzzy_threshold": 0.62,
        "checks": [
            {
                "name": "gstin_format",
                "kind": "pattern",
                "field": "gstin",
                "regex": r"[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][A-Z0-9]Z[A-Z0-9]",
                "canonical": True,
            },
        ],
        "attribute_keys": ["state_jurisdiction", "trade_name"],
        "response_fields": ["canonical_name", "attr:state_jurisdiction"],
    },
    {
        "document_type": "PASSPORT",
        "identifier_field": "passport_no",
        "masked_field": "passport_no_masked",
        "fuzzy_fields": [{"claim_field": "name", "record_field": "canonical_name", "weight": 1.0}],
        "boosts": [
            _NAME_DOB_BOOST,
            {"claim_field": "nationality", "record_field": "attr:nationality", "amount": 0.1},
        ],
        "candidate_types": ["PASSPORT", "PROMOTER_KYC"],
        "fuzzy_threshold": 0.66,
        "checks": [
            {"name": "passport_fields", "kind": "presence", "any_of": ["passport_no", "passport_no_masked"]},
            {"name": "passport_validity", "kind": "expiry", "field": "expiry_date"},
        ],
        "attribute_keys": ["nationality", "expiry_date"],
        "response_fields": ["canonical_name", "attr:nationality", "attr:expiry_date"],
    },
    {
        "document_type": "INCORP",
        "identifier_field": "reg_no",
        "fuzzy_fields": [
            {"claim_field": "entity_name", "record_field": "canonical_name", "weight": 0.7},
            {"claim_field": "registered_office_address", "record_field": "address", "weight": 0.3},
        ],
        "candidate_filters": [
            {"claim_field": "date_of_incorporation", "record_field": "date_of_birth_or_issue", "mode": "equals"},
        ],
        "fuzzy_threshold": 0.62,
        "checks": [
            {
                "name": "reg_no_format",
                "kind": "min_of",
                "checks": [
                    {"kind": "pattern", "field": "reg_no", "regex": r"[A-Za-z0-9\-/\s]{6,40}"},
                    {"kind": "not_future", "field": "date_of_incorporation", "future": 0.2},
                ],
            },
        ],
        "attribute_keys": ["entity_type"],
        "response_fields": ["canonical_name", "attr:entity_type"],
    },
    {
        "document_type": "LEASE",
        "required_fields": ["lessor_name", "lessee_name", "premises_address"],
        "digest_fields": ["document_hash", "id_hash"],
        "fuzzy_fields": [
            {"claim_field": "premises_address", "record_field": "address", "weight": 0.6},
            {"claim_field": "lessor_name", "record_field": "canonical_name", "weight": 0.4},
        ],
        "candidate_filters": [{"claim_field": "premises_address", "record_field": "address", "words": 4}],
        "candidate_limit": 200,
        "fuzzy_threshold": 0.60,
        "checks": [
            {"name": "lease_fields", "kind": "presence", "all_of": ["lessor_name", "lessee_name", "premises_address"]},
            {"name": "lease_dates", "kind": "date_order", "start": "start_date", "end": "end_date", "stale_after_days": 365},
        ],
        "response_fields": ["address"],
    },
    {
        "document_type": "GMP",
        "identifier_field": "certificate_no",
        "fuzzy_fields": [
            {"claim_field": "lab_name", "record_field": "canonical_name", "weight": 0.7},
            {"claim_field": "scheme_name", "record_field": "attr:scope", "weight": 0.3},
        ],
        "candidate_filters": [{"claim_field": "scheme_name", "record_field": "attr:scope", "words": 3}],
        "candidate_limit": 200,
        "fuzzy_threshold": 0.60,
        "checks": [
            {"name": "certificate_format", "kind": "pattern", "field": "certificate_no",
             "regex": r"[A-Za-z0-9\-_/]{4,60}", "missing": 0.5},
            {"name": "certificate_validity", "kind": "expiry", "field": "valid_upto"},
            {
                "name": "equipment_coverage",
                "kind": "coverage",
                "list_field": "equipment_list",
                "key_field": "scheme_name",
                "requirements": {
                    "Schedule T": ["stainless steel tanks", "autoclave", "weighing balance", "mixer", "drying oven"],
                    "Homeopathy GMP": ["potency room", "sterile storage", "glassware", "weighing balance"],
                    "General GMP": ["weighing balance", "QC lab", "autoclave"],
                },
            },
        ],
        "attribute_keys": ["scope", "valid_upto"],
        "response_fields": ["canonical_name", "attr:scope", "attr:valid_upto"],
    },
    {
        "document_type": "BANK_CHEQUE",
        "digest_fields": ["document_hash", "id_hash"],
        "masked_field": "account_no_masked",
        "fuzzy_fields": [
            {"claim_field": "account_holder_name", "record_field": "canonical_name", "weight": 0.75},
            {"claim_field": "bank_name", "record_field": "attr:bank_name", "weight": 0.25},
        ],
        "candidate_filters": [{"claim_field": "bank_name", "record_field": "attr:bank_name", "words": 3}],
        "candidate_limit": 200,
        "fuzzy_threshold": 0.65,
        "checks": [
            {
                "name": "cheque_fields",
                "kind": "min_of",
                "checks": [
                    {"kind": "presence", "all_of": ["account_holder_name"],
                     "any_of": ["account_no_masked", ["ifsc", "bank_name"]], "partial": 0.5, "otherwise": 0.5},
                    {"kind": "pattern", "field": "ifsc", "regex": r"[A-Z]{4}0[A-Z0-9]{6}", "missing": 1.0, "invalid": 0.6},
                ],
            },
            {"name": "cheque_recency", "kind": "recency", "field": "cheque_date", "bands": [[180, 1.0], [365, 0.6]]},
        ],
        "attribute_keys": ["bank_name", "ifsc"],
        "response_fields": ["attr:bank_name", "attr:ifsc"],
    },
    {
        "document_type": "PROMOTER_KYC",
        "required_fields": ["name"],
        "masked_field": "id_no_masked",
        "fuzzy_fields": [{"claim_field": "name", "record_field": "canonical_name", "weight": 1.0}],
        "boosts": [_NAME_DOB_BOOST],
        "candidate_types": ["PROMOTER_KYC", "PAN", "TECH_CERT"],
        "candidate_limit": 300,
        "fuzzy_threshold": 0.65,
        "checks": [
            {"name": "identity_hints", "kind": "presence", "all_of": ["name"],
             "any_of": ["id_hash", "id_no_masked", "dob"], "partial": 0.6},
        ],
        "attribute_keys": ["id_type", "contact"],
        "response_fields": ["canonical_name", "date_of_birth_or_issue"],
        "allow_make_authoritative": True,
    },
    {
        "document_type": "TECH_CERT",
        "identifier_field": "registration_no",
        "fuzzy_fields": [
            {"claim_field": "name", "record_field": "canonical_name", "weight": 0.7},
            {"claim_field": "council_name", "record_field": "attr:council_name", "weight": 0.3},
        ],
        "candidate_filters": [{"claim_field": "council_name", "record_field": "attr:council_name", "words": 4}],
        "candidate_limit": 200,
        "fuzzy_threshold": 0.66,
        "checks": [
            {"name": "registration_format", "kind": "pattern", "field": "registration_no",
             "regex": r"[A-Za-z0-9\-/.]{4,50}", "missing": 0.4},
            {"name": "registration_validity", "kind": "expiry", "field": "valid_upto"},
        ],
        "attribute_keys": ["council_name", "qualification"],
        "response_fields": ["canonical_name", "attr:council_name", "attr:qualification"],
    },
    {
        "document_type": "UTILITY",
        "required_fields": ["consumer_name", "address"],
        "digest_fields": ["document_hash", "id_hash"],
        "masked_field": "consumer_account_no_masked",
        "fuzzy_fields": [
            {"claim_field": "address", "record_field": "address", "weight": 0.65},
            {"claim_field": "consumer_name", "record_field": "canonical_name", "weight": 0.35},
        ],
        "candidate_filters": [{"claim_field": "address", "record_field": "address", "words": 4}],
        "candidate_limit": 200,
        "fuzzy_threshold": 0.62,
        "checks": [
            {"name": "bill_fields", "kind": "presence", "all_of": ["consumer_name", "address", "billing_date"]},
            {"name": "bill_recency", "kind": "recency", "field": "billing_date", "bands": [[90, 1.0], [180, 0.6]]},
        ],
        "attribute_keys": ["bill_type"],
        "response_fields": ["address", "attr:bill_type"],
    },
    {
        "document_type": "PRODUCT_DOSSIER",
        "identifier_field": "product_code",
        "fuzzy_fields": [{"claim_field": "product_name", "record_field": "canonical_name", "weight": 1.0}],
        "fuzzy_threshold": 0.65,
        "checks": [
            {"name": "dossier_fields", "kind": "presence", "all_of": ["mfr_formula_ref"],
             "any_of": ["pharmacopoeia_ref", "dosage_form"], "partial": 0.6},
            {"name": "label_claims", "kind": "keywords_absent", "field": "label_key_claims",
             "keywords": ["cure", "guarantee", "prevent cancer", "treat cancer", "instant", "miracle"]},
        ],
        "attribute_keys": ["category", "dosage_form"],
        "response_fields": ["canonical_name", "attr:category", "attr:dosage_form"],
    },
    {
        "document_type": "BOARD_RES",
        "digest_fields": ["document_hash", "id_hash"],
        "fuzzy_fields": [{"claim_field": "authorized_person_name", "record_field": "canonical_name", "weight": 1.0}],
        "candidate_types": ["PROMOTER_KYC", "PAN", "TECH_CERT"],
        "fuzzy_threshold": 0.65,
        "checks": [
            {"name": "resolution_fields", "kind": "presence", "all_of": ["resolution_date", "authorized_person_name"],
             "otherwise": 0.5},
            {"name": "resolution_date", "kind": "not_future", "field": "resolution_date", "missing": 0.0},
        ],
        "attribute_keys": ["purpose"],
        "response_fields": ["canonical_name", "attr:purpose"],
    },
    {
        # Exact match on the document digest only; directors are not matched one by one.
        "document_type": "MOA",
        "required_fields": ["entity_type", "directors_partners_list", "authorized_signatory"],
        "digest_fields": ["document_hash", "id_hash"],
        "checks": [
            {"name": "moa_fields", "kind": "weighted_presence", "weights": {
                "entity_type": 0.3, "directors_partners_list": 0.4, "authorized_signatory": 0.2, "main_objects": 0.1,
            }},
        ],
        "attribute_keys": ["entity_type"],
        "response_fields": ["canonical_name", "attr:entity_type"],
    },
]

# FIRE_NOC, POLLUTION_NOC and BIO_NOC are separate record types sharing one rule body.
_NOC_RULE = {
    "required_fields": ["authority_name"],
    "identifier_field": "certificate_no",
    "fuzzy_fields": [
        {"claim_field": "authority_name", "record_field": "canonical_name", "weight": 0.7},
        {"claim_field": "address", "record_field": "address", "weight": 0.3},
    ],
    "candidate_filters": [{"claim_field": "address", "record_field": "address", "words": 4}],
    "candidate_limit": 200,
    "fuzzy_threshold": 0.60,
    "checks": [
        {"name": "certificate_format", "kind": "pattern", "field": "certificate_no",
         "regex": r"[A-Za-z0-9\-/\s._]{3,60}", "missing": 0.5},
        {"name": "certificate_validity", "kind": "expiry", "field": "valid_upto"},
    ],
    "attribute_keys": ["valid_upto"],
    "response_fields": ["canonical_name", "address", "attr:valid_upto"],
}

NOC_TYPES = ("FIRE_NOC", "POLLUTION_NOC", "BIO_NOC")

BUILTIN_RULE_SETS.extend(dict(_NOC_RULE, document_type=t) for t in NOC_TYPES)
