"""
Pytest configuration and shared fixtures.
"""

import os

# Keep test runs from writing logs/docverify_*.log into the working tree
# and keep CLI output parseable.
os.environ.setdefault("DOCVERIFY_LOG_FILE", "0")
os.environ.setdefault("DOCVERIFY_LOG_LEVEL", "WARNING")

import pytest
from datetime import date, datetime
from typing import Any, Dict, List

from docverify.database import dispose_engines, get_session, get_session_factory, init_database
from docverify.normalize import identifier_digest
from docverify.pipeline import VerificationPipeline
from docverify.rules import load_registry
from docverify.seed import seed_records

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0)

LEASE_DOC_HASH = identifier_digest("LEASE-DOC-0001")


@pytest.fixture
def db_url(tmp_path) -> str:
    """Fresh SQLite database with tables created."""
    url = f"sqlite:///{tmp_path / 'docverify.db'}"
    init_database(url)
    yield url
    dispose_engines()


@pytest.fixture
def db_session(db_url):
    session = get_session(db_url)
    yield session
    session.close()


@pytest.fixture
def registry():
    return load_registry()


@pytest.fixture
def seed_items() -> List[Dict[str, Any]]:
    """Reference rows covering several document types."""
    return [
        {
            "document_type": "PAN",
            "raw_id": "ABCDE1234F",
            "canonical_name": "Ravi Kumar",
            "dob": "1985-04-12",
        },
        {
            "document_type": "PAN",
            "raw_id": "PQRST6789Z",
            "canonical_name": "Sunita Sharma",
            "dob": "1990-01-30",
        },
        {
            "document_type": "PASSPORT",
            "raw_id": "M1234567",
            "id_masked": "XXXX4567",
            "canonical_name": "Anil Mehta",
            "dob": "1978-09-05",
            "attributes": {"nationality": "Indian", "expiry_date": "2030-01-01"},
        },
        {
            "document_type": "LEASE",
            "id_hash": LEASE_DOC_HASH,
            "lookup_key": "LEASE-0001",
            "canonical_name": "Green Leaf Estates",
            "address": "12 MG Road, Bengaluru, Karnataka 560001",
        },
        {
            "document_type": "GST",
            "raw_id": "29ABCDE1234F1Z5",
            "canonical_name": "Ayur Herbals Private Limited",
            "dob": "2019-07-01",
            "attributes": {"state_jurisdiction": "Karnataka"},
        },
    ]


@pytest.fixture
def seeded_db(db_url, seed_items) -> str:
    session = get_session(db_url)
    seed_records(session, seed_items)
    session.close()
    return db_url


@pytest.fixture
def pipeline(seeded_db, registry) -> VerificationPipeline:
    """Pipeline over the seeded store with a fixed clock."""
    return VerificationPipeline(
        session_factory=get_session_factory(seeded_db),
        registry=registry,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def pan_claim() -> Dict[str, Any]:
    return {
        "request_id": "req-pan-1",
        "submitted_by": "ingest-service",
        "document_type": "PAN",
        "extracted": {
            "pan": "ABCDE1234F",
            "name": "Ravi Kumar",
            "dob": "1985-04-12",
            "extraction_confidence": 0.95,
        },
    }


@pytest.fixture
def today() -> date:
    return FIXED_NOW.date()
