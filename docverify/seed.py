"""
Bulk-load authoritative records from a JSON seed file.

Each seed row is upserted by (document_type, id_hash), so re-running a seed
file updates rows in place instead of duplicating them.

Seed row fields:
    document_type (or doc_type)   required
    raw_id                        raw identifier; hashed, never stored in clear
    id_hash                       precomputed digest (e.g. a document hash)
    id_masked                     display mask; derived from raw_id if absent
    lookup_key, canonical_name (or name), dob (or date_of_birth_or_issue),
    address, attributes (or raw), source
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from sqlalchemy.orm import Session

from .errors import VerificationError
from .logger import get_logger
from .normalize import identifier_digest, mask_identifier, normalize_name
from .repositories import RecordRepository, store_errors

logger = get_logger()


def load_seed_file(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"Seed file {path} must contain a JSON array")
    return raw


def build_record_fields(item: Mapping[str, Any]) -> Tuple[str, str, Dict[str, Any]]:
    """
    Turn one seed row into (document_type, id_hash, fields).

    Raises ValueError when the row has no document type or nothing to hash.
    """
    document_type = str(item.get("document_type") or item.get("doc_type") or "").strip().upper()
    if not document_type:
        raise ValueError("missing document_type")

    raw_id = item.get("raw_id")
    id_hash = str(item.get("id_hash") or "").strip().lower()
    if not id_hash:
        id_hash = identifier_digest(raw_id or item.get("id_masked") or item.get("lookup_key"))
    if not id_hash:
        raise ValueError("row has no raw_id, id_hash, id_masked or lookup_key")

    id_masked = item.get("id_masked") or (mask_identifier(raw_id) if raw_id else None)
    return document_type, id_hash, {
        "lookup_key": item.get("lookup_key") or f"{document_type}-{id_hash[:8]}",
        "id_masked": id_masked,
        "canonical_name": normalize_name(item.get("canonical_name") or item.get("name")) or None,
        "date_of_birth_or_issue": item.get("dob") or item.get("date_of_birth_or_issue"),
        "address": item.get("address"),
        "attributes": dict(item.get("attributes") or item.get("raw") or {}),
        "source": item.get("source") or "seed",
    }


def seed_records(session: Session, items: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    """
    Upsert seed rows and commit once at the end.

    Bad rows are skipped and counted; a store failure rolls back the batch.

    Returns:
        {"created": n, "updated": n, "skipped": n}
    """
    records = RecordRepository(session)
    stats = {"created": 0, "updated": 0, "skipped": 0}

    try:
        for i, item in enumerate(items):
            try:
                document_type, id_hash, fields = build_record_fields(item)
            except (ValueError, AttributeError) as e:
                logger.warning("Skipping seed row", row=i, error=str(e))
                stats["skipped"] += 1
                continue
            _, created = records.upsert(document_type, id_hash, fields)
            stats["created" if created else "updated"] += 1

        with store_errors("seed commit"):
            session.commit()
    except VerificationError:
        session.rollback()
        raise
    logger.info("Seed complete", **stats)
    return stats
