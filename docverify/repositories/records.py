"""
Authoritative Records Repository.

Responsibilities:
- Read queries over the reference table, keyed by document type.
- Bounded candidate retrieval with optional cheap pre-filters.
- Upsert by (document_type, id_hash) for seeding and make-authoritative claims.

Non-Responsibilities:
- No scoring.
- No match decisions.
- No commits: the caller owns the session and its transaction.

Invariant:
At most one record per (document_type, id_hash).
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import AuthoritativeRecord
from ..rules.checks import parse_date
from .base import store_errors

# (record_field, mode, value); mode is "contains", "suffix" or "equals"
Criterion = Tuple[str, str, Any]

WRITABLE_FIELDS = (
    "lookup_key",
    "id_masked",
    "canonical_name",
    "date_of_birth_or_issue",
    "address",
    "attributes",
    "source",
)


# INSERT ... ON CONFLICT DO NOTHING, per dialect
CONFLICT_INSERTS = {"sqlite": sqlite_insert, "postgresql": postgresql_insert}


def _column_for(field: str):
    if field.startswith("attr:"):
        return AuthoritativeRecord.attributes[field[len("attr:"):]].as_string()
    return getattr(AuthoritativeRecord, field)


class RecordRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_hash(self, document_type: str, id_hash: str) -> Optional[AuthoritativeRecord]:
        if not id_hash:
            return None
        stmt = select(AuthoritativeRecord).where(
            AuthoritativeRecord.document_type == document_type,
            AuthoritativeRecord.id_hash == id_hash,
        )
        with store_errors("lookup by hash"):
            return self.session.execute(stmt).scalars().first()

    def find_by_masked(self, document_type: str, id_masked: str) -> Optional[AuthoritativeRecord]:
        if not id_masked:
            return None
        stmt = (
            select(AuthoritativeRecord)
            .where(
                AuthoritativeRecord.document_type == document_type,
                AuthoritativeRecord.id_masked == id_masked,
            )
            .order_by(AuthoritativeRecord.record_id)
        )
        with store_errors("lookup by masked id"):
            return self.session.execute(stmt).scalars().first()

    def find_candidates(
        self,
        document_types: Sequence[str],
        limit: int,
        criteria: Sequence[Criterion] = (),
    ) -> List[AuthoritativeRecord]:
        """Up to `limit` records of the given types matching every criterion."""
        stmt = select(AuthoritativeRecord).where(
            AuthoritativeRecord.document_type.in_(list(document_types))
        )
        for field, mode, value in criteria:
            column = _column_for(field)
            if mode == "contains":
                stmt = stmt.where(column.icontains(str(value), autoescape=True))
            elif mode == "suffix":
                stmt = stmt.where(column.endswith(str(value), autoescape=True))
            elif mode == "equals":
                stmt = stmt.where(column == value)
            else:
                raise ValueError(f"Unknown criterion mode: {mode}")
        stmt = stmt.order_by(AuthoritativeRecord.record_id).limit(limit)
        with store_errors("candidate query"):
            return list(self.session.execute(stmt).scalars())

    def count(self, document_type: Optional[str] = None) -> int:
        query = self.session.query(AuthoritativeRecord)
        if document_type:
            query = query.filter_by(document_type=document_type)
        with store_errors("count"):
            return query.count()

    def _insert_if_absent(self, document_type: str, id_hash: str) -> bool:
        """Create an empty row for (document_type, id_hash) unless one exists.

        A concurrent writer that got there first wins; this call then finds
        its row. Returns True when this call created the row.
        """
        now = datetime.now()
        dialect = self.session.get_bind().dialect.name
        if dialect in CONFLICT_INSERTS:
            stmt = (
                CONFLICT_INSERTS[dialect](AuthoritativeRecord.__table__)
                .values(document_type=document_type, id_hash=id_hash, attributes={}, created_at=now, updated_at=now)
                .on_conflict_do_nothing(index_elements=["document_type", "id_hash"])
            )
            return self.session.execute(stmt).rowcount == 1
        try:
            with self.session.begin_nested():
                self.session.add(
                    AuthoritativeRecord(document_type=document_type, id_hash=id_hash, attributes={})
                )
            return True
        except IntegrityError:
            return False

    def upsert(self, document_type: str, id_hash: str, fields: Mapping[str, Any]) -> Tuple[AuthoritativeRecord, bool]:
        """Insert or update the record for (document_type, id_hash).

        Safe against concurrent upserts of the same key: exactly one caller
        creates the row, the others update it. Returns (record, created).
        The change is flushed, not committed.
        """
        values: Dict[str, Any] = {k: fields[k] for k in WRITABLE_FIELDS if k in fields}
        if "date_of_birth_or_issue" in values:
            values["date_of_birth_or_issue"] = parse_date(values["date_of_birth_or_issue"])
        with store_errors("upsert"):
            record = self.find_by_hash(document_type, id_hash)
            created = False
            if record is None:
                created = self._insert_if_absent(document_type, id_hash)
                record = self.find_by_hash(document_type, id_hash)
            for key, value in values.items():
                setattr(record, key, value)
            record.updated_at = datetime.now()
            self.session.flush()
        return record, created
