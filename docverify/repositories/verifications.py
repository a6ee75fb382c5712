"""
Verification Ledger.

Responsibilities:
- Append one Verification per completed pipeline run.
- Audit queries by verification_id, request_id and (document_type, status).

Non-Responsibilities:
- No updates or deletes; review outcomes are written by another workflow.
- No commits: the caller owns the session and its transaction.

Invariant:
A verification_id is written at most once.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database import Verification
from .base import store_errors


class VerificationLedger:
    def __init__(self, session: Session):
        self.session = session

    def append(self, verification: Verification) -> Verification:
        with store_errors("ledger append"):
            self.session.add(verification)
            self.session.flush()
        return verification

    def get(self, verification_id: str) -> Optional[Verification]:
        with store_errors("ledger lookup"):
            return self.session.get(Verification, verification_id)

    def find_by_request_id(self, request_id: str) -> List[Verification]:
        stmt = (
            select(Verification)
            .where(Verification.request_id == request_id)
            .order_by(Verification.created_at)
        )
        with store_errors("ledger query"):
            return list(self.session.execute(stmt).scalars())

    def find_by_status(self, document_type: str, status: str, limit: Optional[int] = None) -> List[Verification]:
        stmt = (
            select(Verification)
            .where(Verification.document_type == document_type, Verification.status == status)
            .order_by(Verification.created_at)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with store_errors("ledger query"):
            return list(self.session.execute(stmt).scalars())

    def count(self) -> int:
        with store_errors("ledger count"):
            return self.session.query(Verification).count()
