"""
Database schema and connection management.

Uses SQLAlchemy; SQLite by default. Engines are cached per URL so that
concurrent pipeline runs share one connection pool.
"""

import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class AuthoritativeRecord(Base):
    """One row of ground truth, written by the seeding process."""

    __tablename__ = "authoritative_records"
    __table_args__ = (
        UniqueConstraint("document_type", "id_hash", name="uq_record_type_hash"),
        Index("ix_record_type_masked", "document_type", "id_masked"),
    )

    record_id = Column(Integer, primary_key=True, autoincrement=True)
    document_type = Column(String, nullable=False, index=True)  # PAN, GST, LEASE, ...
    lookup_key = Column(String, nullable=True)
    id_hash = Column(String(64), nullable=False)  # sha256(normalized id)
    id_masked = Column(String, nullable=True)
    canonical_name = Column(String, nullable=True, index=True)
    date_of_birth_or_issue = Column(Date, nullable=True)
    address = Column(String, nullable=True)
    attributes = Column(JSON, nullable=False, default=dict)
    source = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def attribute(self, key: str, default: Any = None) -> Any:
        return (self.attributes or {}).get(key, default)

    def field_value(self, name: str) -> Any:
        """Resolve a rule-set field reference: a column name or 'attr:<key>'."""
        if name.startswith("attr:"):
            return self.attribute(name[len("attr:"):])
        return getattr(self, name)


class Verification(Base):
    """Audit record of one pipeline run. Appended once, never updated here."""

    __tablename__ = "verifications"
    __table_args__ = (
        Index("ix_verification_type_status", "document_type", "status"),
    )

    verification_id = Column(String, primary_key=True)  # ver-<uuid4>
    request_id = Column(String, nullable=False, index=True)
    submitted_by = Column(String, nullable=True)
    document_type = Column(String, nullable=False)
    extracted = Column(JSON, nullable=False)
    checks = Column(JSON, nullable=False, default=dict)
    matched_record_id = Column(
        Integer, ForeignKey("authoritative_records.record_id"), nullable=True
    )
    match_type = Column(String, nullable=False, default="none")
    final_confidence = Column(Float, nullable=False)
    status = Column(String, nullable=False)  # VERIFIED | MANUAL_REVIEW | REJECTED
    reasons = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    # Owned by the manual-review workflow
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verification_id": self.verification_id,
            "request_id": self.request_id,
            "submitted_by": self.submitted_by,
            "document_type": self.document_type,
            "extracted": self.extracted,
            "checks": self.checks,
            "matched_record_id": self.matched_record_id,
            "match_type": self.match_type,
            "final_confidence": self.final_confidence,
            "status": self.status,
            "reasons": self.reasons,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }


_engines: Dict[str, Engine] = {}
_engines_lock = threading.Lock()


def database_url(target: Union[str, Path]) -> str:
    """Accept either a SQLAlchemy URL or a path to a SQLite file."""
    if isinstance(target, Path) or "://" not in str(target):
        return f"sqlite:///{target}"
    return str(target)


def get_engine(target: Union[str, Path]) -> Engine:
    url = database_url(target)
    with _engines_lock:
        engine = _engines.get(url)
        if engine is None:
            connect_args = {}
            if url.startswith("sqlite"):
                connect_args = {"check_same_thread": False, "timeout": 30}
            engine = create_engine(url, connect_args=connect_args)
            _engines[url] = engine
        return engine


def dispose_engines() -> None:
    with _engines_lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()


def init_database(target: Union[str, Path]) -> None:
    """
    Initialize database and create tables.

    Args:
        target: SQLAlchemy URL or path to SQLite database file
    """
    url = database_url(target)
    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(get_engine(url))


def get_session_factory(target: Union[str, Path]) -> sessionmaker:
    return sessionmaker(bind=get_engine(target), expire_on_commit=False)


def get_session(target: Union[str, Path]):
    """
    Get database session.

    Args:
        target: SQLAlchemy URL or path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    return get_session_factory(target)()
