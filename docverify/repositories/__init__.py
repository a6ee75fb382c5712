from .base import store_errors
from .records import RecordRepository
from .verifications import VerificationLedger

__all__ = ["RecordRepository", "VerificationLedger", "store_errors"]
