"""
OTP Audit Trail
===============
Record of every issued OTP, for security review.

Records carry the code digest, never the code. A successful verification
marks the most recent matching record as verified.
"""

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Protocol

import structlog

from .otp.models import utc_now

logger = structlog.get_logger(__name__)


@dataclass
class OtpRequestRecord:
    """One issued OTP."""
    id: str
    phone: str
    code_digest: str
    requested_at: datetime
    client_ip: str
    verified: bool = False
    verified_at: Optional[datetime] = None


class OtpAuditLog(Protocol):
    async def record_issued(self, phone: str, code_digest: str, client_ip: str) -> OtpRequestRecord:
        ...

    async def mark_verified(self, phone: str, code_digest: str) -> Optional[OtpRequestRecord]:
        ...


class InMemoryOtpAuditLog:
    """
    Process-local audit trail.

    ``max_records`` bounds memory; the oldest records are dropped first.
    """

    def __init__(
        self,
        max_records: int = 10_000,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.max_records = max_records
        self._clock = clock
        self._records: List[OtpRequestRecord] = []
        self._lock = threading.Lock()

    async def record_issued(self, phone: str, code_digest: str, client_ip: str) -> OtpRequestRecord:
        record = OtpRequestRecord(
            id=str(uuid.uuid4()),
            phone=phone,
            code_digest=code_digest,
            requested_at=self._clock(),
            client_ip=client_ip,
        )
        with self._lock:
            self._records.append(record)
            overflow = len(self._records) - self.max_records
            if overflow > 0:
                del self._records[:overflow]
        return record

    async def mark_verified(self, phone: str, code_digest: str) -> Optional[OtpRequestRecord]:
        with self._lock:
            for record in reversed(self._records):
                if record.phone == phone and record.code_digest == code_digest and not record.verified:
                    record.verified = True
                    record.verified_at = self._clock()
                    return record
        logger.warning("Verified OTP has no matching audit record")
        return None

    def records(self, phone: Optional[str] = None) -> List[OtpRequestRecord]:
        with self._lock:
            if phone is None:
                return list(self._records)
            return [r for r in self._records if r.phone == phone]
