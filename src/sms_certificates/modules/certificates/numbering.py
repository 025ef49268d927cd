"""
Certificate Number Generation

Numbers have the form CERT-<PREFIX>-<YYYY>-<NNNN>, where NNNN is a random
zero-padded value in 0000-9999. Candidates are checked against persisted
certificates and retried up to a bounded number of attempts.

The check-then-insert window is closed in two ways:
- An optional reservation (Redis SET NX) so two workers cannot claim the same
  candidate before either has inserted it.
- The unique constraint on certificates.certificate_number, which stays the
  authoritative guard.
"""

import logging
import random
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Protocol

from redis.asyncio import Redis

from sms_certificates.core.redis import claim_key

from .errors import IdentifierExhaustionError
from .models import CertificateType

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 100
SEQUENCE_UPPER_BOUND = 10000
FALLBACK_PREFIX = "CERT"

TYPE_PREFIXES: dict[str, str] = {
    CertificateType.CHARACTER.value: "CHAR",
    CertificateType.TRANSFER.value: "TRAN",
    CertificateType.ACADEMIC_EXCELLENCE.value: "ACAD",
    CertificateType.ECA.value: "ECA",
    CertificateType.SPORTS.value: "SPRT",
    CertificateType.COURSE_COMPLETION.value: "CRSE",
    CertificateType.BONAFIDE.value: "BONF",
    CertificateType.CONDUCT.value: "COND",
    CertificateType.PARTICIPATION.value: "PART",
}


def get_type_prefix(certificate_type: CertificateType | str) -> str:
    """Prefix for a certificate type; unknown types fall back to CERT."""
    value = certificate_type.value if isinstance(certificate_type, CertificateType) else certificate_type
    return TYPE_PREFIXES.get(value, FALLBACK_PREFIX)


def format_certificate_number(prefix: str, year: int, sequence: int) -> str:
    return f"CERT-{prefix}-{year}-{sequence:04d}"


def _default_random_source() -> int:
    return random.randrange(SEQUENCE_UPPER_BOUND)


def _default_clock() -> datetime:
    return datetime.now(UTC)


class NumberReservation(Protocol):
    async def reserve(self, certificate_number: str) -> bool:
        """Return True if the caller now holds the candidate number."""
        ...


class RedisNumberReservation:
    """Claims candidate numbers in Redis for a short window before insert."""

    KEY_PREFIX = "certificate-number:"

    def __init__(self, client: Redis, ttl_seconds: int = 300):
        self.client = client
        self.ttl_seconds = ttl_seconds

    async def reserve(self, certificate_number: str) -> bool:
        return await claim_key(self.client, f"{self.KEY_PREFIX}{certificate_number}", self.ttl_seconds)


class CertificateNumberGenerator:
    """
    Produces unique certificate numbers.

    Args:
        exists: Async check against persisted certificates
        random_source: Returns the random sequence part (0-9999)
        clock: Returns the current datetime; only the year is used
        max_attempts: Candidates tried before giving up
        reservation: Optional cross-worker reservation
    """

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        random_source: Callable[[], int] = _default_random_source,
        clock: Callable[[], datetime] = _default_clock,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        reservation: NumberReservation | None = None,
    ):
        self.exists = exists
        self.random_source = random_source
        self.clock = clock
        self.max_attempts = max_attempts
        self.reservation = reservation

    def candidate(self, certificate_type: CertificateType | str) -> str:
        sequence = self.random_source() % SEQUENCE_UPPER_BOUND
        return format_certificate_number(
            get_type_prefix(certificate_type), self.clock().year, sequence
        )

    async def next_number(self, certificate_type: CertificateType | str) -> str:
        """
        Generate a number not used by any persisted certificate.

        Raises:
            IdentifierExhaustionError: If every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            number = self.candidate(certificate_type)

            if await self.exists(number):
                logger.debug("Certificate number collision on attempt %d", attempt)
                continue

            if self.reservation is not None and not await self.reservation.reserve(number):
                logger.debug("Certificate number reserved by another worker on attempt %d", attempt)
                continue

            return number

        logger.error(
            "Could not generate a unique certificate number after %d attempts",
            self.max_attempts,
        )
        raise IdentifierExhaustionError(self.max_attempts)
