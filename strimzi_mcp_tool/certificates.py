"""Certificate expiry evaluation for the Strimzi cluster and clients CAs.

Certificates are parsed from raw bytes on every call. There is no cache: a CA
renewal must be visible on the very next check.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from cryptography import x509

from strimzi_mcp_tool.errors import CertificateParseError

logger = logging.getLogger("mcp-server")

DEFAULT_WARNING_DAYS = 30


class ExpiryStatus(str, enum.Enum):
    OK = "ok"
    WARNING = "warning"
    EXPIRED = "expired"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class CertificateInfo:
    subject: str
    not_before: datetime
    not_after: datetime

    @property
    def expiry(self) -> datetime:
        return self.not_after

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject": self.subject,
            "notBefore": self.not_before.isoformat(),
            "notAfter": self.not_after.isoformat(),
        }


@dataclass(frozen=True)
class CertificateEvaluation:
    status: ExpiryStatus
    info: Optional[CertificateInfo] = None
    days_remaining: Optional[int] = None
    error: Optional[str] = None

    @property
    def summary(self) -> str:
        if self.status == ExpiryStatus.UNREADABLE:
            return f"certificate unreadable: {self.error}"
        if self.info is None:
            return "certificate unavailable"
        not_after = self.info.not_after.isoformat()
        if self.status == ExpiryStatus.EXPIRED:
            return f"certificate expired at {not_after}"
        if self.status == ExpiryStatus.WARNING:
            return f"certificate expires in {self.days_remaining} days ({not_after})"
        return f"certificate valid until {not_after}"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "status": self.status.value,
            "summary": self.summary,
        }
        if self.info is not None:
            result.update(self.info.to_dict())
        if self.days_remaining is not None:
            result["daysRemaining"] = self.days_remaining
        return result


def _load(raw: bytes) -> x509.Certificate:
    if b"-----BEGIN" in raw:
        return x509.load_pem_x509_certificate(raw)
    return x509.load_der_x509_certificate(raw)


def parse_certificate(raw: bytes) -> CertificateInfo:
    """Parse PEM or DER certificate bytes.

    Raises:
        CertificateParseError: if the bytes are not a readable X.509 certificate.
    """
    if not raw:
        raise CertificateParseError("certificate data is empty")
    # Names and validity are decoded lazily; a malformed subject only fails on access.
    try:
        cert = _load(raw)
        return CertificateInfo(
            subject=cert.subject.rfc4514_string(),
            not_before=cert.not_valid_before_utc,
            not_after=cert.not_valid_after_utc,
        )
    except ValueError as e:
        raise CertificateParseError(str(e)) from e


def classify_expiry(
    info: CertificateInfo,
    warning_days: int = DEFAULT_WARNING_DAYS,
    now: Optional[datetime] = None,
) -> CertificateEvaluation:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if now >= info.not_after:
        return CertificateEvaluation(ExpiryStatus.EXPIRED, info, days_remaining=0)
    remaining = info.not_after - now
    if info.not_after <= now + timedelta(days=warning_days):
        # timedelta.days floors for positive deltas
        return CertificateEvaluation(ExpiryStatus.WARNING, info, days_remaining=remaining.days)
    return CertificateEvaluation(ExpiryStatus.OK, info, days_remaining=remaining.days)


def evaluate_certificate(
    raw: bytes,
    warning_days: int = DEFAULT_WARNING_DAYS,
    now: Optional[datetime] = None,
) -> CertificateEvaluation:
    """Parse and classify a certificate. Never raises.

    Args:
        raw: PEM or DER bytes, already base64-decoded from the Secret.
        warning_days: Certificates expiring within this many days are WARNING.
        now: Evaluation instant; a naive value is taken as UTC. Defaults to the current time.

    Returns:
        A ``CertificateEvaluation``; parse failures come back as
        ``ExpiryStatus.UNREADABLE`` so they are never confused with expiry.
    """
    try:
        info = parse_certificate(raw)
    except CertificateParseError as e:
        logger.debug(f"Unreadable certificate: {e}")
        return CertificateEvaluation(ExpiryStatus.UNREADABLE, error=str(e))
    return classify_expiry(info, warning_days, now)
