"""Unit tests for CA certificate expiry evaluation."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


NOW = datetime.now(timezone.utc).replace(microsecond=0)


def _make_cert(not_after, encoding=serialization.Encoding.PEM):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "io.strimzi"),
        x509.NameAttribute(NameOID.COMMON_NAME, "cluster-ca v0"),
    ])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=365))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(encoding)


class TestParseCertificate:

    @pytest.mark.unit
    def test_parse_pem(self):
        from strimzi_mcp_tool.certificates import parse_certificate

        info = parse_certificate(_make_cert(NOW + timedelta(days=100)))
        assert info.not_after == NOW + timedelta(days=100)
        assert info.expiry == info.not_after
        assert "cluster-ca v0" in info.subject

    @pytest.mark.unit
    def test_parse_der(self):
        from strimzi_mcp_tool.certificates import parse_certificate

        raw = _make_cert(NOW + timedelta(days=10), encoding=serialization.Encoding.DER)
        assert parse_certificate(raw).not_after == NOW + timedelta(days=10)

    @pytest.mark.unit
    def test_garbage_raises_parse_error(self):
        from strimzi_mcp_tool.certificates import parse_certificate
        from strimzi_mcp_tool.errors import CertificateParseError

        with pytest.raises(CertificateParseError):
            parse_certificate(b"not a certificate")
        with pytest.raises(CertificateParseError):
            parse_certificate(b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")
        with pytest.raises(CertificateParseError):
            parse_certificate(b"")


class TestEvaluateCertificate:

    @pytest.mark.unit
    def test_expired(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        evaluation = evaluate_certificate(_make_cert(NOW - timedelta(days=1)), now=NOW)
        assert evaluation.status == ExpiryStatus.EXPIRED
        assert evaluation.days_remaining == 0
        assert "expired" in evaluation.summary

    @pytest.mark.unit
    def test_expiry_instant_counts_as_expired(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        evaluation = evaluate_certificate(_make_cert(NOW), now=NOW)
        assert evaluation.status == ExpiryStatus.EXPIRED

    @pytest.mark.unit
    def test_warning_reports_days_remaining(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        evaluation = evaluate_certificate(_make_cert(NOW + timedelta(days=5)), warning_days=30, now=NOW)
        assert evaluation.status == ExpiryStatus.WARNING
        assert evaluation.days_remaining == 5
        assert "expires in 5 days" in evaluation.summary

    @pytest.mark.unit
    def test_days_remaining_is_floored(self):
        from strimzi_mcp_tool.certificates import evaluate_certificate

        evaluation = evaluate_certificate(
            _make_cert(NOW + timedelta(days=5, hours=23)), warning_days=30, now=NOW,
        )
        assert evaluation.days_remaining == 5

    @pytest.mark.unit
    def test_warning_boundary_is_inclusive(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        evaluation = evaluate_certificate(_make_cert(NOW + timedelta(days=30)), warning_days=30, now=NOW)
        assert evaluation.status == ExpiryStatus.WARNING

    @pytest.mark.unit
    def test_ok(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        evaluation = evaluate_certificate(_make_cert(NOW + timedelta(days=400)), warning_days=30, now=NOW)
        assert evaluation.status == ExpiryStatus.OK
        assert evaluation.days_remaining == 400
        assert evaluation.summary.startswith("certificate valid until")

    @pytest.mark.unit
    def test_warning_days_changes_classification(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        raw = _make_cert(NOW + timedelta(days=45))
        assert evaluate_certificate(raw, warning_days=30, now=NOW).status == ExpiryStatus.OK
        assert evaluate_certificate(raw, warning_days=60, now=NOW).status == ExpiryStatus.WARNING

    @pytest.mark.unit
    def test_unreadable_never_raises(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        evaluation = evaluate_certificate(b"\x00\x01garbage", now=NOW)
        assert evaluation.status == ExpiryStatus.UNREADABLE
        assert evaluation.info is None
        assert evaluation.error
        assert evaluation.summary.startswith("certificate unreadable")

    @pytest.mark.unit
    def test_to_dict(self):
        from strimzi_mcp_tool.certificates import evaluate_certificate

        data = evaluate_certificate(_make_cert(NOW + timedelta(days=5)), now=NOW).to_dict()
        assert data["status"] == "warning"
        assert data["daysRemaining"] == 5
        assert "notAfter" in data
        assert "subject" in data

    @pytest.mark.unit
    def test_unreadable_to_dict_has_no_dates(self):
        from strimzi_mcp_tool.certificates import evaluate_certificate

        data = evaluate_certificate(b"junk").to_dict()
        assert data["status"] == "unreadable"
        assert "notAfter" not in data


def _corrupt_subject_cert(not_after):
    """DER certificate whose subject CN bytes are not valid UTF-8."""
    marker = "corrupt-subject-marker"
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, marker)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=365))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    der = cert.public_bytes(serialization.Encoding.DER)
    invalid = (b"\xff\xfe\xfd\xfc" * 6)[:len(marker)]
    return der.replace(marker.encode(), invalid)


class TestMalformedCertificates:

    @pytest.mark.unit
    def test_invalid_subject_encoding_is_a_parse_error(self):
        from strimzi_mcp_tool.certificates import parse_certificate
        from strimzi_mcp_tool.errors import CertificateParseError

        with pytest.raises(CertificateParseError):
            parse_certificate(_corrupt_subject_cert(NOW + timedelta(days=100)))

    @pytest.mark.unit
    def test_invalid_subject_encoding_is_unreadable(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        evaluation = evaluate_certificate(_corrupt_subject_cert(NOW + timedelta(days=100)), now=NOW)
        assert evaluation.status == ExpiryStatus.UNREADABLE
        assert evaluation.error


class TestNaiveNow:

    @pytest.mark.unit
    def test_naive_now_is_treated_as_utc(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        naive_now = NOW.replace(tzinfo=None)
        evaluation = evaluate_certificate(_make_cert(NOW + timedelta(days=5)), warning_days=30, now=naive_now)
        assert evaluation.status == ExpiryStatus.WARNING
        assert evaluation.days_remaining == 5

    @pytest.mark.unit
    def test_naive_now_after_expiry(self):
        from strimzi_mcp_tool.certificates import ExpiryStatus, evaluate_certificate

        naive_now = NOW.replace(tzinfo=None)
        evaluation = evaluate_certificate(_make_cert(NOW - timedelta(days=2)), now=naive_now)
        assert evaluation.status == ExpiryStatus.EXPIRED
