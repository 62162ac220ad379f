"""Webhook HMAC signing and verification."""

import hashlib
import hmac

import pytest

from orderpay.common.errors import AuthenticationError
from orderpay.common.signing import WebhookSigner


NOW = 1_700_000_000
BODY = b'{"type":"payment.succeeded","data":{"orderNumber":"ORD-1","amount":"19.99","currency":"USD"}}'


@pytest.fixture
def signer() -> WebhookSigner:
    return WebhookSigner("s3cret", tolerance_seconds=300, clock=lambda: NOW)


def _reason(signer: WebhookSigner, header, body) -> str:
    with pytest.raises(AuthenticationError) as exc_info:
        signer.verify(header, body)
    return exc_info.value.reason


def test_header_format_and_digest(signer):
    """Header is `t=<ts>,v1=<hex>` over the string `t=<ts>.<body>`."""

    expected = hmac.new(b"s3cret", f"t={NOW}.".encode() + BODY, hashlib.sha256).hexdigest()
    assert signer.sign(BODY, NOW) == f"t={NOW},v1={expected}"
    assert expected == expected.lower()


def test_sign_defaults_to_clock(signer):
    assert signer.sign(BODY) == signer.sign(BODY, NOW)


def test_str_and_bytes_bodies_sign_the_same(signer):
    assert signer.sign(BODY.decode(), NOW) == signer.sign(BODY, NOW)


def test_round_trip(signer):
    signer.verify(signer.sign(BODY, NOW), BODY)
    signer.verify(signer.sign(b"", NOW - 10), b"")


def test_single_byte_body_mutation_fails(signer):
    """Flipping any one byte of the body breaks the signature."""

    header = signer.sign(BODY, NOW)
    for index in range(len(BODY)):
        mutated = bytearray(BODY)
        mutated[index] ^= 0x01
        assert _reason(signer, header, bytes(mutated)) == "Signature mismatch"


def test_signature_hex_mutation_fails(signer):
    header = signer.sign(BODY, NOW)
    prefix, hex_sig = header.split("v1=")
    for index in (0, len(hex_sig) // 2, len(hex_sig) - 1):
        replacement = "0" if hex_sig[index] != "0" else "1"
        tampered = prefix + "v1=" + hex_sig[:index] + replacement + hex_sig[index + 1 :]
        assert _reason(signer, tampered, BODY) == "Signature mismatch"


def test_wrong_secret_is_mismatch(signer):
    other = WebhookSigner("not-the-secret", clock=lambda: NOW)
    assert _reason(signer, other.sign(BODY, NOW), BODY) == "Signature mismatch"


@pytest.mark.parametrize("offset", [-300, 300, 0])
def test_tolerance_boundary_passes(signer, offset):
    """Exactly `tolerance` seconds of skew in either direction is accepted."""

    signer.verify(signer.sign(BODY, NOW + offset), BODY)


@pytest.mark.parametrize("offset", [-301, 301, -400])
def test_outside_tolerance_is_stale(signer, offset):
    assert _reason(signer, signer.sign(BODY, NOW + offset), BODY) == "Stale timestamp"


@pytest.mark.parametrize("header", [None, "", "   "])
def test_missing_header(signer, header):
    assert _reason(signer, header, BODY) == "Missing signature"


@pytest.mark.parametrize("header", ["v1=abc", f"t={NOW}", "garbage", "t,v1"])
def test_malformed_header(signer, header):
    assert _reason(signer, header, BODY) == "Malformed signature"


def test_bad_timestamp(signer):
    assert _reason(signer, "t=yesterday,v1=abcd", BODY) == "Bad timestamp"


@pytest.mark.parametrize(
    "timestamp",
    [f"+{NOW}", "1_700_000_000", " 1700000000", "\u0661\u0667\u0660\u0660\u0660\u0660\u0660\u0660\u0660\u0660"],
)
def test_timestamp_must_be_plain_ascii_digits(signer, timestamp):
    """Forms `int()` would accept are refused; the signed string must match the header text."""

    digest = hmac.new(b"s3cret", f"t={timestamp}.".encode() + BODY, hashlib.sha256).hexdigest()
    assert _reason(signer, f"t={timestamp},v1={digest}", BODY) == "Bad timestamp"


def test_negative_timestamp_is_parsed_then_stale(signer):
    assert _reason(signer, signer.sign(BODY, -5), BODY) == "Stale timestamp"


def test_empty_secret_rejects_everything():
    """No configured secret means no webhook is ever accepted."""

    unconfigured = WebhookSigner("", clock=lambda: NOW)

    assert _reason(unconfigured, unconfigured.sign(BODY, NOW), BODY) == "Webhook secret not configured"
    assert _reason(unconfigured, None, BODY) == "Webhook secret not configured"


def test_parts_may_come_in_any_order(signer):
    header = signer.sign(BODY, NOW)
    t_part, v1_part = header.split(",")
    signer.verify(f"{v1_part}, {t_part}", BODY)
