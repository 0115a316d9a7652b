"""Tests for the HMAC URL signer adapter."""

import json
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlsplit

import pytest

from signgate.app.adapters import HmacUrlSigner, SigningKey
from signgate.app.ports import UrlSigningError
from signgate.utils.crypto import urlsafe_decode

VALID_UNTIL = datetime(2030, 1, 1, 0, 0, 0, 500000, tzinfo=UTC)


@pytest.fixture
def signer() -> HmacUrlSigner:
    return HmacUrlSigner(
        [
            SigningKey("cdn", b"cdn-secret", "https://cdn.example/"),
            SigningKey("vod", b"vod-secret", "https://cdn.example/vod/"),
        ]
    )


def test_accepts_matches_configured_prefixes(signer: HmacUrlSigner) -> None:
    assert signer.accepts("https://cdn.example/video.mp4")
    assert signer.accepts("https://cdn.example/vod/a.mp4")
    assert not signer.accepts("https://other.example/video.mp4")
    assert not signer.accepts("")


def test_longest_prefix_selects_key(signer: HmacUrlSigner) -> None:
    signed = signer.sign("https://cdn.example/vod/a.mp4", VALID_UNTIL)

    assert parse_qs(urlsplit(signed).query)["keyId"] == ["vod"]


def test_sign_embeds_policy(signer: HmacUrlSigner) -> None:
    url = "https://cdn.example/video.mp4"

    signed = signer.sign(url, VALID_UNTIL, valid_source="10.0.0.7")

    params = parse_qs(urlsplit(signed).query)
    assert signed.startswith(url + "?policy=")
    assert params["keyId"] == ["cdn"]
    assert len(params["signature"][0]) == 64

    policy = json.loads(urlsafe_decode(params["policy"][0]))
    assert policy == {
        "Statement": {
            "Resource": url,
            "Condition": {"DateLessThan": 1893456000500, "IpAddress": "10.0.0.7"},
        }
    }


def test_sign_preserves_existing_query_and_fragment(signer: HmacUrlSigner) -> None:
    url = "https://cdn.example/video.mp4?quality=hd&start=10#t=5"

    signed = signer.sign(url, VALID_UNTIL)

    parts = urlsplit(signed)
    assert parts.fragment == "t=5"
    assert parts.query.startswith("quality=hd&start=10&policy=")
    assert signer.verify(signed, now=VALID_UNTIL - timedelta(hours=1)).ok


def test_sign_rejects_unknown_url(signer: HmacUrlSigner) -> None:
    with pytest.raises(UrlSigningError, match="No signing key"):
        signer.sign("https://other.example/video.mp4", VALID_UNTIL)


def test_sign_rejects_already_signed_url(signer: HmacUrlSigner) -> None:
    signed = signer.sign("https://cdn.example/video.mp4", VALID_UNTIL)

    with pytest.raises(UrlSigningError, match="already carries signing parameters"):
        signer.sign(signed, VALID_UNTIL)


def test_sign_rejects_naive_expiry(signer: HmacUrlSigner) -> None:
    with pytest.raises(UrlSigningError):
        signer.sign("https://cdn.example/video.mp4", datetime(2030, 1, 1))


def test_conflicting_secrets_for_one_key_id() -> None:
    with pytest.raises(ValueError, match="conflicting secrets"):
        HmacUrlSigner(
            [
                SigningKey("cdn", b"one", "https://a.example/"),
                SigningKey("cdn", b"two", "https://b.example/"),
            ]
        )


def test_verify_ok_before_expiry(signer: HmacUrlSigner) -> None:
    signed = signer.sign("https://cdn.example/video.mp4", VALID_UNTIL)

    result = signer.verify(signed, now=VALID_UNTIL - timedelta(seconds=1))

    assert result.status == "ok"
    assert result.resource == "https://cdn.example/video.mp4"


def test_verify_gone_after_expiry(signer: HmacUrlSigner) -> None:
    signed = signer.sign("https://cdn.example/video.mp4", VALID_UNTIL)

    result = signer.verify(signed, now=VALID_UNTIL)

    assert result.status == "gone"


def test_verify_enforces_client_address(signer: HmacUrlSigner) -> None:
    signed = signer.sign("https://cdn.example/video.mp4", VALID_UNTIL, valid_source="10.0.0.7")
    before = VALID_UNTIL - timedelta(minutes=5)

    assert signer.verify(signed, client_ip="10.0.0.7", now=before).ok
    assert signer.verify(signed, client_ip="10.0.0.8", now=before).status == "forbidden"
    assert signer.verify(signed, now=before).status == "forbidden"


def test_verify_detects_tampered_resource(signer: HmacUrlSigner) -> None:
    signed = signer.sign("https://cdn.example/video.mp4", VALID_UNTIL)
    tampered = signed.replace("video.mp4", "other.mp4")

    result = signer.verify(tampered, now=VALID_UNTIL - timedelta(hours=1))

    assert result.status == "forbidden"
    assert result.reason == "Policy does not cover this resource"


def test_verify_detects_tampered_signature(signer: HmacUrlSigner) -> None:
    signed = signer.sign("https://cdn.example/video.mp4", VALID_UNTIL)
    head, _, signature = signed.rpartition("signature=")
    flipped = ("0" if signature[0] != "0" else "1") + signature[1:]

    result = signer.verify(head + "signature=" + flipped, now=VALID_UNTIL - timedelta(hours=1))

    assert result.status == "forbidden"


def test_verify_unknown_key_id() -> None:
    issuer = HmacUrlSigner([SigningKey("edge", b"secret", "https://cdn.example/")])
    verifier = HmacUrlSigner([SigningKey("cdn", b"secret", "https://cdn.example/")])
    signed = issuer.sign("https://cdn.example/video.mp4", VALID_UNTIL)

    result = verifier.verify(signed, now=VALID_UNTIL - timedelta(hours=1))

    assert result.status == "forbidden"
    assert "edge" in (result.reason or "")


def test_verify_missing_parameters(signer: HmacUrlSigner) -> None:
    result = signer.verify("https://cdn.example/video.mp4?keyId=cdn")

    assert result.status == "bad_request"
    assert "policy" in (result.reason or "")
    assert "signature" in (result.reason or "")


@pytest.mark.parametrize(
    "url",
    [
        "https://cdn.example/a?",
        "https://cdn.example/a?x=1&&b=2",
        "https://cdn.example/a?x=1&",
        "https://cdn.example/a?#frag",
        "https://cdn.example/a#frag",
    ],
)
def test_verify_keeps_raw_resource_query(signer: HmacUrlSigner, url: str) -> None:
    signed = signer.sign(url, VALID_UNTIL)

    result = signer.verify(signed, now=VALID_UNTIL - timedelta(hours=1))

    assert result.status == "ok"
    assert result.resource == url
