"""Tests for UFile request signing."""

import base64
import hashlib
import hmac

import pytest

from tests.infra.fake_transport import make_credentials
from ufile_tier.infra.storage.client import EncodingError, InvalidKey
from ufile_tier.infra.storage.signing import (
    HashlibCryptoProvider,
    authorization_header,
    bucket_creation_query,
    bucket_creation_signature,
    canonical_header_string,
    sign,
    signed_headers,
)


class RecordingCrypto(HashlibCryptoProvider):
    def __init__(self, armor_result: str | None = None) -> None:
        self.hmac_calls: list[tuple[bytes, bytes]] = []
        self.sha1_calls: list[bytes] = []
        self._armor_result = armor_result

    def hmac_sha1(self, key: bytes, message: bytes) -> bytes:
        self.hmac_calls.append((key, message))
        return super().hmac_sha1(key, message)

    def sha1(self, data: bytes) -> bytes:
        self.sha1_calls.append(data)
        return super().sha1(data)

    def armor(self, data: bytes) -> str:
        if self._armor_result is not None:
            return self._armor_result
        return super().armor(data)


class TestCanonicalHeaderString:
    def test_exact_template(self):
        result = canonical_header_string(
            "PUT", "bucket", "dir/obj.bin", "application/octet-stream"
        )
        assert result == "PUT\n\napplication/octet-stream\n\n/bucket/dir/obj.bin"

    def test_empty_key_keeps_trailing_slash(self):
        assert canonical_header_string("DELETE", "b", "", "t") == "DELETE\n\nt\n\n/b/"

    def test_deterministic(self):
        first = canonical_header_string("POST", "b", "k", "t")
        second = canonical_header_string("POST", "b", "k", "t")
        assert first == second


class TestSign:
    def test_matches_hmac_sha1_base64(self):
        canonical = canonical_header_string("PUT", "b", "k", "application/octet-stream")
        expected = base64.b64encode(
            hmac.new(b"secret", canonical.encode(), hashlib.sha1).digest()
        ).decode()

        assert sign(canonical, "secret") == expected

    def test_deterministic(self):
        assert sign("abc", "secret") == sign("abc", "secret")

    def test_different_keys_differ(self):
        assert sign("abc", "secret-1") != sign("abc", "secret-2")

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidKey):
            sign("abc", "")

    def test_armor_overflow_raises_encoding_error(self):
        crypto = RecordingCrypto(armor_result="A" * 64)

        with pytest.raises(EncodingError):
            sign("abc", "secret", crypto=crypto)

    def test_uses_injected_crypto(self):
        crypto = RecordingCrypto()

        sign("payload", "secret", crypto=crypto)

        assert crypto.hmac_calls == [(b"secret", b"payload")]


class TestHeaders:
    def test_authorization_header_format(self):
        assert authorization_header("pub", "c2ln") == "UCloud pub:c2ln"

    def test_signed_headers_has_exactly_two_entries(self):
        credentials = make_credentials()

        headers = signed_headers("PUT", "b", "k", credentials)

        assert set(headers) == {"Authorization", "Content-Type"}
        assert headers["Content-Type"] == "application/octet-stream"
        expected_sig = sign(
            "PUT\n\napplication/octet-stream\n\n/b/k", credentials.private_key
        )
        assert headers["Authorization"] == f"UCloud pub-key:{expected_sig}"

    def test_signed_headers_are_fresh_objects(self):
        credentials = make_credentials()

        first = signed_headers("PUT", "b", "k", credentials)
        first["X-Extra"] = "1"
        second = signed_headers("PUT", "b", "k", credentials)

        assert "X-Extra" not in second


class TestBucketCreationSignature:
    def test_sorted_concatenation_then_private_key(self):
        params = {"Type": "private", "Action": "CreateBucket", "BucketName": "b"}
        expected = hashlib.sha1(
            b"ActionCreateBucketBucketNamebTypeprivatesecret"
        ).hexdigest()

        assert bucket_creation_signature(params, "secret") == expected

    def test_lowercase_forty_hex_chars(self):
        signature = bucket_creation_signature({"A": "1"}, "secret")

        assert len(signature) == 40
        assert signature == signature.lower()
        int(signature, 16)

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidKey):
            bucket_creation_signature({"A": "1"}, "")


class TestBucketCreationQuery:
    def test_query_order_and_public_key_encoding(self):
        credentials = make_credentials(public_key="ab+c/d=", private_key="secret")

        query = bucket_creation_query("my-bucket", credentials)

        names = [part.split("=", 1)[0] for part in query.split("&")]
        assert names == [
            "Action",
            "BucketName",
            "PublicKey",
            "Region",
            "Type",
            "Signature",
        ]
        assert "PublicKey=ab%2Bc%2Fd%3D&" in query
        assert "BucketName=my-bucket&" in query
        assert "Region=cn-bj&" in query

    def test_signature_uses_raw_public_key(self):
        credentials = make_credentials(public_key="ab+c/d=", private_key="secret")
        crypto = RecordingCrypto()

        query = bucket_creation_query("my-bucket", credentials, crypto=crypto)

        signed = crypto.sha1_calls[0].decode()
        assert signed == (
            "ActionCreateBucket"
            "BucketNamemy-bucket"
            "PublicKeyab+c/d="
            "Regioncn-bj"
            "Typeprivate"
            "secret"
        )
        assert query.endswith(
            "Signature=" + hashlib.sha1(signed.encode()).hexdigest()
        )
