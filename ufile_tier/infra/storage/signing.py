"""UFile request signing.

Object requests are authenticated with an ``Authorization`` header carrying an
HMAC-SHA1 of a canonical string. Bucket creation goes through the management
API instead, which expects a SHA1 signature appended to the query string.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Mapping, Protocol
from urllib.parse import quote

from ufile_tier.common.config import CloudCredentials
from ufile_tier.infra.storage.client import EncodingError, InvalidKey

CONTENT_TYPE = "application/octet-stream"
AUTH_SCHEME = "UCloud"

# Output buffer size of the armor step; a 20-byte digest needs 28 chars.
_ARMOR_BUFFER_SIZE = 64


class CryptoProvider(Protocol):
    """Cryptographic primitives used by the signer."""

    def hmac_sha1(self, key: bytes, message: bytes) -> bytes: ...

    def sha1(self, data: bytes) -> bytes: ...

    def armor(self, data: bytes) -> str: ...


class HashlibCryptoProvider:
    """CryptoProvider backed by hashlib, hmac and base64."""

    def hmac_sha1(self, key: bytes, message: bytes) -> bytes:
        return hmac.new(key, message, hashlib.sha1).digest()

    def sha1(self, data: bytes) -> bytes:
        return hashlib.sha1(data).digest()

    def armor(self, data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")


DEFAULT_CRYPTO: CryptoProvider = HashlibCryptoProvider()


def canonical_header_string(
    method: str, bucket: str, key: str, content_type: str
) -> str:
    """Build the string to sign; the date and MD5 lines are always empty."""
    return method + "\n" + "\n" + content_type + "\n" + "\n" + "/" + bucket + "/" + key


def sign(
    canonical_string: str,
    private_key: str,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> str:
    """Return the base64 HMAC-SHA1 of ``canonical_string``.

    Raises:
        InvalidKey: If ``private_key`` is empty.
        EncodingError: If the encoded digest overflows the armor buffer.
    """
    if not private_key:
        raise InvalidKey("private key is required for request signing")
    digest = crypto.hmac_sha1(
        private_key.encode("utf-8"), canonical_string.encode("utf-8")
    )
    encoded = crypto.armor(digest)
    if len(encoded) >= _ARMOR_BUFFER_SIZE:
        raise EncodingError(
            f"encoded signature needs {len(encoded)} bytes, "
            f"buffer holds {_ARMOR_BUFFER_SIZE - 1}"
        )
    return encoded


def authorization_header(public_key: str, signature: str) -> str:
    return AUTH_SCHEME + " " + public_key + ":" + signature


def signed_headers(
    method: str,
    bucket: str,
    key: str,
    credentials: CloudCredentials,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> dict[str, str]:
    """Build a fresh header set for one object request."""
    canonical = canonical_header_string(method, bucket, key, CONTENT_TYPE)
    signature = sign(canonical, credentials.private_key, crypto=crypto)
    return {
        "Authorization": authorization_header(credentials.public_key, signature),
        "Content-Type": CONTENT_TYPE,
    }


def bucket_creation_signature(
    query_params: Mapping[str, str],
    private_key: str,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> str:
    """SHA1 over ``key + value`` of every parameter in key order, then the key.

    Values are signed raw, before any percent-encoding.
    """
    if not private_key:
        raise InvalidKey("private key is required for request signing")
    string_to_sign = "".join(name + query_params[name] for name in sorted(query_params))
    string_to_sign += private_key
    return crypto.sha1(string_to_sign.encode("utf-8")).hex()


def bucket_creation_query(
    bucket: str,
    credentials: CloudCredentials,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> str:
    """Build the signed CreateBucket query string.

    Only ``PublicKey`` is percent-encoded in the URL; the other values are
    passed through verbatim.
    """
    params = {
        "Action": "CreateBucket",
        "BucketName": bucket,
        "PublicKey": credentials.public_key,
        "Region": credentials.bucket_region,
        "Type": "private",
    }
    parts = []
    for name in sorted(params):
        value = params[name]
        if name == "PublicKey":
            value = quote(value, safe="")
        parts.append(f"{name}={value}")
    signature = bucket_creation_signature(
        params, credentials.private_key, crypto=crypto
    )
    parts.append(f"Signature={signature}")
    return "&".join(parts)
