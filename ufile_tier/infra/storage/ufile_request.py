"""Single-exchange request driver for the UFile object API.

Each public method performs exactly one signed HTTP exchange and blocks until
it completes. Headers are built fresh for every exchange; request bodies are
streamed from the caller's chunks through a ``BodyFeeder``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from pydantic import ValidationError

from ufile_tier.common.config import CloudCredentials
from ufile_tier.infra.observability.metrics import LATENCY, REQUESTS
from ufile_tier.infra.storage.body import BodyFeeder
from ufile_tier.infra.storage.client import (
    Chunks,
    HttpResponse,
    MissingETag,
    MultipartUpload,
    NoParts,
    ProtocolViolation,
    RemoteApiError,
    TransportError,
)
from ufile_tier.infra.storage.payloads import (
    InitMultipartPayload,
    parse_error_payload,
)
from ufile_tier.infra.storage.signing import (
    CONTENT_TYPE,
    DEFAULT_CRYPTO,
    CryptoProvider,
    bucket_creation_query,
    signed_headers,
)
from ufile_tier.infra.storage.transport import HttpTransport

logger = logging.getLogger(__name__)

_MASKED_HEADERS = {"authorization"}


def _as_chunks(data: Chunks | bytes | bytearray | memoryview) -> Chunks:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return (bytes(data),)
    return data


def _mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        name: "***" if name.lower() in _MASKED_HEADERS else value
        for name, value in headers.items()
    }


class UfileRequest:
    """Drives signed UFile requests over an injected transport.

    Not safe for concurrent use: the body feeder is owned by one in-flight
    exchange at a time.
    """

    def __init__(
        self,
        credentials: CloudCredentials,
        transport: HttpTransport,
        *,
        crypto: CryptoProvider = DEFAULT_CRYPTO,
        scheme: str = "http",
        metrics_enabled: bool = True,
        trace_http: bool = False,
    ) -> None:
        self._credentials = credentials
        self._transport = transport
        self._crypto = crypto
        self._scheme = scheme
        self._metrics_enabled = metrics_enabled
        self._trace_http = trace_http
        self._feeder = BodyFeeder()

    @property
    def credentials(self) -> CloudCredentials:
        return self._credentials

    def object_url(self, bucket: str, key: str, query: str | None = None) -> str:
        url = f"{self._scheme}://{bucket}.{self._credentials.domain_name}/{key}"
        if query:
            url += "?" + query
        return url

    def _headers(self, method: str, bucket: str, key: str) -> dict[str, str]:
        return signed_headers(
            method, bucket, key, self._credentials, crypto=self._crypto
        )

    def put_object(
        self, bucket: str, key: str, data: Chunks | bytes, length: int
    ) -> HttpResponse:
        """Upload a whole object with one signed PUT."""
        return self._send_with_body(
            "put_object",
            "PUT",
            self.object_url(bucket, key),
            self._headers("PUT", bucket, key),
            _as_chunks(data),
            length,
        )

    def delete_object(self, bucket: str, key: str) -> HttpResponse:
        return self._exchange(
            "delete_object",
            "DELETE",
            self.object_url(bucket, key),
            self._headers("DELETE", bucket, key),
        )

    def create_bucket(self, bucket: str) -> HttpResponse:
        """Create a private bucket through the management API.

        The signature travels in the query string, so no Authorization
        header is sent.
        """
        query = bucket_creation_query(bucket, self._credentials, crypto=self._crypto)
        url = f"{self._scheme}://{self._credentials.bucket_host}/?{query}"
        return self._exchange(
            "create_bucket", "GET", url, {"Content-Type": CONTENT_TYPE}
        )

    def init_multipart(self, bucket: str, key: str) -> MultipartUpload:
        """Start a multipart upload.

        Raises:
            RemoteApiError: If the failure body carried a RetCode.
            TransportError: For any other failure.
            ProtocolViolation: If UploadId or BlkSize is missing.
        """
        response = self._exchange(
            "init_multipart",
            "POST",
            self.object_url(bucket, key, "uploads"),
            self._headers("POST", bucket, key),
        )
        try:
            payload = InitMultipartPayload.model_validate_json(response.body)
        except ValidationError as exc:
            raise ProtocolViolation(
                f"Malformed init multipart response for {bucket}/{key}: {exc}"
            ) from exc

        if payload.UploadId is None:
            raise ProtocolViolation("UFile response missing UploadId")
        if payload.BlkSize is None:
            raise ProtocolViolation("UFile response missing BlkSize")
        return MultipartUpload(upload_id=payload.UploadId, block_size=payload.BlkSize)

    def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        data: Chunks | bytes,
        length: int,
    ) -> str:
        """Upload one part and return the ETag the service assigned to it."""
        response = self._send_with_body(
            "upload_part",
            "PUT",
            self.object_url(
                bucket, key, f"uploadId={upload_id}&partNumber={part_number}"
            ),
            self._headers("PUT", bucket, key),
            _as_chunks(data),
            length,
        )
        etag = response.header("ETag")
        if etag is None:
            raise MissingETag(
                f"UFile response missing ETag for part {part_number} of {bucket}/{key}"
            )
        return etag

    def finish_multipart(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        etags: Mapping[int, str],
    ) -> HttpResponse:
        """Complete an upload; the body lists the ETags by ascending part number."""
        if not etags:
            raise NoParts(f"No parts recorded for upload {upload_id}")
        body = ",".join(etags[number] for number in sorted(etags)).encode("utf-8")
        return self._send_with_body(
            "finish_multipart",
            "POST",
            self.object_url(bucket, key, f"uploadId={upload_id}"),
            self._headers("POST", bucket, key),
            (body,),
            len(body),
        )

    def abort_multipart(self, bucket: str, key: str, upload_id: str) -> HttpResponse:
        return self._exchange(
            "abort_multipart",
            "DELETE",
            self.object_url(bucket, key, f"uploadId={upload_id}"),
            self._headers("DELETE", bucket, key),
        )

    def _send_with_body(
        self,
        operation: str,
        method: str,
        url: str,
        headers: dict[str, str],
        chunks: Chunks,
        length: int,
    ) -> HttpResponse:
        if length == 0:
            return self._exchange(operation, method, url, headers, b"")
        try:
            self._feeder.prepare(chunks, length)
            return self._exchange(operation, method, url, headers, self._feeder)
        finally:
            self._feeder.reset()

    def _exchange(
        self,
        operation: str,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any = None,
    ) -> HttpResponse:
        start = time.perf_counter()
        try:
            response = self._transport.send(method, url, headers, body)
        except TransportError as exc:
            self._record(operation, method, url, headers, None, start, exc)
            raise

        if response.ok:
            self._record(operation, method, url, headers, response.status, start)
            return response

        error = self._error_from(operation, method, url, response)
        self._record(operation, method, url, headers, response.status, start, error)
        raise error

    @staticmethod
    def _error_from(
        operation: str, method: str, url: str, response: HttpResponse
    ) -> TransportError:
        payload = parse_error_payload(response.body)
        if payload is not None and payload.RetCode is not None:
            return RemoteApiError(
                f"UFile {operation} failed: status={response.status} "
                f"ret_code={payload.RetCode} message={payload.ErrMsg}",
                ret_code=payload.RetCode,
                status=response.status,
                body=response.body,
                remote_message=payload.ErrMsg,
            )
        return TransportError(
            f"UFile {operation} failed: {method} {url} status={response.status}",
            status=response.status,
            body=response.body,
        )

    def _record(
        self,
        operation: str,
        method: str,
        url: str,
        headers: Mapping[str, str],
        status: int | None,
        start: float,
        error: Exception | None = None,
    ) -> None:
        elapsed = time.perf_counter() - start
        status_label = str(status) if status is not None else "error"
        if self._metrics_enabled:
            REQUESTS.labels(operation, status_label).inc()
            LATENCY.labels(operation).observe(elapsed)

        duration_ms = round(elapsed * 1000, 3)
        extra_payload: dict[str, Any] = {
            "operation": operation,
            "method": method,
            "url": url,
            "status": status,
            "duration_ms": duration_ms,
        }
        if error is not None:
            extra_payload["error"] = repr(error)
            if isinstance(error, RemoteApiError):
                extra_payload["ret_code"] = error.ret_code
        if self._trace_http:
            extra_payload["request_headers"] = _mask_headers(headers)

        level = logging.INFO if error is None else logging.WARNING
        logger.log(
            level,
            "ufile_request op=%s method=%s status=%s duration_ms=%.3f url=%s",
            operation,
            method,
            status_label,
            duration_ms,
            url,
            extra={"extra": extra_payload},
        )
