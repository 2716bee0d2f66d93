"""UFile cloud tier service.

This module is the surface the storage gateway calls: single-shot puts and
deletes, and a multipart lifecycle addressed by the gateway's own bucket and
key. One transfer session is tracked per (bucket, key).
"""

from __future__ import annotations

import logging
from typing import Sequence

from ufile_tier.common.config import Settings, get_settings
from ufile_tier.infra.storage.body import split_parts
from ufile_tier.infra.storage.client import (
    Chunks,
    InvalidArgument,
    StorageError,
    TransportError,
)
from ufile_tier.infra.storage.transport import HttpTransport, RequestsTransport
from ufile_tier.infra.storage.ufile_request import UfileRequest
from ufile_tier.services.base import CloudNotConfiguredError
from ufile_tier.services.multipart import (
    MultipartTransfer,
    TransferSession,
    TransferState,
)

logger = logging.getLogger(__name__)


class UfileCloudService:
    """Gateway-facing UFile adapter implementing ``CloudStorageClient``."""

    def __init__(self, transfer: MultipartTransfer) -> None:
        self._transfer = transfer
        self._sessions: dict[tuple[str, str], TransferSession] = {}

    @property
    def transfer(self) -> MultipartTransfer:
        return self._transfer

    def session_for(self, bucket: str, key: str) -> TransferSession | None:
        return self._sessions.get((bucket, key))

    def put_object(self, bucket: str, key: str, data: Chunks, size: int) -> None:
        self._transfer.put_object_with_bucket_recovery(bucket, key, data, size)

    def remove_object(self, bucket: str, key: str) -> None:
        effective = self._transfer.effective_bucket(bucket)
        try:
            self._transfer.request.delete_object(effective, key)
        except TransportError as exc:
            message = exc.body.decode("utf-8", errors="replace") if exc.body else "-"
            logger.error(
                "ufile rm_obj failed bucket=%s key=%s status=%s error_msg=%s",
                effective,
                key,
                exc.status,
                message,
            )
            raise
        logger.info("ufile rm_obj succeeded bucket=%s key=%s", effective, key)

    def begin_multipart(self, bucket: str, key: str) -> TransferSession:
        existing = self._sessions.get((bucket, key))
        if existing is not None:
            raise InvalidArgument(
                f"Multipart upload {existing.upload_id} already active for {bucket}/{key}"
            )
        session = self._transfer.begin(bucket, key)
        self._sessions[(bucket, key)] = session
        return session

    def upload_part(self, bucket: str, key: str, data: Chunks, size: int) -> str:
        return self._transfer.upload_part(self._active(bucket, key), data, size)

    def finish_multipart(self, bucket: str, key: str) -> None:
        session = self._active(bucket, key)
        try:
            self._transfer.finish(session)
        finally:
            if session.state is not TransferState.ACTIVE:
                self._sessions.pop((bucket, key), None)

    def abort_multipart(self, bucket: str, key: str) -> None:
        session = self._active(bucket, key)
        try:
            self._transfer.abort(session)
        finally:
            self._sessions.pop((bucket, key), None)

    def upload_multipart(
        self, bucket: str, key: str, data: Sequence[bytes], size: int
    ) -> TransferSession:
        """Upload ``data`` as a multipart object split at the service block size.

        Any failure after the upload has begun aborts it and re-raises.
        """
        session = self.begin_multipart(bucket, key)
        try:
            parts = split_parts(data, session.block_size)
            total = sum(len(view) for part in parts for view in part)
            if not parts or total != size:
                raise InvalidArgument(
                    f"data holds {total} bytes, declared {size}; nothing to upload"
                )
            for part in parts:
                self.upload_part(bucket, key, part, sum(len(view) for view in part))
        except StorageError:
            self._abort_quietly(bucket, key)
            raise
        self.finish_multipart(bucket, key)
        return session

    def _abort_quietly(self, bucket: str, key: str) -> None:
        try:
            self.abort_multipart(bucket, key)
        except StorageError as abort_exc:
            logger.warning(
                "ufile abort after failed upload also failed bucket=%s key=%s error=%s",
                bucket,
                key,
                abort_exc,
            )

    def _active(self, bucket: str, key: str) -> TransferSession:
        session = self._sessions.get((bucket, key))
        if session is None:
            raise InvalidArgument(f"No active multipart upload for {bucket}/{key}")
        return session


def build_cloud_service(
    settings: Settings | None = None,
    *,
    transport: HttpTransport | None = None,
) -> UfileCloudService:
    """Wire settings, transport, request driver and state machine together."""
    settings = settings or get_settings()
    if not settings.UFILE_PUBLIC_KEY or not settings.UFILE_PRIVATE_KEY:
        raise CloudNotConfiguredError(
            "UFILE_PUBLIC_KEY and UFILE_PRIVATE_KEY are required"
        )
    if not settings.UFILE_BUCKET_HOST:
        raise CloudNotConfiguredError("UFILE_BUCKET_HOST is required")

    request = UfileRequest(
        settings.cloud_credentials(),
        transport or RequestsTransport(timeout=settings.UFILE_TIMEOUT_SECONDS),
        scheme=settings.scheme,
        metrics_enabled=settings.ENABLE_METRICS,
        trace_http=settings.TRACE_HTTP,
    )
    transfer = MultipartTransfer(
        request,
        bucket_not_exist_code=settings.UFILE_BUCKET_NOT_EXIST_CODE,
        metrics_enabled=settings.ENABLE_METRICS,
    )
    return UfileCloudService(transfer)
