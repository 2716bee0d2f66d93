"""Multipart transfer state machine.

Sequences init, part uploads and finish/abort against a ``UfileRequest`` and
recovers once from a missing destination bucket by creating it.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from ufile_tier.common.config import DEFAULT_BUCKET_NOT_EXIST_CODE
from ufile_tier.infra.observability.metrics import BUCKET_RECOVERIES
from ufile_tier.infra.storage.client import (
    Chunks,
    HttpResponse,
    InvalidArgument,
    NoParts,
    RemoteApiError,
    StorageError,
)
from ufile_tier.infra.storage.ufile_request import UfileRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransferState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIATING = "initiating"
    BUCKET_MISSING = "bucket_missing"
    CREATING_BUCKET = "creating_bucket"
    ACTIVE = "active"
    FINISHING = "finishing"
    COMPLETED = "completed"
    ABORTING = "aborting"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class TransferSession:
    """State of one multipart upload.

    ``parts`` maps caller-assigned part numbers to the ETags the service
    returned. A part number is consumed even when its upload fails.
    """

    bucket: str
    key: str
    effective_bucket: str
    upload_id: str = ""
    block_size: int = 0
    next_part_number: int = 1
    parts: dict[int, str] = field(default_factory=dict)
    state: TransferState = TransferState.UNINITIALIZED
    history: list[TransferState] = field(default_factory=list)

    def transition(self, state: TransferState) -> None:
        self.history.append(state)
        self.state = state


class MultipartTransfer:
    """Drives transfer sessions through their lifecycle."""

    def __init__(
        self,
        request: UfileRequest,
        *,
        bucket_not_exist_code: int = DEFAULT_BUCKET_NOT_EXIST_CODE,
        metrics_enabled: bool = True,
    ) -> None:
        self._request = request
        self._bucket_not_exist_code = bucket_not_exist_code
        self._metrics_enabled = metrics_enabled

    @property
    def request(self) -> UfileRequest:
        return self._request

    def effective_bucket(self, bucket: str) -> str:
        return self._request.credentials.effective_bucket(bucket)

    def begin(self, bucket: str, key: str) -> TransferSession:
        """Initiate a multipart upload, creating the bucket once if missing."""
        session = TransferSession(
            bucket=bucket, key=key, effective_bucket=self.effective_bucket(bucket)
        )
        session.transition(TransferState.INITIATING)
        try:
            upload = self._with_bucket_recovery(
                "init_multipart",
                session.effective_bucket,
                lambda: self._request.init_multipart(session.effective_bucket, key),
                session=session,
            )
        except StorageError as exc:
            session.transition(TransferState.FAILED)
            logger.error(
                "ufile init multipart failed bucket=%s key=%s error=%s",
                bucket,
                key,
                exc,
            )
            raise

        session.upload_id = upload.upload_id
        session.block_size = upload.block_size
        session.transition(TransferState.ACTIVE)
        return session

    def upload_part(self, session: TransferSession, data: Chunks, length: int) -> str:
        """Upload the session's next part and record its ETag.

        The part number advances whether or not the upload succeeds; a failed
        part is not retried.
        """
        self._require_state(session, TransferState.ACTIVE)
        part_number = session.next_part_number
        try:
            etag = self._request.upload_part(
                session.effective_bucket,
                session.key,
                session.upload_id,
                part_number,
                data,
                length,
            )
        except StorageError as exc:
            logger.error(
                "ufile upload part failed bucket=%s key=%s part=%s error=%s",
                session.effective_bucket,
                session.key,
                part_number,
                exc,
            )
            raise
        else:
            session.parts[part_number] = etag
            return etag
        finally:
            session.next_part_number += 1

    def finish(self, session: TransferSession) -> None:
        """Complete the upload, aborting it if completion fails.

        A failing abort is logged only; the finish error is what propagates.
        """
        self._require_state(session, TransferState.ACTIVE)
        if not session.parts:
            raise NoParts(f"No parts recorded for upload {session.upload_id}")

        session.transition(TransferState.FINISHING)
        try:
            self._request.finish_multipart(
                session.effective_bucket,
                session.key,
                session.upload_id,
                session.parts,
            )
        except StorageError as exc:
            logger.error(
                "ufile finish multipart failed bucket=%s key=%s error=%s",
                session.effective_bucket,
                session.key,
                exc,
            )
            session.transition(TransferState.ABORTING)
            try:
                self._request.abort_multipart(
                    session.effective_bucket, session.key, session.upload_id
                )
            except StorageError as abort_exc:
                logger.warning(
                    "ufile abort after failed finish also failed bucket=%s key=%s error=%s",
                    session.effective_bucket,
                    session.key,
                    abort_exc,
                )
            else:
                session.transition(TransferState.ABORTED)
            raise

        session.transition(TransferState.COMPLETED)

    def abort(self, session: TransferSession) -> None:
        if session.state not in (TransferState.ACTIVE, TransferState.ABORTING):
            raise InvalidArgument(
                f"Cannot abort transfer in state {session.state.value}"
            )
        session.transition(TransferState.ABORTING)
        try:
            self._request.abort_multipart(
                session.effective_bucket, session.key, session.upload_id
            )
        except StorageError as exc:
            logger.error(
                "ufile abort multipart failed bucket=%s key=%s error=%s",
                session.effective_bucket,
                session.key,
                exc,
            )
            raise
        session.transition(TransferState.ABORTED)

    def put_object_with_bucket_recovery(
        self, bucket: str, key: str, data: Chunks, length: int
    ) -> HttpResponse:
        """Single-request upload with the same create-bucket-and-retry path."""
        effective = self.effective_bucket(bucket)
        try:
            return self._with_bucket_recovery(
                "put_object",
                effective,
                lambda: self._request.put_object(effective, key, data, length),
            )
        except StorageError as exc:
            logger.error(
                "ufile put_obj failed bucket=%s key=%s error=%s", effective, key, exc
            )
            raise

    def _with_bucket_recovery(
        self,
        operation: str,
        bucket: str,
        call: Callable[[], T],
        *,
        session: TransferSession | None = None,
    ) -> T:
        try:
            return call()
        except RemoteApiError as exc:
            if exc.ret_code != self._bucket_not_exist_code:
                raise
            logger.warning(
                "ufile bucket missing, creating it op=%s bucket=%s ret_code=%s",
                operation,
                bucket,
                exc.ret_code,
            )

        if session is not None:
            session.transition(TransferState.BUCKET_MISSING)
            session.transition(TransferState.CREATING_BUCKET)
        try:
            self._request.create_bucket(bucket)
        except StorageError:
            self._count_recovery(operation, "create_failed")
            raise
        self._count_recovery(operation, "created")

        if session is not None:
            session.transition(TransferState.INITIATING)
        return call()

    def _count_recovery(self, operation: str, outcome: str) -> None:
        if self._metrics_enabled:
            BUCKET_RECOVERIES.labels(operation, outcome).inc()

    @staticmethod
    def _require_state(session: TransferSession, expected: TransferState) -> None:
        if session.state is not expected:
            raise InvalidArgument(
                f"Transfer for {session.bucket}/{session.key} is {session.state.value}, "
                f"expected {expected.value}"
            )
