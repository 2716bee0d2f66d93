"""Storage client protocol, error taxonomy and data types.

This module defines the interface the storage gateway uses to tier objects
to UFile, plus the exceptions and value objects shared by the signer, the
request driver and the multipart state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Protocol, Sequence

if TYPE_CHECKING:
    from ufile_tier.services.multipart import TransferSession

Chunks = Sequence[bytes]


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""


class TransportError(StorageError):
    """Connection failure or non-success HTTP status from the remote service.

    ``status`` is None when no response was received at all.
    """

    def __init__(
        self, message: str, *, status: int | None = None, body: bytes = b""
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class RemoteApiError(TransportError):
    """HTTP failure whose JSON body carried a ``RetCode``."""

    def __init__(
        self,
        message: str,
        *,
        ret_code: int,
        status: int | None = None,
        body: bytes = b"",
        remote_message: str | None = None,
    ) -> None:
        super().__init__(message, status=status, body=body)
        self.ret_code = ret_code
        self.remote_message = remote_message


class ProtocolViolation(StorageError):
    """A successful response lacked a field the protocol requires."""


class MissingETag(ProtocolViolation):
    """A part upload succeeded but no ETag header came back."""


class InvalidArgument(StorageError, ValueError):
    """Raised for arguments that can never produce a valid request."""


class InvalidKey(InvalidArgument):
    """The signing key is empty."""


class NoParts(InvalidArgument):
    """Finish was requested for an upload without any recorded part."""


class EncodingError(StorageError):
    """The signature digest did not fit the armor output buffer."""


@dataclass(frozen=True, slots=True)
class MultipartUpload:
    """Result of initiating a multipart upload."""

    upload_id: str
    block_size: int


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Outcome of one completed HTTP exchange."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class CloudStorageClient(Protocol):
    """Protocol the storage gateway uses to tier objects to a cloud.

    Buckets are the gateway's own bucket names; the implementation applies
    its destination override and prefix. One multipart transfer is active
    per (bucket, key) at a time.
    """

    def put_object(self, bucket: str, key: str, data: Chunks, size: int) -> None:
        """Upload an object in a single request.

        Raises:
            StorageError: If the upload fails.
        """
        ...

    def remove_object(self, bucket: str, key: str) -> None:
        """Delete an object.

        Raises:
            StorageError: If the delete fails.
        """
        ...

    def begin_multipart(self, bucket: str, key: str) -> "TransferSession":
        """Initiate a multipart upload and make it the active transfer.

        Raises:
            StorageError: If the upload cannot be initiated.
        """
        ...

    def upload_part(self, bucket: str, key: str, data: Chunks, size: int) -> str:
        """Upload the next part of the active transfer and return its ETag.

        Raises:
            StorageError: If the part upload fails.
        """
        ...

    def finish_multipart(self, bucket: str, key: str) -> None:
        """Complete the active transfer, aborting it if completion fails.

        Raises:
            StorageError: If completion fails.
        """
        ...

    def abort_multipart(self, bucket: str, key: str) -> None:
        """Abort the active transfer.

        Raises:
            StorageError: If the abort fails.
        """
        ...
