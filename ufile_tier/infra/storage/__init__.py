"""UFile object storage client.

This package implements the UFile request-signing scheme and multipart
protocol used to tier gateway objects to UCloud object storage.
"""

from .client import (
    CloudStorageClient,
    EncodingError,
    HttpResponse,
    InvalidArgument,
    InvalidKey,
    MissingETag,
    MultipartUpload,
    NoParts,
    ProtocolViolation,
    RemoteApiError,
    StorageError,
    TransportError,
)
from .transport import HttpTransport, RequestsTransport
from .ufile_request import UfileRequest

__all__ = [
    "CloudStorageClient",
    "EncodingError",
    "HttpResponse",
    "HttpTransport",
    "InvalidArgument",
    "InvalidKey",
    "MissingETag",
    "MultipartUpload",
    "NoParts",
    "ProtocolViolation",
    "RemoteApiError",
    "RequestsTransport",
    "StorageError",
    "TransportError",
    "UfileRequest",
]
