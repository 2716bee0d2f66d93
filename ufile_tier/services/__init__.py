from .base import CloudNotConfiguredError, ServiceError
from .cloud_service import UfileCloudService, build_cloud_service
from .multipart import MultipartTransfer, TransferSession, TransferState

__all__ = [
    "CloudNotConfiguredError",
    "MultipartTransfer",
    "ServiceError",
    "TransferSession",
    "TransferState",
    "UfileCloudService",
    "build_cloud_service",
]
