from __future__ import annotations


class ServiceError(Exception):
    """Base class for application service level exceptions."""


class CloudNotConfiguredError(ServiceError):
    """Raised when the UFile credentials or endpoints are missing."""
