"""Pydantic models for the JSON bodies returned by UFile.

Every field is optional so an absent field stays distinguishable from a
present zero; callers decide which absences are protocol violations.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, ValidationError


class InitMultipartPayload(BaseModel):
    """Body of a successful ``?uploads`` response."""

    model_config = ConfigDict(extra="ignore")

    UploadId: str | None = None
    BlkSize: int | None = None


class ErrorPayload(BaseModel):
    """Body of a failed request."""

    model_config = ConfigDict(extra="ignore")

    RetCode: int | None = None
    ErrMsg: str | None = None


def parse_error_payload(body: bytes) -> ErrorPayload | None:
    """Best-effort parse; None when the body is not a JSON object."""
    if not body:
        return None
    try:
        return ErrorPayload.model_validate_json(body)
    except ValidationError:
        return None
