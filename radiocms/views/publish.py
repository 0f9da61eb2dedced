"""Request and response schemas of the DJ audio publishing endpoint."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class UploadRequest(BaseModel):
    """Audio asset handed over by the speech synthesis stage."""

    audio_payload: str = Field(
        validation_alias=AliasChoices("audio_payload", "audio_base64"),
        min_length=1,
    )
    filename: str = Field(min_length=1)

    model_config = {"extra": "ignore", "str_strip_whitespace": True}


class UploadResult(BaseModel):
    """Outcome of one publishing invocation."""

    success: bool
    remote_path: Optional[str] = None
    public_url: Optional[str] = None
    filename: Optional[str] = None
    size_bytes: Optional[int] = None
    size_kb: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None
    troubleshooting: Optional[list[str]] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class UploadStatusResponse(BaseModel):
    """Non-secret view of the publishing configuration."""

    enabled: bool
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    remote_folder: Optional[str] = None
    encryption: Optional[str] = None
    secret_key: str
    secret_configured: bool
    message: str


__all__ = ["UploadRequest", "UploadResult", "UploadStatusResponse"]
