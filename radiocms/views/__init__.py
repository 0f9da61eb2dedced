"""Pydantic schemas used as views in the MVC architecture."""

from .broadcast import BroadcastConfig, FtpConfig
from .common import ErrorResponse
from .publish import UploadRequest, UploadResult, UploadStatusResponse

__all__ = [
    "BroadcastConfig",
    "FtpConfig",
    "ErrorResponse",
    "UploadRequest",
    "UploadResult",
    "UploadStatusResponse",
]
