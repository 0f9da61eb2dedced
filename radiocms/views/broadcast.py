"""Schemas describing where and how DJ audio is published."""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

_ENCRYPTIONS = {"ftp", "ftps", "sftp"}
_EXPLICIT_TLS_ALIASES = {"explicit_tls", "tls"}
_IMPLICIT_TLS_ALIASES = {"implicit_tls", "implicit"}


class FtpConfig(BaseModel):
    """Connection parameters of the broadcast server's file-transfer endpoint."""

    enabled: bool = False
    host: str = ""
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    username: str = ""
    password_secret_key: Optional[str] = None
    remote_folder: str = ""
    encryption: Literal["ftp", "ftps", "sftp"] = "ftp"
    tls_mode: Literal["explicit", "implicit"] = "explicit"
    passive_mode: bool = True

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def split_tls_flavour(cls, data: Any) -> Any:
        # The admin screen stores TLS flavours as encryption values.
        if not isinstance(data, dict):
            return data
        raw = data.get("encryption")
        cleaned = raw.strip().lower() if isinstance(raw, str) else None
        if cleaned in _IMPLICIT_TLS_ALIASES:
            return {**data, "encryption": "ftps", "tls_mode": "implicit"}
        if cleaned in _EXPLICIT_TLS_ALIASES:
            return {**data, "encryption": "ftps", "tls_mode": "explicit"}
        return data

    @field_validator("encryption", mode="before")
    @classmethod
    def normalize_encryption(cls, value: object) -> object:
        if value is None:
            return "ftp"
        if isinstance(value, str):
            cleaned = value.strip().lower()
            if cleaned in _ENCRYPTIONS:
                return cleaned
            if cleaned:
                logger.warning("Unknown FTP encryption %r, using plain FTP", value)
            return "ftp"
        return value

    @field_validator("port", mode="before")
    @classmethod
    def blank_port_is_unset(cls, value: object) -> object:
        if value in ("", 0):
            return None
        return value


class BroadcastConfig(BaseModel):
    """Active publishing configuration of the deployment."""

    ftp: Optional[FtpConfig] = None

    model_config = {"extra": "ignore"}

    @property
    def upload_enabled(self) -> bool:
        return self.ftp is not None and self.ftp.enabled


__all__ = ["BroadcastConfig", "FtpConfig"]
