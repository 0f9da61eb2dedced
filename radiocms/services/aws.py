"""boto3 access for the AWS-backed secret source."""

from __future__ import annotations

from typing import Any

import boto3

from radiocms.config.settings import SecretsConfig, settings


def boto3_session(config: SecretsConfig | None = None) -> boto3.session.Session:
    """Session using the configured key pair, or the default credential chain."""

    config = config or settings.secrets
    options: dict[str, Any] = {"region_name": config.aws_region}
    # Half a key pair is ignored rather than half-applied.
    if config.access_key and config.secret_key:
        options["aws_access_key_id"] = config.access_key
        options["aws_secret_access_key"] = config.secret_key
    return boto3.session.Session(**options)


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    config: SecretsConfig | None = None,
) -> Any:
    session = boto3_session(config)
    return session.client(service_name, region_name=region_name or session.region_name)


__all__ = ["boto3_session", "create_boto3_client"]
