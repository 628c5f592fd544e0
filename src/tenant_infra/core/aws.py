"""Shared boto3 clients for the admin account."""

from typing import Any

import boto3
from botocore.config import Config

from src.tenant_infra.core.config import get_settings

_session: boto3.session.Session | None = None


def client_config() -> Config:
    """Client config without SDK retries (the workflow engine owns retries)."""
    settings = get_settings()
    return Config(retries={"total_max_attempts": settings.aws_client_max_attempts})


def get_admin_session() -> boto3.session.Session:
    """Get or create the admin-account boto3 session (singleton)."""
    global _session
    if _session is None:
        _session = boto3.session.Session(region_name=get_settings().aws_region)
    return _session


def reset_admin_session() -> None:
    """Drop the cached session (tests, credential rotation)."""
    global _session
    _session = None


def admin_client(service_name: str) -> Any:
    """Build an admin-account client for the given service."""
    settings = get_settings()
    return get_admin_session().client(
        service_name,
        endpoint_url=settings.aws_endpoint_url,
        config=client_config(),
    )


def admin_resource(service_name: str) -> Any:
    """Build an admin-account resource for the given service."""
    settings = get_settings()
    return get_admin_session().resource(
        service_name,
        endpoint_url=settings.aws_endpoint_url,
        config=client_config(),
    )
