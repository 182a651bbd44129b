"""boto3 session and client factory."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

# Adaptive retry mode; retries and backoff stay inside botocore
DEFAULT_BOTO_CONFIG = BotoConfig(retries={"max_attempts": 5, "mode": "adaptive"})


def create_session(profile_name: Optional[str] = None, region_name: Optional[str] = None) -> boto3.Session:
    """Create a boto3 session.

    Args:
        profile_name: Named credentials profile (optional, falls back to the default chain)
        region_name: Default region for the session (optional)

    Returns:
        boto3 Session
    """
    logger.debug(f"Creating boto3 session (profile={profile_name}, region={region_name})")
    return boto3.Session(profile_name=profile_name, region_name=region_name)


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
    session: Optional[boto3.Session] = None,
) -> Any:
    """Create a boto3 client for an AWS service.

    Args:
        service_name: AWS service name (e.g., "rds")
        region_name: AWS region (optional)
        profile_name: Named credentials profile, ignored when a session is given
        session: Existing boto3 session to reuse (optional)

    Returns:
        boto3 client
    """
    if session is None:
        session = create_session(profile_name=profile_name, region_name=region_name)

    return session.client(service_name, region_name=region_name, config=DEFAULT_BOTO_CONFIG)
