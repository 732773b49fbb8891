from typing import Any, Dict

import aioboto3
import structlog
from botocore.config import Config as BotoConfig

from cost_notifier.shared.core.config import Settings

logger = structlog.get_logger()

# Cost Explorer is a global service served from us-east-1
COST_EXPLORER_DEFAULT_REGION = "us-east-1"


def build_boto_config(settings: Settings) -> BotoConfig:
    """
    Socket timeouts for every Cost Explorer call.
    Retries are disabled: a failed call fails the run.
    """
    return BotoConfig(
        read_timeout=settings.AWS_READ_TIMEOUT_SECONDS,
        connect_timeout=settings.AWS_CONNECT_TIMEOUT_SECONDS,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def map_static_credentials(settings: Settings) -> Dict[str, str]:
    """
    Maps configured static credentials to aioboto3 session kwargs.

    Both halves of the key pair must be present; otherwise the default
    credential chain (env, shared config, instance profile) is used.
    """
    if settings.has_static_aws_credentials:
        return {
            "aws_access_key_id": str(settings.AWS_ACCESS_KEY_ID),
            "aws_secret_access_key": str(settings.AWS_SECRET_ACCESS_KEY),
        }
    if settings.AWS_ACCESS_KEY_ID or settings.AWS_SECRET_ACCESS_KEY:
        logger.warning(
            "aws_static_credentials_incomplete",
            msg="Only one of the access key pair is set; using the default credential chain",
        )
    return {}


def get_boto_session(settings: Settings) -> aioboto3.Session:
    """Returns an aioboto3 session bound to the configured credentials and region."""
    kwargs: Dict[str, Any] = map_static_credentials(settings)
    kwargs["region_name"] = settings.AWS_REGION or COST_EXPLORER_DEFAULT_REGION
    return aioboto3.Session(**kwargs)
