"""Deployment settings for the token cache stack, read from the environment."""

import logging
import os
from collections.abc import Mapping
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator, model_validator

from m2m_token_cache.cache_policy import (
    DEFAULT_CACHE_CLUSTER_SIZE,
    is_valid_cache_cluster_size,
)

if TYPE_CHECKING:
    from aws_cdk import Duration

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}

# Cognito access tokens are valid for an hour by default; keep cached ones shorter
DEFAULT_CACHE_TTL_SECONDS = 3300
MAX_CACHE_TTL_SECONDS = 3600


class TokenCacheSettings(BaseModel):
    """Settings for one token cache deployment."""

    stack_name: str = "cognito-m2m-token-cache"
    region: str = "us-east-1"
    account: str | None = None
    stage: str = Field(default="dev", min_length=1)
    name_prefix: str | None = None
    cache_ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL_SECONDS, gt=0, le=MAX_CACHE_TTL_SECONDS
    )
    cache_size: str = DEFAULT_CACHE_CLUSTER_SIZE
    disable_authorization_header_validation: bool = False

    custom_domain_name: str | None = None
    custom_sub_domain: str | None = None
    certificate_arn: str | None = None
    hosted_zone_id: str | None = None

    resource_server_id: str = "token-cache"
    oauth_scope_name: str = "invoke"

    @field_validator("name_prefix")
    @classmethod
    def _empty_prefix_is_none(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("cache_size")
    @classmethod
    def _warn_unknown_cache_size(cls, value: str) -> str:
        if not is_valid_cache_cluster_size(value):
            logger.warning(
                f"CACHE_SIZE={value!r} is not an API Gateway cache tier; "
                "CloudFormation will reject it"
            )
        return value

    @model_validator(mode="after")
    def _custom_domain_all_or_nothing(self) -> "TokenCacheSettings":
        fields = {
            "CUSTOM_DOMAIN_NAME": self.custom_domain_name,
            "CUSTOM_SUB_DOMAIN": self.custom_sub_domain,
            "CERTIFICATE_ARN": self.certificate_arn,
            "HOSTED_ZONE_ID": self.hosted_zone_id,
        }
        missing = [name for name, value in fields.items() if not value]
        if missing and len(missing) < len(fields):
            raise ValueError(
                "Custom domain requires all of CUSTOM_DOMAIN_NAME, CUSTOM_SUB_DOMAIN, "
                f"CERTIFICATE_ARN and HOSTED_ZONE_ID (missing: {', '.join(missing)})"
            )
        return self

    @property
    def has_custom_domain(self) -> bool:
        return bool(self.custom_domain_name)

    @property
    def cache_ttl(self) -> "Duration":
        """Cache TTL as a CDK Duration."""
        from aws_cdk import Duration

        return Duration.seconds(self.cache_ttl_seconds)

    @property
    def oauth_scope(self) -> str:
        return f"{self.resource_server_id}/{self.oauth_scope_name}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TokenCacheSettings":
        """
        Create settings from environment variables.

        When ``environ`` is not given, a ``.env`` file is loaded first and
        ``os.environ`` is used.

        Raises:
            ValueError: If a value is invalid or the custom domain is incomplete
        """
        if environ is None:
            from dotenv import load_dotenv

            load_dotenv()
            environ = os.environ

        values = {
            "stack_name": environ.get("STACK_NAME"),
            "region": environ.get("AWS_REGION") or environ.get("CDK_DEFAULT_REGION"),
            "account": environ.get("CDK_DEFAULT_ACCOUNT"),
            "stage": environ.get("STAGE"),
            "name_prefix": environ.get("NAME_PREFIX"),
            "cache_ttl_seconds": environ.get("CACHE_TTL_SECONDS"),
            "cache_size": environ.get("CACHE_SIZE"),
            "custom_domain_name": environ.get("CUSTOM_DOMAIN_NAME"),
            "custom_sub_domain": environ.get("CUSTOM_SUB_DOMAIN"),
            "certificate_arn": environ.get("CERTIFICATE_ARN"),
            "hosted_zone_id": environ.get("HOSTED_ZONE_ID"),
            "resource_server_id": environ.get("RESOURCE_SERVER_ID"),
            "oauth_scope_name": environ.get("OAUTH_SCOPE_NAME"),
        }
        flag = environ.get("DISABLE_AUTHORIZATION_HEADER_VALIDATION")
        if flag is not None:
            values["disable_authorization_header_validation"] = (
                flag.strip().lower() in TRUE_VALUES
            )

        # Unset variables fall back to the model defaults
        return cls(**{key: value for key, value in values.items() if value is not None})
