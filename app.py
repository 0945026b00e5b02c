#!/usr/bin/env python3
"""
Cognito M2M Token Cache CDK App

Deploys a Cognito User Pool with an API Gateway response cache in front of
its OAuth2 token endpoint.

Configuration is read from environment variables (or a .env file):
- STACK_NAME: CloudFormation stack name (default: cognito-m2m-token-cache)
- AWS_REGION: AWS region (default: us-east-1)
- STAGE, NAME_PREFIX, CACHE_TTL_SECONDS, CACHE_SIZE
- CUSTOM_DOMAIN_NAME, CUSTOM_SUB_DOMAIN, CERTIFICATE_ARN, HOSTED_ZONE_ID
"""

import logging

import aws_cdk as cdk
from m2m_token_cache.stack import TokenCacheStack
from m2m_token_cache.settings import TokenCacheSettings

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

settings = TokenCacheSettings.from_env()

app = cdk.App()

TokenCacheStack(
    app,
    settings.stack_name,
    settings=settings,
    env=cdk.Environment(
        account=settings.account,  # Uses current credentials when unset
        region=settings.region,
    ),
    description="Cognito user pool with API Gateway cache for M2M tokens",
)

app.synth()
