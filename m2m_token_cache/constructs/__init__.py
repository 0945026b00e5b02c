"""
CDK Constructs for the Cognito M2M Token Cache

This package contains the constructs that put an API Gateway response cache
in front of a Cognito OAuth2 token endpoint.
"""

from m2m_token_cache.constructs.token_cache_proxy import (
    CognitoM2MTokenCacheProxy,
    CustomDomain,
)
from m2m_token_cache.constructs.token_cache_pool import CognitoM2MWithTokenCache

__all__ = ["CognitoM2MTokenCacheProxy", "CognitoM2MWithTokenCache", "CustomDomain"]
