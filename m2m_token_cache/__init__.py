"""
Cognito M2M Token Cache CDK Package

This package contains CDK constructs, a stack and a small client for
caching Cognito client credentials tokens behind API Gateway.

The CDK stack lives in ``m2m_token_cache.stack`` so that the client and CLI
can be imported without loading aws_cdk.
"""
