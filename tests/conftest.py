"""Shared fixtures for the token cache tests."""

import aws_cdk as cdk
import pytest
from aws_cdk import aws_certificatemanager as acm, aws_route53 as route53

from m2m_token_cache.constructs import CustomDomain

TEST_ENV = cdk.Environment(account="123456789012", region="us-east-1")
COGNITO_TOKEN_URL = "https://example.auth.us-east-1.amazoncognito.com/oauth2/token"


@pytest.fixture
def app() -> cdk.App:
    return cdk.App()


@pytest.fixture
def stack(app) -> cdk.Stack:
    return cdk.Stack(app, "TestStack", env=TEST_ENV)


@pytest.fixture
def custom_domain(stack) -> CustomDomain:
    """auth.example.com with a certificate and public zone in the test stack."""
    certificate = acm.Certificate(stack, "Cert", domain_name="auth.example.com")
    hosted_zone = route53.PublicHostedZone(stack, "Zone", zone_name="example.com")
    return CustomDomain(
        domain_name="example.com",
        sub_domain="auth",
        certificate=certificate,
        hosted_zone=hosted_zone,
    )
