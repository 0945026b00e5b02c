"""Tests for the CognitoM2MTokenCacheProxy construct."""

import logging

import aws_cdk as cdk
from aws_cdk import Duration
from aws_cdk.assertions import Match, Template

from m2m_token_cache.constructs import CognitoM2MTokenCacheProxy
from tests.conftest import COGNITO_TOKEN_URL, TEST_ENV


def _proxy(stack, **kwargs) -> CognitoM2MTokenCacheProxy:
    props = {
        "stage": "test",
        "cognito_token_endpoint_url": COGNITO_TOKEN_URL,
        "cache_ttl": Duration.minutes(5),
    }
    props.update(kwargs)
    return CognitoM2MTokenCacheProxy(stack, "Proxy", **props)


def test_rest_api_name_and_cache_settings(stack):
    _proxy(
        stack,
        stage="dev",
        cache_ttl=Duration.minutes(10),
        cache_size="1.6",
        name_prefix="Test",
    )

    template = Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::ApiGateway::RestApi",
        {
            "Name": "Test-Cognito Proxy (dev)",
            "Description": "API Gateway proxy with cache for m2m tokens for Cognito pool",
        },
    )
    template.has_resource_properties(
        "AWS::ApiGateway::Stage",
        {
            "StageName": "dev",
            "CacheClusterEnabled": True,
            "CacheClusterSize": "1.6",
        },
    )


def test_token_method_caching_enabled_and_encrypted(stack):
    _proxy(stack, cache_ttl=Duration.minutes(10))

    template = Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::ApiGateway::Stage",
        {
            "MethodSettings": Match.array_with(
                [
                    Match.object_like(
                        {
                            "HttpMethod": "POST",
                            "CachingEnabled": True,
                            "CacheDataEncrypted": True,
                            "CacheTtlInSeconds": 600,
                        }
                    )
                ]
            )
        },
    )


def test_default_cache_size(stack):
    _proxy(stack)

    Template.from_stack(stack).has_resource_properties(
        "AWS::ApiGateway::Stage", {"CacheClusterSize": "0.5"}
    )


def test_unknown_cache_size_passed_through_with_warning(stack, caplog):
    with caplog.at_level(logging.WARNING, logger="m2m_token_cache"):
        _proxy(stack, cache_size="2.0")

    Template.from_stack(stack).has_resource_properties(
        "AWS::ApiGateway::Stage", {"CacheClusterSize": "2.0"}
    )
    assert "2.0" in caplog.text


def test_post_method_http_proxy_integration(stack):
    _proxy(stack, cache_ttl=Duration.minutes(15))

    template = Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::ApiGateway::Method",
        {
            "HttpMethod": "POST",
            "AuthorizationType": "NONE",
            "Integration": {
                "IntegrationHttpMethod": "POST",
                "Type": "HTTP_PROXY",
                "Uri": COGNITO_TOKEN_URL,
            },
        },
    )
    template.resource_count_is("AWS::ApiGateway::Method", 1)
    template.has_resource_properties("AWS::ApiGateway::Resource", {"PathPart": "oauth2"})
    template.has_resource_properties("AWS::ApiGateway::Resource", {"PathPart": "token"})


def test_cache_key_includes_body_cache_key(stack):
    _proxy(stack)

    Template.from_stack(stack).has_resource_properties(
        "AWS::ApiGateway::Method",
        {
            "Integration": {
                "CacheKeyParameters": [
                    "method.request.header.Authorization",
                    "method.request.header.Content-Type",
                    "method.request.querystring.scope",
                    "method.request.querystring.grant_type",
                    "method.request.querystring.client_secret",
                    "method.request.querystring.client_id",
                    "integration.request.querystring.bodyCacheKey",
                ],
                "RequestParameters": {
                    "integration.request.querystring.bodyCacheKey": "method.request.body",
                    "integration.request.header.Authorization": "method.request.header.Authorization",
                },
            }
        },
    )


def test_authorization_optional_without_validator_when_disabled(stack):
    _proxy(stack, disable_authorization_header_validation=True)

    template = Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::ApiGateway::Method",
        {
            "RequestParameters": {
                "method.request.header.Authorization": False,
                "method.request.header.Content-Type": False,
                "method.request.querystring.scope": False,
                "method.request.querystring.grant_type": False,
                "method.request.querystring.client_secret": False,
                "method.request.querystring.client_id": False,
            },
            "RequestValidatorId": Match.absent(),
        },
    )
    assert template.find_resources("AWS::ApiGateway::RequestValidator") == {}


def test_authorization_required_with_validator_by_default(stack):
    proxy = _proxy(stack)

    template = Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::ApiGateway::Method",
        {
            "RequestParameters": {
                "method.request.header.Authorization": True,
                "method.request.header.Content-Type": False,
                "method.request.querystring.scope": False,
                "method.request.querystring.grant_type": False,
                "method.request.querystring.client_secret": False,
                "method.request.querystring.client_id": False,
            },
            "RequestValidatorId": Match.any_value(),
        },
    )
    template.resource_count_is("AWS::ApiGateway::RequestValidator", 1)
    template.has_resource_properties(
        "AWS::ApiGateway::RequestValidator",
        {"ValidateRequestParameters": True, "ValidateRequestBody": False},
    )
    assert proxy.request_validator is not None


def test_custom_domain_and_cname_record(stack, custom_domain):
    proxy = _proxy(stack, stage="prod", custom_domain=custom_domain)

    template = Template.from_stack(stack)

    template.resource_count_is("AWS::ApiGateway::DomainName", 1)
    template.has_resource_properties(
        "AWS::ApiGateway::DomainName", {"DomainName": "auth.example.com"}
    )
    template.resource_count_is("AWS::Route53::RecordSet", 1)
    template.has_resource_properties(
        "AWS::Route53::RecordSet", {"Name": "auth.example.com.", "Type": "CNAME"}
    )
    assert proxy.token_url == "https://auth.example.com/oauth2/token"


def test_no_custom_domain_resources_without_custom_domain(stack):
    proxy = _proxy(stack)

    template = Template.from_stack(stack)

    assert template.find_resources("AWS::ApiGateway::DomainName") == {}
    assert template.find_resources("AWS::Route53::RecordSet") == {}
    assert proxy.domain is None
    assert proxy.cname_record is None


def test_same_input_synthesizes_identical_templates():
    def synth() -> dict:
        app = cdk.App()
        stack = cdk.Stack(app, "TestStack", env=TEST_ENV)
        _proxy(stack, stage="dev", name_prefix="Test", cache_size="6.1")
        return Template.from_stack(stack).to_json()

    assert synth() == synth()
